"""Debounced write-back of the live project document."""

from fieldvault.autosave.controller import AutosaveController, SaveStatus

__all__ = ["AutosaveController", "SaveStatus"]
