"""Compilation of the project document + photo blobs into one ZIP archive."""

from fieldvault.archive.compiler import ArchiveCompiler, CompiledArchive
from fieldvault.archive.sanitize import FALLBACK_NAME, sanitize_name

__all__ = ["ArchiveCompiler", "CompiledArchive", "sanitize_name", "FALLBACK_NAME"]
