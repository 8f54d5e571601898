"""Config entries: flat secondary tier, dual-tier healing, entitlement ledger."""

from fieldvault.state.dual_tier import DualTierConfig
from fieldvault.state.entitlements import ActivationResult, EntitlementLedger
from fieldvault.state.flatstore import FlatFileStore

__all__ = ["DualTierConfig", "EntitlementLedger", "ActivationResult", "FlatFileStore"]
