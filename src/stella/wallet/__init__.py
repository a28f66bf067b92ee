"""Wallet session and the extension signing boundary.

- WalletExtension: injected signing capability (probe, access, sign)
- WalletSession: connection lifecycle, persistence, signing delegate
- DryRunExtension: simulated extension for dry-run mode
"""

from stella.wallet.base import (
    AccessDenied,
    CapabilityUnavailable,
    ConnectionState,
    ExtensionError,
    SessionMode,
    SigningFailed,
    UnsupportedMode,
    UserCancelled,
    WalletError,
    WalletExtension,
)
from stella.wallet.dry_run import DryRunExtension
from stella.wallet.session import WalletSession
from stella.wallet.store import PersistedSession, SessionStore

__all__ = [
    # Session
    "WalletSession",
    "SessionStore",
    "PersistedSession",
    "SessionMode",
    "ConnectionState",
    # Extension boundary
    "WalletExtension",
    "DryRunExtension",
    # Errors
    "WalletError",
    "ExtensionError",
    "CapabilityUnavailable",
    "AccessDenied",
    "SigningFailed",
    "UnsupportedMode",
    "UserCancelled",
]
