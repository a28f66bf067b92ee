"""Base interfaces for the wallet extension boundary.

The browser extension holds the private key. This package only ever sees
public addresses and opaque transaction envelopes:
1. Probe whether the extension is reachable
2. Request access (the extension may prompt the user)
3. Hand it an envelope to sign
4. Receive the signed envelope back

Extension releases disagree on response shapes (a bare value or an object
wrapping it). The ``read_*`` helpers below are the only place those shapes
are interpreted.
"""

import logging
from abc import ABC, abstractmethod
from enum import Enum
from typing import Any, Optional

logger = logging.getLogger(__name__)


class SessionMode(str, Enum):
    """How the current session obtained its address."""

    NONE = "none"
    FREIGHTER_MANAGED = "freighter_managed"  # Extension holds the key and signs
    MANUAL_KEY_ENTRY = "manual_key_entry"    # Address typed in, no signing


class ConnectionState(str, Enum):
    """Connection lifecycle of a wallet session."""

    DISCONNECTED = "disconnected"
    CONNECTING = "connecting"      # Only while connect() is running
    CONNECTED = "connected"
    MANUAL_ENTRY = "manual_entry"


class WalletExtension(ABC):
    """Signing-capable wallet extension.

    Implementations return whatever the extension returns; callers
    normalize through the ``read_*`` helpers. Methods may raise
    ``ExtensionError`` (or any other exception) on messaging failures.
    """

    @property
    @abstractmethod
    def name(self) -> str:
        """Extension name."""
        pass

    @abstractmethod
    async def is_connected(self) -> Any:
        """Probe the extension. Returns a bool or ``{"isConnected": bool}``."""
        pass

    @abstractmethod
    async def is_allowed(self) -> Any:
        """Check pre-approved access. Returns a bool or ``{"isAllowed": bool}``."""
        pass

    @abstractmethod
    async def request_access(self) -> Any:
        """Ask the user to grant access. Returns an address or ``{"address": str}``."""
        pass

    @abstractmethod
    async def get_address(self) -> Any:
        """Get the granted address. Returns an address or ``{"address": str}``."""
        pass

    @abstractmethod
    async def sign_transaction(self, envelope: str, network_passphrase: str, address: str) -> Any:
        """Sign an envelope.

        Args:
            envelope: Opaque serialized transaction
            network_passphrase: Network the envelope belongs to
            address: Account expected to sign

        Returns:
            Signed envelope string or ``{"signedTxXdr": str, "signerAddress": str}``
        """
        pass

    def __repr__(self) -> str:
        return f"{self.__class__.__name__}(name={self.name})"


def read_flag(result: Any, key: str) -> bool:
    """Normalize a bool-or-object probe result."""
    if isinstance(result, bool):
        return result
    if isinstance(result, dict):
        return bool(result.get(key))
    return False


def read_address(result: Any) -> str:
    """Normalize a string-or-object address result to a string ("" if absent)."""
    if isinstance(result, str):
        return result.strip()
    if isinstance(result, dict):
        value = result.get("address") or result.get("publicKey")
        return value.strip() if isinstance(value, str) else ""
    return ""


def read_signed_envelope(result: Any) -> Optional[str]:
    """Normalize a string-or-object signing result (None if absent)."""
    if isinstance(result, str):
        return result or None
    if isinstance(result, dict):
        value = result.get("signedTxXdr")
        return value if isinstance(value, str) and value else None
    return None


def truncate_address(address: str) -> str:
    """Shorten an address for log lines."""
    if not address:
        return "(none)"
    return address[:6] + "..." + address[-4:] if len(address) > 12 else address


class ExtensionError(Exception):
    """Raised by extension adapters when messaging the extension fails."""

    pass


class WalletError(Exception):
    """Base class for wallet session errors."""

    pass


class CapabilityUnavailable(WalletError):
    """No signing-capable extension is reachable."""

    pass


class AccessDenied(WalletError):
    """The user rejected the access request or no address was returned."""

    pass


class SigningFailed(WalletError):
    """The extension failed to sign."""

    pass


class UnsupportedMode(SigningFailed):
    """Signing was requested outside extension-managed mode."""

    pass


class UserCancelled(SigningFailed):
    """The user declined to sign."""

    pass
