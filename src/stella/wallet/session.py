"""Wallet session for the deposit client.

The session tracks which address the user is acting as and whether a
signing-capable extension manages it. It NEVER holds a private key:
- Extension-managed sessions delegate signing to the extension
- Manual sessions only carry a public address and cannot sign

State machine:
    disconnected --connect--> connected
    disconnected --manual entry--> manual_entry
    manual_entry --connect--> connected
    any --disconnect--> disconnected
"""

import asyncio
import logging
from typing import Optional

from stella.config import get_settings
from stella.wallet.base import (
    AccessDenied,
    CapabilityUnavailable,
    ConnectionState,
    SessionMode,
    SigningFailed,
    UnsupportedMode,
    UserCancelled,
    WalletExtension,
    read_address,
    read_flag,
    read_signed_envelope,
    truncate_address,
)
from stella.wallet.store import PersistedSession, SessionStore

logger = logging.getLogger(__name__)

# Substrings extensions use when the user closes the approval prompt
DECLINE_MARKERS = ("declined", "rejected", "cancel", "denied")


class WalletSession:
    """User's authorization to produce signatures.

    Owned by the UI layer. The handshake client only reads ``address``,
    ``can_sign`` and ``generation`` and calls ``sign``.
    """

    def __init__(
        self,
        extension: Optional[WalletExtension],
        store: Optional[SessionStore] = None,
        probe_timeout: Optional[float] = None,
    ):
        """Initialize an empty session.

        Args:
            extension: Extension adapter, or None if no extension is installed
            store: Persisted-state store (None disables persistence)
            probe_timeout: Seconds before an extension probe counts as failed
        """
        settings = get_settings()
        self.extension = extension
        self.store = store
        self.probe_timeout = (
            probe_timeout if probe_timeout is not None else settings.extension_timeout_seconds
        )

        self.address: str = ""
        self.session_mode = SessionMode.NONE
        self.connection_state = ConnectionState.DISCONNECTED
        self.last_error: Optional[str] = None
        self.capability_available = False
        # Bumped on every transition so credentials tied to an older state expire
        self.generation = 0

    @property
    def is_connected(self) -> bool:
        """True when the session carries an address (managed or manual)."""
        return self.connection_state in (ConnectionState.CONNECTED, ConnectionState.MANUAL_ENTRY)

    @property
    def can_sign(self) -> bool:
        """True only for a connected extension-managed session."""
        return (
            self.session_mode == SessionMode.FREIGHTER_MANAGED
            and self.connection_state == ConnectionState.CONNECTED
        )

    # ------------------------------------------------------------------
    # Capability detection
    # ------------------------------------------------------------------

    async def detect_capability(self) -> bool:
        """Probe whether the extension is reachable. Never raises."""
        available = False
        if self.extension is not None:
            try:
                result = await asyncio.wait_for(
                    self.extension.is_connected(), timeout=self.probe_timeout
                )
                available = read_flag(result, "isConnected")
            except Exception as e:
                logger.debug(f"Extension probe failed: {type(e).__name__}: {e}")
                available = False

        self.capability_available = available
        return available

    async def silent_reconnect(self, expected_address: Optional[str] = None) -> None:
        """Restore a managed session without prompting the user.

        Any failure, including an extension that does not answer within
        ``probe_timeout``, leaves the session as it was. Nothing is surfaced.
        """
        if self.extension is None:
            return

        try:
            allowed = read_flag(
                await asyncio.wait_for(self.extension.is_allowed(), timeout=self.probe_timeout),
                "isAllowed",
            )
            if not allowed:
                logger.debug("Silent reconnect skipped: access not pre-approved")
                return

            address = read_address(
                await asyncio.wait_for(self.extension.get_address(), timeout=self.probe_timeout)
            )
            if not address or (expected_address and address != expected_address):
                logger.debug("Silent reconnect skipped: address unavailable or changed")
                return

            self._enter(SessionMode.FREIGHTER_MANAGED, ConnectionState.CONNECTED, address)
            await self._persist()
            logger.info(f"Wallet silently reconnected: {truncate_address(address)}")
        except Exception as e:
            logger.debug(f"Silent reconnect failed: {type(e).__name__}: {e}")

    async def restore(self, redetect_delay: Optional[float] = None) -> None:
        """Restore the persisted session on startup.

        The extension may still be initializing when the process starts, so
        a managed session that could not be restored is retried once after
        ``redetect_delay`` seconds.
        """
        if redetect_delay is None:
            redetect_delay = get_settings().capability_redetect_delay_seconds

        available = await self.detect_capability()
        saved = await self._load_saved()
        if saved is None:
            return

        if saved.mode == SessionMode.MANUAL_KEY_ENTRY and saved.address:
            self._enter(SessionMode.MANUAL_KEY_ENTRY, ConnectionState.MANUAL_ENTRY, saved.address)
            logger.info(f"Restored manual wallet session: {truncate_address(saved.address)}")
            return

        if saved.mode != SessionMode.FREIGHTER_MANAGED:
            return

        if available:
            await self.silent_reconnect(saved.address)

        if not self.is_connected and redetect_delay > 0:
            await asyncio.sleep(redetect_delay)
            if await self.detect_capability():
                await self.silent_reconnect(saved.address)

    # ------------------------------------------------------------------
    # Explicit transitions
    # ------------------------------------------------------------------

    async def connect(self) -> str:
        """Connect through the extension, prompting the user if needed.

        Returns:
            The connected address

        Raises:
            CapabilityUnavailable: No extension is reachable (session unchanged)
            AccessDenied: The user rejected access or no address came back
        """
        self.last_error = None

        if not await self.detect_capability():
            self.last_error = (
                "Wallet extension not detected. Make sure it is installed and enabled."
            )
            raise CapabilityUnavailable(self.last_error)

        self._enter(SessionMode.NONE, ConnectionState.CONNECTING, "")

        try:
            address = read_address(await self.extension.request_access())
            if not address:
                address = read_address(await self.extension.get_address())
        except Exception as e:
            await self._fail_connect(f"Wallet connection failed: {e}")
            raise AccessDenied(self.last_error) from e

        if not address:
            await self._fail_connect(
                "No public key returned - the request may have been rejected"
            )
            raise AccessDenied(self.last_error)

        self._enter(SessionMode.FREIGHTER_MANAGED, ConnectionState.CONNECTED, address)
        await self._persist()
        logger.info(f"Wallet connected via {self.extension.name}: {truncate_address(address)}")
        return address

    async def set_manual_keys(self, address: str, secret: Optional[str] = None) -> None:
        """Switch to a manually entered address.

        ``secret`` is accepted for interface compatibility but never retained:
        signing is unavailable in manual mode.
        """
        del secret
        address = (address or "").strip()
        self.last_error = None

        if address:
            self._enter(SessionMode.MANUAL_KEY_ENTRY, ConnectionState.MANUAL_ENTRY, address)
            logger.info(f"Manual wallet address set: {truncate_address(address)}")
        else:
            self._enter(SessionMode.MANUAL_KEY_ENTRY, ConnectionState.DISCONNECTED, "")

        await self._persist()

    async def disconnect(self) -> None:
        """Forget the session in memory and on disk. Idempotent."""
        self.last_error = None
        self._enter(SessionMode.NONE, ConnectionState.DISCONNECTED, "")
        await self._clear_persisted()
        logger.info("Wallet disconnected")

    # ------------------------------------------------------------------
    # Signing
    # ------------------------------------------------------------------

    async def sign(
        self,
        envelope: str,
        network_passphrase: Optional[str] = None,
        signer_address: Optional[str] = None,
    ) -> str:
        """Sign an envelope through the extension.

        Raises:
            UnsupportedMode: Session is not extension-managed
            UserCancelled: The user declined or nothing was returned
            SigningFailed: Any other extension error
        """
        if not self.can_sign or self.extension is None:
            raise UnsupportedMode("Signing is only available for extension-managed wallets")

        passphrase = network_passphrase or get_settings().passphrase
        signer = signer_address or self.address

        try:
            result = await self.extension.sign_transaction(envelope, passphrase, signer)
        except Exception as e:
            message = str(e)
            if any(marker in message.lower() for marker in DECLINE_MARKERS):
                raise UserCancelled("Signing cancelled by user") from e
            raise SigningFailed(f"Signing failed: {message or type(e).__name__}") from e

        signed = read_signed_envelope(result)
        if not signed:
            raise UserCancelled("Signing was cancelled")
        return signed

    # ------------------------------------------------------------------
    # Internals
    # ------------------------------------------------------------------

    def _enter(self, mode: SessionMode, state: ConnectionState, address: str) -> None:
        self.session_mode = mode
        self.connection_state = state
        self.address = address
        self.generation += 1

    async def _fail_connect(self, message: str) -> None:
        self.last_error = message
        self._enter(SessionMode.NONE, ConnectionState.DISCONNECTED, "")
        await self._clear_persisted()
        logger.warning(message)

    async def _load_saved(self) -> Optional[PersistedSession]:
        if self.store is None:
            return None
        try:
            return await self.store.load()
        except Exception as e:
            logger.warning(f"Could not read persisted wallet state: {e}")
            return None

    async def _persist(self) -> None:
        if self.store is None:
            return
        try:
            await self.store.save(self.session_mode, self.address)
        except Exception as e:
            logger.warning(f"Could not persist wallet state: {e}")

    async def _clear_persisted(self) -> None:
        if self.store is None:
            return
        try:
            await self.store.clear()
        except Exception as e:
            logger.warning(f"Could not clear persisted wallet state: {e}")

    def __repr__(self) -> str:
        return (
            f"WalletSession(state={self.connection_state.value}, "
            f"mode={self.session_mode.value}, address={truncate_address(self.address)})"
        )
