"""Challenge/response authentication against an anchor (SEP-10 style).

Flow:
1. Request a challenge envelope for the user's address
2. Have the wallet extension sign it (the private key never leaves it)
3. Submit the signed envelope and receive a bearer token

The steps are strictly sequential and never retried automatically: a
challenge that failed at any step is stale and the caller must start over.
"""

import logging
import time
from dataclasses import dataclass, field
from typing import Optional

from stella.anchor.client import AnchorApiClient, AnchorApiError
from stella.config import get_settings
from stella.wallet.base import UnsupportedMode, UserCancelled, truncate_address
from stella.wallet.session import WalletSession

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class Challenge:
    """Challenge issued by an anchor's auth endpoint."""

    challenge_envelope: str = field(repr=False)
    network_passphrase: str
    auth_endpoint: str


@dataclass(frozen=True)
class AuthToken:
    """Bearer credential scoped to one (anchor domain, address) pair."""

    token: str = field(repr=False)
    anchor_domain: str
    address: str
    expires_at: Optional[float] = None
    issued_at: float = field(default_factory=time.time)

    def is_expired(self, now: Optional[float] = None) -> bool:
        if self.expires_at is None:
            return False
        return (now if now is not None else time.time()) >= self.expires_at

    def is_valid_for(self, anchor_domain: str, address: str) -> bool:
        """Check the token may be used for this anchor and address."""
        return (
            self.anchor_domain == anchor_domain
            and self.address == address
            and not self.is_expired()
        )


class TokenCache:
    """In-memory token cache keyed by (anchor domain, address).

    Entries remember the session generation they were issued under, so any
    wallet transition (disconnect, mode switch, new address) retires them.
    """

    def __init__(self):
        self._tokens: dict[tuple[str, str], tuple[AuthToken, int]] = {}

    def get(self, anchor_domain: str, address: str, generation: int) -> Optional[AuthToken]:
        entry = self._tokens.get((anchor_domain, address))
        if entry is None:
            return None

        token, issued_generation = entry
        if issued_generation != generation or not token.is_valid_for(anchor_domain, address):
            del self._tokens[(anchor_domain, address)]
            return None
        return token

    def put(self, token: AuthToken, generation: int) -> None:
        self._tokens[(token.anchor_domain, token.address)] = (token, generation)

    def invalidate(self, anchor_domain: str, address: str) -> None:
        self._tokens.pop((anchor_domain, address), None)

    def clear(self) -> None:
        self._tokens.clear()

    def __len__(self) -> int:
        return len(self._tokens)


class AuthHandshakeClient:
    """Obtains anchor auth tokens using the wallet's signing delegate."""

    def __init__(
        self,
        api: AnchorApiClient,
        session: WalletSession,
        cache: Optional[TokenCache] = None,
        token_ttl: Optional[float] = None,
    ):
        """Initialize the handshake client.

        Args:
            api: Anchor proxy client
            session: Wallet session providing the address and signing
            cache: Token cache (None disables reuse of tokens)
            token_ttl: Lifetime assumed when the anchor gives no expiry
        """
        self.api = api
        self.session = session
        self.cache = cache
        self.token_ttl = token_ttl if token_ttl is not None else get_settings().token_ttl_seconds

    async def authenticate(self, anchor_domain: str) -> AuthToken:
        """Run the full handshake for the session's address.

        Raises:
            UnsupportedMode: The session cannot sign (no request is made)
            ChallengeUnavailable, SigningDeclined, SigningFailed, AuthRejected
        """
        if not self.session.can_sign:
            raise UnsupportedMode(
                "Anchor authentication requires an extension-managed wallet"
            )

        address = self.session.address
        generation = self.session.generation

        if self.cache is not None:
            cached = self.cache.get(anchor_domain, address, generation)
            if cached is not None:
                logger.debug(f"Reusing auth token for {anchor_domain}")
                return cached

        logger.info(f"Authenticating {truncate_address(address)} with {anchor_domain}")

        challenge = await self.request_challenge(anchor_domain, address)
        signed = await self.sign_challenge(
            challenge.challenge_envelope, challenge.network_passphrase, address
        )
        token = await self.submit_response(signed, challenge.auth_endpoint, anchor_domain, address)

        if self.cache is not None:
            self.cache.put(token, generation)
        return token

    async def request_challenge(self, anchor_domain: str, address: str) -> Challenge:
        """Step 1: fetch a challenge envelope."""
        try:
            response = await self.api.get_challenge(anchor_domain, address)
        except AnchorApiError as e:
            logger.warning(f"Challenge from {anchor_domain} unavailable: {e}")
            raise ChallengeUnavailable(f"Failed to get challenge from {anchor_domain}: {e}") from e

        return Challenge(
            challenge_envelope=response.challenge_xdr,
            network_passphrase=response.network_passphrase or get_settings().passphrase,
            auth_endpoint=response.auth_endpoint,
        )

    async def sign_challenge(
        self, challenge_envelope: str, network_passphrase: str, address: str
    ) -> str:
        """Step 2: sign the challenge through the wallet session.

        Raises:
            SigningDeclined: The user cancelled in the wallet
            SigningFailed: Any other wallet error (including UnsupportedMode)
        """
        try:
            return await self.session.sign(
                challenge_envelope,
                network_passphrase=network_passphrase,
                signer_address=address,
            )
        except UserCancelled as e:
            logger.info("Challenge signing declined by user")
            raise SigningDeclined("Signing was cancelled in the wallet") from e

    async def submit_response(
        self,
        signed_envelope: str,
        auth_endpoint: str,
        anchor_domain: str,
        address: str,
    ) -> AuthToken:
        """Step 3: exchange the signed challenge for a token."""
        try:
            response = await self.api.submit_challenge(
                signed_envelope, auth_endpoint, anchor_domain, address
            )
        except AnchorApiError as e:
            logger.warning(f"{anchor_domain} rejected authentication: {e}")
            raise AuthRejected(f"Authentication with {anchor_domain} failed: {e}") from e

        expires_at = response.expires_at or (time.time() + self.token_ttl)
        logger.info(f"Authenticated with {anchor_domain}")
        return AuthToken(
            token=response.token,
            anchor_domain=anchor_domain,
            address=address,
            expires_at=expires_at,
        )


class HandshakeError(Exception):
    """Base class for handshake failures."""

    pass


class ChallengeUnavailable(HandshakeError):
    """The challenge could not be fetched or was malformed."""

    pass


class SigningDeclined(HandshakeError):
    """The user declined to sign the challenge."""

    pass


class AuthRejected(HandshakeError):
    """The anchor rejected the signed challenge."""

    pass
