"""Anchor authentication (challenge/response handshake)."""

from stella.auth.handshake import (
    AuthHandshakeClient,
    AuthRejected,
    AuthToken,
    Challenge,
    ChallengeUnavailable,
    HandshakeError,
    SigningDeclined,
    TokenCache,
)

__all__ = [
    "AuthHandshakeClient",
    "AuthToken",
    "Challenge",
    "TokenCache",
    "HandshakeError",
    "ChallengeUnavailable",
    "SigningDeclined",
    "AuthRejected",
]
