"""Client for the anchor proxy API (auth, interactive deposits, trustlines)."""

from stella.anchor.client import AnchorApiClient, AnchorApiError
from stella.anchor.contracts import (
    ChallengeResponse,
    InitiateResponse,
    StatusResponse,
    TokenResponse,
    TrustlineCheckResponse,
)

__all__ = [
    "AnchorApiClient",
    "AnchorApiError",
    "ChallengeResponse",
    "TokenResponse",
    "InitiateResponse",
    "StatusResponse",
    "TrustlineCheckResponse",
]
