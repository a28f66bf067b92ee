"""Wire contracts for the anchor proxy API.

Request models serialize to the camelCase JSON the API expects. Response
models absorb the shape differences between API versions:
- payloads may be wrapped in ``{"success": true, "data": {...}}``
- a transaction status may be top-level, under ``data`` or under
  ``transaction``, and may be a bare string or ``{"status": ...}``
Core logic only ever sees the normalized fields.
"""

from typing import Any, Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator


class ApiModel(BaseModel):
    """Base for all API contracts."""

    model_config = ConfigDict(populate_by_name=True, extra="ignore")


class ApiResponse(ApiModel):
    """Base for responses, unwrapping an optional ``data`` envelope."""

    @model_validator(mode="before")
    @classmethod
    def unwrap_data(cls, value: Any) -> Any:
        if isinstance(value, dict) and isinstance(value.get("data"), dict):
            merged = {k: v for k, v in value.items() if k != "data"}
            merged.update(value["data"])
            return merged
        return value


# ======================
# Auth (SEP-10 style)
# ======================


class ChallengeRequest(ApiModel):
    anchor_domain: str = Field(..., alias="anchorDomain")
    user_public_key: str = Field(..., alias="userPublicKey")


class ChallengeResponse(ApiResponse):
    """Challenge envelope to be signed by the wallet."""

    challenge_xdr: str = Field(..., alias="challengeXdr", min_length=1)
    network_passphrase: Optional[str] = Field(None, alias="networkPassphrase")
    auth_endpoint: str = Field(..., alias="authEndpoint", min_length=1)


class SubmitChallengeRequest(ApiModel):
    signed_xdr: str = Field(..., alias="signedXdr")
    auth_endpoint: str = Field(..., alias="authEndpoint")
    anchor_domain: str = Field(..., alias="anchorDomain")
    user_public_key: str = Field(..., alias="userPublicKey")


class TokenResponse(ApiResponse):
    """Bearer token issued by the anchor."""

    token: str = Field(..., min_length=1)
    expires_at: Optional[float] = Field(None, alias="expiresAt")

    @field_validator("expires_at")
    @classmethod
    def normalize_epoch(cls, v: Optional[float]) -> Optional[float]:
        """Accept epoch milliseconds as well as seconds."""
        if v is not None and v > 1e11:
            return v / 1000.0
        return v


# ======================
# Interactive deposit (SEP-24 style)
# ======================


class DepositParams(ApiModel):
    asset_code: str = Field(..., alias="assetCode")
    asset_issuer: Optional[str] = Field(None, alias="assetIssuer")
    amount: Optional[str] = None
    account: str


class InitiateDepositRequest(ApiModel):
    type: str = "deposit"
    anchor_domain: str = Field(..., alias="anchorDomain")
    auth_token: str = Field(..., alias="authToken")
    request: DepositParams


class InitiateResponse(ApiResponse):
    """Anchor-issued flow id and interactive URL."""

    id: str = Field(..., min_length=1)
    url: Optional[str] = None
    type: Optional[str] = None

    @field_validator("id", mode="before")
    @classmethod
    def coerce_id(cls, v: Any) -> Any:
        return str(v) if isinstance(v, int) else v


class StatusRequest(ApiModel):
    anchor_domain: str = Field(..., alias="anchorDomain")
    auth_token: str = Field(..., alias="authToken")


class StatusResponse(ApiResponse):
    """Current status of an interactive flow."""

    status: str = Field(..., min_length=1)
    message: Optional[str] = None

    @model_validator(mode="before")
    @classmethod
    def locate_status(cls, value: Any) -> Any:
        if not isinstance(value, dict):
            return value
        if isinstance(value.get("data"), dict):
            value = {**{k: v for k, v in value.items() if k != "data"}, **value["data"]}
        status = value.get("status")
        transaction = value.get("transaction")
        if status is None and isinstance(transaction, dict):
            status = transaction.get("status")
        if isinstance(status, dict):
            status = status.get("status")
        return {**value, "status": status}


# ======================
# Trustlines
# ======================


class TrustlineCheckRequest(ApiModel):
    user_public_key: str = Field(..., alias="userPublicKey")
    asset_keys: list[str] = Field(..., alias="assetKeys")


class TrustlineCheckResponse(ApiResponse):
    """Assets the account cannot receive yet."""

    missing_trustlines: list[str] = Field(default_factory=list, alias="missingTrustlines")

    @field_validator("missing_trustlines", mode="before")
    @classmethod
    def normalize_entries(cls, v: Any) -> Any:
        if v is None:
            return []
        if not isinstance(v, list):
            return v
        entries = []
        for item in v:
            if isinstance(item, dict):
                item = item.get("assetKey") or item.get("asset") or item.get("code") or ""
            entries.append(str(item))
        return entries
