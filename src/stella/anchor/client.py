"""HTTP client for the anchor proxy API.

The proxy performs anchor discovery and speaks to the anchor's auth and
interactive servers. This client covers the endpoints the deposit engine
needs: challenge, submit, initiate, status and trustline check.
"""

import logging
from typing import Any, Optional, TypeVar
from urllib.parse import quote

import httpx
from pydantic import ValidationError

from stella.anchor.contracts import (
    ApiModel,
    ApiResponse,
    ChallengeRequest,
    ChallengeResponse,
    DepositParams,
    InitiateDepositRequest,
    InitiateResponse,
    StatusRequest,
    StatusResponse,
    SubmitChallengeRequest,
    TokenResponse,
    TrustlineCheckRequest,
    TrustlineCheckResponse,
)
from stella.config import get_settings

logger = logging.getLogger(__name__)

ResponseT = TypeVar("ResponseT", bound=ApiResponse)


class AnchorApiError(Exception):
    """Transport, HTTP or payload failure talking to the anchor proxy."""

    def __init__(self, message: str, status_code: Optional[int] = None):
        self.status_code = status_code
        super().__init__(message)

    @property
    def is_client_error(self) -> bool:
        """True for 4xx responses (the request itself was refused)."""
        return self.status_code is not None and 400 <= self.status_code < 500


class AnchorApiClient:
    """Async client for the anchor proxy endpoints."""

    def __init__(
        self,
        base_url: Optional[str] = None,
        timeout: Optional[float] = None,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        """Initialize the client.

        Args:
            base_url: Proxy base URL (defaults to settings)
            timeout: Per-request timeout in seconds (defaults to settings)
            transport: Custom httpx transport (tests use httpx.MockTransport)
        """
        settings = get_settings()
        self.base_url = (base_url or settings.api_base_url).rstrip("/")
        self.timeout = timeout if timeout is not None else settings.request_timeout_seconds
        self.transport = transport

    async def get_challenge(self, anchor_domain: str, address: str) -> ChallengeResponse:
        """Fetch an auth challenge envelope for ``address``."""
        body = ChallengeRequest(anchor_domain=anchor_domain, user_public_key=address)
        return await self._post("/api/sep10/challenge", body, ChallengeResponse)

    async def submit_challenge(
        self,
        signed_envelope: str,
        auth_endpoint: str,
        anchor_domain: str,
        address: str,
    ) -> TokenResponse:
        """Submit a signed challenge and receive a bearer token."""
        body = SubmitChallengeRequest(
            signed_xdr=signed_envelope,
            auth_endpoint=auth_endpoint,
            anchor_domain=anchor_domain,
            user_public_key=address,
        )
        return await self._post("/api/sep10/submit", body, TokenResponse)

    async def initiate_deposit(
        self,
        anchor_domain: str,
        auth_token: str,
        asset_code: str,
        account: str,
        amount: Optional[str] = None,
        asset_issuer: Optional[str] = None,
    ) -> InitiateResponse:
        """Start an interactive deposit with the anchor."""
        body = InitiateDepositRequest(
            anchor_domain=anchor_domain,
            auth_token=auth_token,
            request=DepositParams(
                asset_code=asset_code,
                asset_issuer=asset_issuer,
                amount=amount,
                account=account,
            ),
        )
        return await self._post("/api/sep24/initiate", body, InitiateResponse)

    async def get_transaction_status(
        self, flow_id: str, anchor_domain: str, auth_token: str
    ) -> StatusResponse:
        """Get the current status of an interactive flow."""
        body = StatusRequest(anchor_domain=anchor_domain, auth_token=auth_token)
        path = f"/api/sep24/status/{quote(flow_id, safe='')}"
        return await self._post(path, body, StatusResponse)

    async def check_trustlines(self, address: str, asset_keys: list[str]) -> TrustlineCheckResponse:
        """Report which of ``asset_keys`` the account has no trustline for."""
        body = TrustlineCheckRequest(user_public_key=address, asset_keys=asset_keys)
        return await self._post("/api/trustlines/check", body, TrustlineCheckResponse)

    async def _post(self, path: str, body: ApiModel, response_model: type[ResponseT]) -> ResponseT:
        payload = body.model_dump(by_alias=True, exclude_none=True)

        try:
            async with httpx.AsyncClient(
                base_url=self.base_url,
                timeout=self.timeout,
                transport=self.transport,
            ) as client:
                response = await client.post(path, json=payload)
        except httpx.HTTPError as e:
            raise AnchorApiError(f"Request to {path} failed: {type(e).__name__}: {e}") from e

        data = self._decode(path, response)

        if response.status_code >= 400:
            message = self._error_message(data) or response.reason_phrase
            raise AnchorApiError(
                f"{path} returned {response.status_code}: {message}",
                status_code=response.status_code,
            )

        if isinstance(data, dict) and data.get("success") is False:
            message = self._error_message(data) or "request was not successful"
            raise AnchorApiError(f"{path} failed: {message}", status_code=response.status_code)

        try:
            return response_model.model_validate(data)
        except ValidationError as e:
            logger.debug(f"Unexpected payload from {path}: {e}")
            raise AnchorApiError(
                f"{path} returned an unexpected payload", status_code=response.status_code
            ) from e

    @staticmethod
    def _decode(path: str, response: httpx.Response) -> Any:
        try:
            return response.json()
        except ValueError as e:
            if response.status_code >= 400:
                return {"message": response.text[:200]}
            raise AnchorApiError(
                f"{path} returned invalid JSON", status_code=response.status_code
            ) from e

    @staticmethod
    def _error_message(data: Any) -> str:
        if isinstance(data, dict):
            for key in ("message", "error", "detail"):
                value = data.get(key)
                if isinstance(value, str) and value:
                    return value
        return ""
