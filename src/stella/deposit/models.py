"""Domain models for interactive deposit flows."""

import time
from dataclasses import dataclass, field
from decimal import Decimal
from typing import Any, Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator

from stella.auth.handshake import AuthToken

NATIVE_CODES = ("XLM", "native")
NATIVE_ISSUER = "native"


class FlowStatus:
    """Anchor-defined status strings the client reacts to.

    Anchors may report other values; those are stored verbatim.
    """

    PENDING_USER_TRANSFER_START = "pending_user_transfer_start"
    COMPLETED = "completed"
    ERROR = "error"
    REFUNDED = "refunded"

    TERMINAL = frozenset({COMPLETED, ERROR, REFUNDED})

    @classmethod
    def is_terminal(cls, status: str) -> bool:
        return status in cls.TERMINAL


def is_native(code: Optional[str], issuer: Optional[str]) -> bool:
    return (code or "") in NATIVE_CODES or issuer == NATIVE_ISSUER


@dataclass(frozen=True)
class DepositAsset:
    """Asset the anchor will credit to the user's account."""

    code: str
    issuer: Optional[str] = None  # None for the native asset
    is_native: bool = False

    @classmethod
    def from_key(cls, key: Optional[str]) -> Optional["DepositAsset"]:
        """Parse an asset key ``CODE:ISSUER`` (``XLM:native`` for native)."""
        if not key:
            return None
        code, _, issuer = key.strip().partition(":")
        if not code:
            return None
        native = is_native(code, issuer or None)
        return cls(code=code, issuer=None if native else (issuer or None), is_native=native)

    @classmethod
    def from_path_asset(cls, asset: "PathAsset") -> Optional["DepositAsset"]:
        if not asset.code:
            return None
        native = asset.is_native or is_native(asset.code, asset.issuer)
        return cls(code=asset.code, issuer=None if native else asset.issuer, is_native=native)

    @property
    def asset_key(self) -> str:
        return f"{self.code}:{NATIVE_ISSUER if self.is_native else self.issuer or ''}"

    @property
    def trustline_key(self) -> str:
        """Key format used by the trustline check API."""
        return f"stellar:{self.code}:{self.issuer or ''}"

    def __str__(self) -> str:
        return self.code if self.is_native or not self.issuer else f"{self.code}:{self.issuer[:8]}..."


# ======================
# Routing API boundary
# ======================


class RoutingModel(BaseModel):
    model_config = ConfigDict(populate_by_name=True, extra="ignore")


class PathAsset(RoutingModel):
    """One hop of a route path."""

    code: str = ""
    issuer: Optional[str] = None
    is_native: bool = Field(default=False, alias="isNative")


class RouteLeg(RoutingModel):
    """A leg of a route, as reported by the routing API."""

    from_key: Optional[str] = Field(None, alias="from")
    to_key: Optional[str] = Field(None, alias="to")
    type: Optional[str] = None
    details: dict[str, Any] = Field(default_factory=dict)

    @property
    def anchor_domain(self) -> Optional[str]:
        domain = self.details.get("anchorDomain") or self.details.get("anchor")
        return domain if isinstance(domain, str) and domain else None

    @property
    def has_destination(self) -> bool:
        """True when the leg names the asset it delivers."""
        return bool(self.to_key)


class Route(RoutingModel):
    """A route returned by the routing API."""

    path: list[PathAsset] = Field(default_factory=list)
    legs: list[RouteLeg] = Field(default_factory=list)
    edge_types: list[str] = Field(default_factory=list, alias="edgeTypes")
    send_amount: Optional[str] = Field(None, alias="sendAmount")
    receive_amount: Optional[str] = Field(None, alias="receiveAmount")

    @field_validator("send_amount", "receive_amount", mode="before")
    @classmethod
    def amount_to_str(cls, v: Any) -> Any:
        if isinstance(v, (int, float, Decimal)):
            return str(v)
        return v

    @property
    def amount(self) -> Optional[str]:
        """Amount to request from the anchor."""
        return self.send_amount or self.receive_amount

    @property
    def destination(self) -> Optional[PathAsset]:
        return self.path[-1] if self.path else None

    @property
    def passes_through_native(self) -> bool:
        return any(hop.is_native or is_native(hop.code, hop.issuer) for hop in self.path)


# ======================
# Tracked flows
# ======================


@dataclass
class FlowRecord:
    """One in-flight interactive deposit."""

    id: str
    asset: DepositAsset
    amount: Optional[str]
    anchor_domain: str
    interactive_url: str
    auth_token: AuthToken = field(repr=False)
    status: str = FlowStatus.PENDING_USER_TRANSFER_START
    kind: str = "deposit"
    started_at: float = field(default_factory=time.time)
    updated_at: Optional[float] = None
    window_opened: bool = False

    @property
    def is_terminal(self) -> bool:
        return FlowStatus.is_terminal(self.status)


@dataclass(frozen=True)
class OpenResult:
    """Outcome of opening the interactive page. ``url`` is always usable."""

    opened: bool
    url: str


@dataclass(frozen=True)
class LaunchResult:
    """Successful launch: the tracked record plus how the page was opened."""

    record: FlowRecord
    opened: bool
    url: str
    advisory: Optional[str] = None
