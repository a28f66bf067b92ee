"""Interactive deposit flows.

- AssetResolver: which asset the anchor credits for a route leg
- DepositFlowOrchestrator: launch sequence from leg to tracked flow
- FlowStatusPoller: per-flow status polling with a hard time cap
- FlowRegistry: tracked flows
"""

from stella.deposit.assets import AssetResolver
from stella.deposit.errors import (
    AssetUndeterminable,
    LaunchAborted,
    LaunchError,
    NoInteractiveUrl,
    WalletNotReady,
)
from stella.deposit.models import (
    DepositAsset,
    FlowRecord,
    FlowStatus,
    LaunchResult,
    OpenResult,
    PathAsset,
    Route,
    RouteLeg,
)
from stella.deposit.opener import BrowserOpener, InteractiveOpener, ManualOpener
from stella.deposit.orchestrator import DepositFlowOrchestrator
from stella.deposit.poller import FlowStatusPoller
from stella.deposit.registry import FlowRegistry

__all__ = [
    # Models
    "DepositAsset",
    "FlowRecord",
    "FlowStatus",
    "LaunchResult",
    "OpenResult",
    "PathAsset",
    "Route",
    "RouteLeg",
    # Components
    "AssetResolver",
    "DepositFlowOrchestrator",
    "FlowStatusPoller",
    "FlowRegistry",
    "InteractiveOpener",
    "BrowserOpener",
    "ManualOpener",
    # Errors
    "LaunchError",
    "WalletNotReady",
    "AssetUndeterminable",
    "NoInteractiveUrl",
    "LaunchAborted",
]
