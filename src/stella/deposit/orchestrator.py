"""Launching interactive deposits (SEP-24 style) for an anchor leg.

Launch sequence, each step aborting with its own error:
1. Check the wallet can sign
2. Resolve the deposit asset (plus an advisory trustline check)
3. Authenticate with the anchor
4. Ask the anchor to initiate the deposit
5. Open the interactive page (best-effort)
6. Register the flow and start polling its status

Calling ``launch`` twice starts two independent flows.
"""

import logging
from typing import Optional

from stella.anchor.client import AnchorApiClient, AnchorApiError
from stella.auth.handshake import AuthHandshakeClient, HandshakeError, TokenCache
from stella.config import get_settings
from stella.deposit.assets import AssetResolver
from stella.deposit.errors import LaunchAborted, NoInteractiveUrl, WalletNotReady
from stella.deposit.models import (
    FlowRecord,
    FlowStatus,
    LaunchResult,
    Route,
    RouteLeg,
)
from stella.deposit.opener import BrowserOpener, InteractiveOpener
from stella.deposit.poller import FlowStatusPoller
from stella.deposit.registry import FlowRegistry
from stella.wallet.base import ConnectionState, WalletError, truncate_address
from stella.wallet.session import WalletSession

logger = logging.getLogger(__name__)


class DepositFlowOrchestrator:
    """Drives interactive deposits from launch to tracked flow."""

    def __init__(
        self,
        session: WalletSession,
        api: AnchorApiClient,
        handshake: Optional[AuthHandshakeClient] = None,
        resolver: Optional[AssetResolver] = None,
        registry: Optional[FlowRegistry] = None,
        poller: Optional[FlowStatusPoller] = None,
        opener: Optional[InteractiveOpener] = None,
        check_trustlines: bool = True,
        retention: Optional[float] = None,
    ):
        """Initialize the orchestrator.

        Collaborators default to instances built on ``api`` and ``session``.

        Args:
            session: Wallet session (must be extension-managed to launch)
            api: Anchor proxy client
            handshake: Auth handshake client
            resolver: Deposit asset resolver
            registry: Registry of tracked flows
            poller: Status poller writing into ``registry``
            opener: Opens interactive pages (defaults to the system browser)
            check_trustlines: Run the advisory trustline check
            retention: Seconds after which tracked flows are pruned
        """
        self.session = session
        self.api = api
        self.handshake = handshake or AuthHandshakeClient(api, session, cache=TokenCache())
        self.resolver = resolver or AssetResolver(api)
        self.registry = registry if registry is not None else FlowRegistry()
        self.poller = poller or FlowStatusPoller(api, self.registry)
        self.opener = opener or BrowserOpener()
        self.check_trustlines = check_trustlines
        self.retention = retention if retention is not None else get_settings().flow_retention_seconds

    async def launch(
        self,
        leg: Optional[RouteLeg],
        route: Route,
        anchor_domain: Optional[str] = None,
    ) -> LaunchResult:
        """Launch an interactive deposit for an anchor leg of ``route``.

        Args:
            leg: Anchor leg of the route (None falls back to the route path)
            route: Route the leg belongs to
            anchor_domain: Anchor to use when the leg carries none

        Raises:
            WalletNotReady, AssetUndeterminable, NoInteractiveUrl, LaunchAborted
        """
        self._require_wallet()
        self._prune()

        domain = (leg.anchor_domain if leg is not None else None) or anchor_domain
        if not domain:
            raise LaunchAborted("Unable to determine anchor domain for this leg", step="anchor")

        asset = self.resolver.resolve(leg, route)
        amount = route.amount
        logger.info(f"Launching deposit of {amount or '?'} {asset} via {domain}")

        advisory = None
        if self.check_trustlines:
            advisory = await self.resolver.check_trustline(asset, route, self.session.address)

        try:
            token = await self.handshake.authenticate(domain)
        except (HandshakeError, WalletError) as e:
            raise LaunchAborted(str(e), step="authenticate") from e

        try:
            response = await self.api.initiate_deposit(
                anchor_domain=domain,
                auth_token=token.token,
                asset_code="native" if asset.is_native else asset.code,
                asset_issuer=asset.issuer,
                amount=amount,
                account=token.address,
            )
        except AnchorApiError as e:
            if e.is_client_error and self.handshake.cache is not None:
                self.handshake.cache.invalidate(domain, token.address)
            raise LaunchAborted(f"Deposit initiation failed: {e}", step="initiate") from e

        if not response.url:
            raise NoInteractiveUrl(f"{domain} did not return an interactive URL")

        opened = await self.opener.open(response.url, response.id)

        record = FlowRecord(
            id=response.id,
            asset=asset,
            amount=amount,
            anchor_domain=domain,
            interactive_url=opened.url,
            auth_token=token,
            status=FlowStatus.PENDING_USER_TRANSFER_START,
            window_opened=opened.opened,
        )
        try:
            self.registry.add(record)
        except ValueError as e:
            raise LaunchAborted(str(e), step="register") from e

        self.poller.start(record.id)

        logger.info(
            f"Deposit flow {record.id} launched for {truncate_address(token.address)} "
            f"({'opened' if opened.opened else 'open manually'})"
        )
        return LaunchResult(record=record, opened=opened.opened, url=opened.url, advisory=advisory)

    def dismiss(self, flow_id: str) -> bool:
        """Stop polling and forget a flow.

        Returns:
            False if the flow was not tracked
        """
        self.poller.stop(flow_id)
        return self.registry.remove(flow_id) is not None

    def get_flow(self, flow_id: str) -> Optional[FlowRecord]:
        return self.registry.get(flow_id)

    def active_flows(self) -> list[FlowRecord]:
        return self.registry.all()

    async def close(self) -> None:
        """Stop all polling loops."""
        await self.poller.close()

    def _require_wallet(self) -> None:
        if not self.session.is_connected:
            raise WalletNotReady("Connect your wallet first to launch interactive flows")
        if self.session.connection_state != ConnectionState.CONNECTED or not self.session.can_sign:
            raise WalletNotReady("An extension-managed wallet is required for interactive flows")

    def _prune(self) -> None:
        for flow_id in self.registry.prune(self.retention):
            self.poller.stop(flow_id)
