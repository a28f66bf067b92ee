"""Command-line runner for the deposit client.

Usage:
    python -m stella status
    python -m stella connect
    python -m stella manual --address G...
    python -m stella disconnect
    python -m stella deposit --anchor testanchor.stellar.org \\
        --from XLM:native --to SRT:G... --amount 5 --watch

Environment variables (prefix STELLA_):
    API_BASE_URL: anchor proxy API (default: http://127.0.0.1:3001)
    DRY_RUN: use the simulated wallet extension (default: true)
    DRY_RUN_ADDRESS: account the simulated extension approves
    POLL_INTERVAL_SECONDS / POLL_TIMEOUT_SECONDS: status polling cadence
"""

import argparse
import asyncio
import logging
import sys
from typing import Optional

from stella.anchor.client import AnchorApiClient
from stella.config import get_settings
from stella.deposit.errors import LaunchError
from stella.deposit.models import DepositAsset, FlowRecord, PathAsset, Route, RouteLeg
from stella.deposit.opener import BrowserOpener, ManualOpener
from stella.deposit.orchestrator import DepositFlowOrchestrator
from stella.deposit.poller import FlowStatusPoller
from stella.deposit.registry import FlowRegistry
from stella.storage.database import close_db, init_db
from stella.wallet.base import WalletError, WalletExtension
from stella.wallet.dry_run import DryRunExtension
from stella.wallet.session import WalletSession
from stella.wallet.store import SessionStore

logger = logging.getLogger(__name__)


def build_extension() -> Optional[WalletExtension]:
    """Extension available to a terminal process.

    Only the simulated extension can be reached outside a browser.
    """
    settings = get_settings()
    if settings.dry_run and settings.dry_run_address:
        return DryRunExtension(settings.dry_run_address, pre_approved=True)
    return None


def build_route(from_key: str, to_key: str, amount: str) -> Route:
    """Single-leg route whose path is the leg's two assets."""
    path = []
    for key in (from_key, to_key):
        asset = DepositAsset.from_key(key)
        if asset is not None:
            path.append(PathAsset(code=asset.code, issuer=asset.issuer, is_native=asset.is_native))
    return Route(path=path, send_amount=amount)


class DepositRunner:
    """Runs one client command against the configured backend."""

    def __init__(self, open_browser: bool = True):
        self.settings = get_settings()
        self.session = WalletSession(build_extension(), store=SessionStore())
        self.api = AnchorApiClient()
        self.registry = FlowRegistry()
        self.poller = FlowStatusPoller(self.api, self.registry, on_status_change=self._report)
        self.orchestrator = DepositFlowOrchestrator(
            self.session,
            self.api,
            registry=self.registry,
            poller=self.poller,
            opener=BrowserOpener() if open_browser else ManualOpener(),
        )

    async def start(self) -> None:
        await init_db()
        await self.session.restore()

    async def stop(self) -> None:
        await self.orchestrator.close()
        await close_db()

    def describe_session(self) -> str:
        s = self.session
        lines = [
            f"state:     {s.connection_state.value}",
            f"mode:      {s.session_mode.value}",
            f"address:   {s.address or '(none)'}",
            f"extension: {'available' if s.capability_available else 'not detected'}",
        ]
        if s.last_error:
            lines.append(f"error:     {s.last_error}")
        return "\n".join(lines)

    async def deposit(
        self,
        anchor: str,
        from_key: str,
        to_key: str,
        amount: str,
        watch: bool = False,
    ) -> FlowRecord:
        """Launch a deposit for a single anchor leg."""
        if not self.session.can_sign:
            await self.session.connect()

        leg = RouteLeg.model_validate(
            {"from": from_key, "to": to_key, "type": "anchor_bridge", "details": {"anchorDomain": anchor}}
        )
        route = build_route(from_key, to_key, amount)
        result = await self.orchestrator.launch(leg, route)

        if result.advisory:
            print(f"Note: {result.advisory}")
        if not result.opened:
            print(f"Open the anchor page to continue: {result.url}")
        print(f"Flow {result.record.id} started ({result.record.status})")

        if watch:
            await self.poller.wait(result.record.id)
        return result.record

    @staticmethod
    def _report(record: FlowRecord, previous: str) -> None:
        print(f"Flow {record.id}: {previous} -> {record.status}")


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(prog="stella", description="Stella deposit client")
    sub = parser.add_subparsers(dest="command", required=True)

    sub.add_parser("status", help="Show the wallet session")
    sub.add_parser("connect", help="Connect through the wallet extension")
    sub.add_parser("disconnect", help="Forget the wallet session")

    manual = sub.add_parser("manual", help="Use a manually entered address (no signing)")
    manual.add_argument("--address", required=True, help="Public address")

    deposit = sub.add_parser("deposit", help="Launch an interactive deposit")
    deposit.add_argument("--anchor", required=True, help="Anchor domain")
    deposit.add_argument("--from", dest="from_key", default="XLM:native", help="Leg source asset key")
    deposit.add_argument("--to", dest="to_key", required=True, help="Leg destination asset key")
    deposit.add_argument("--amount", required=True, help="Amount to deposit")
    deposit.add_argument("--watch", action="store_true", help="Wait until the flow finishes")
    deposit.add_argument("--no-browser", action="store_true", help="Print the URL instead of opening it")
    return parser


async def run(args: argparse.Namespace) -> int:
    runner = DepositRunner(open_browser=not getattr(args, "no_browser", False))
    await runner.start()
    try:
        if args.command == "connect":
            await runner.session.connect()
        elif args.command == "manual":
            await runner.session.set_manual_keys(args.address)
        elif args.command == "disconnect":
            await runner.session.disconnect()
        elif args.command == "deposit":
            await runner.deposit(args.anchor, args.from_key, args.to_key, args.amount, watch=args.watch)
        print(runner.describe_session())
        return 0
    except (WalletError, LaunchError) as e:
        logger.error(str(e))
        print(f"Error: {e}", file=sys.stderr)
        return 1
    finally:
        await runner.stop()


def main(argv: Optional[list[str]] = None) -> int:
    """Main entry point."""
    settings = get_settings()
    logging.basicConfig(
        level=logging.DEBUG if settings.debug else logging.INFO,
        format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
    )
    logger.debug(f"Settings: {settings.get_safe_dict()}")

    args = build_parser().parse_args(argv)
    try:
        return asyncio.run(run(args))
    except KeyboardInterrupt:
        logger.info("Interrupted")
        return 130
