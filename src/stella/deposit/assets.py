"""Deposit asset resolution for an anchor leg of a route."""

import logging
from typing import Optional

from stella.anchor.client import AnchorApiClient, AnchorApiError
from stella.deposit.errors import AssetUndeterminable
from stella.deposit.models import DepositAsset, Route, RouteLeg

logger = logging.getLogger(__name__)


class AssetResolver:
    """Determines which asset the anchor must credit for a route leg.

    Rules, in order:
    1. native -> other: deposit the other asset
    2. other -> native: deposit native
    3. anything else: deposit the leg's destination
    4. no usable leg: deposit the route's last hop
    """

    def __init__(self, api: Optional[AnchorApiClient] = None):
        """Initialize the resolver.

        Args:
            api: Client used for the advisory trustline check (None skips it)
        """
        self.api = api

    def resolve(self, leg: Optional[RouteLeg], route: Route) -> DepositAsset:
        """Resolve the deposit asset.

        Raises:
            AssetUndeterminable: Neither the leg nor the route yields an asset code
        """
        asset = self._from_leg(leg) if leg is not None else None

        if asset is None:
            destination = route.destination
            if destination is not None:
                asset = DepositAsset.from_path_asset(destination)
                if asset is not None:
                    logger.debug(f"Deposit asset taken from route destination: {asset}")

        if asset is None or not asset.code:
            raise AssetUndeterminable("Unable to determine deposit asset")
        return asset

    @staticmethod
    def _from_leg(leg: RouteLeg) -> Optional[DepositAsset]:
        if not leg.has_destination:
            return None

        from_asset = DepositAsset.from_key(leg.from_key)
        to_asset = DepositAsset.from_key(leg.to_key)
        if from_asset is None or to_asset is None:
            return to_asset

        if from_asset.is_native and not to_asset.is_native:
            return to_asset
        if to_asset.is_native and not from_asset.is_native:
            return to_asset
        # Both native or both issued: the destination side of the leg
        return to_asset

    async def check_trustline(
        self, asset: DepositAsset, route: Route, address: str
    ) -> Optional[str]:
        """Advisory check that ``address`` can receive ``asset``.

        Skipped for the native asset and for routes through native, where the
        anchor bridge handles conversion. Never raises.

        Returns:
            Advisory message if a trustline is missing, otherwise None
        """
        if self.api is None or asset.is_native or not asset.issuer:
            return None
        if route.passes_through_native:
            return None

        try:
            result = await self.api.check_trustlines(address, [asset.trustline_key])
        except AnchorApiError as e:
            logger.warning(f"Trustline check failed, proceeding anyway: {e}")
            return None

        if not result.missing_trustlines:
            return None

        logger.info(f"Account lacks a {asset.code} trustline")
        return (
            f"You'll need a {asset.code} trustline to receive funds. "
            "You can add it before the anchor sends the deposit."
        )
