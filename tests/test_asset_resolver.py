"""Tests for deposit asset resolution and the trustline advisory."""

import pytest

from conftest import ADDRESS, SRT_ISSUER
from stella.deposit.assets import AssetResolver
from stella.deposit.errors import AssetUndeterminable
from stella.deposit.models import DepositAsset, Route, RouteLeg

USDC_ISSUER = "GBBD47IF6LWK7P7MDEVSCWR7DPUWV3NY3DTQEVFL4NAT4AQH3ZLLFLA5"


def make_route(*hops, **kwargs) -> Route:
    return Route.model_validate({"path": list(hops), **kwargs})


SRT = {"code": "SRT", "issuer": SRT_ISSUER}
USDC = {"code": "USDC", "issuer": USDC_ISSUER}
XLM = {"code": "XLM", "isNative": True}


class TestDepositAsset:
    """Tests for asset keys."""

    def test_from_key_issued(self):
        asset = DepositAsset.from_key(f"SRT:{SRT_ISSUER}")
        assert asset == DepositAsset(code="SRT", issuer=SRT_ISSUER)
        assert asset.trustline_key == f"stellar:SRT:{SRT_ISSUER}"

    def test_from_key_native(self):
        asset = DepositAsset.from_key("XLM:native")
        assert asset.is_native is True
        assert asset.issuer is None
        assert asset.asset_key == "XLM:native"

    def test_from_key_empty(self):
        assert DepositAsset.from_key("") is None
        assert DepositAsset.from_key(None) is None


class TestResolve:
    """Tests for the leg rules."""

    def test_native_to_issued(self):
        leg = RouteLeg.model_validate({"from": "XLM:native", "to": f"SRT:{SRT_ISSUER}"})

        asset = AssetResolver().resolve(leg, make_route(XLM, SRT))

        assert asset.code == "SRT"
        assert asset.issuer == SRT_ISSUER

    def test_issued_to_native(self):
        leg = RouteLeg.model_validate({"from": f"SRT:{SRT_ISSUER}", "to": "XLM:native"})

        asset = AssetResolver().resolve(leg, make_route(SRT, XLM))

        assert asset.is_native is True

    def test_issued_to_issued(self):
        leg = RouteLeg.model_validate({"from": f"USDC:{USDC_ISSUER}", "to": f"SRT:{SRT_ISSUER}"})

        asset = AssetResolver().resolve(leg, make_route(USDC, SRT))

        assert asset.code == "SRT"

    def test_leg_with_only_destination(self):
        leg = RouteLeg.model_validate({"to": f"SRT:{SRT_ISSUER}", "details": {"anchorDomain": "a.b"}})

        asset = AssetResolver().resolve(leg, make_route())

        assert asset == DepositAsset(code="SRT", issuer=SRT_ISSUER)

    def test_leg_with_only_source_uses_route_destination(self):
        leg = RouteLeg.model_validate({"from": "XLM:native"})

        asset = AssetResolver().resolve(leg, make_route(XLM, USDC))

        assert asset.code == "USDC"

    def test_generic_leg_uses_route_destination(self):
        leg = RouteLeg.model_validate({"type": "anchor", "details": {"anchorDomain": "a.b"}})

        asset = AssetResolver().resolve(leg, make_route(XLM, USDC))

        assert asset.code == "USDC"
        assert asset.issuer == USDC_ISSUER

    def test_missing_leg_uses_route_destination(self):
        asset = AssetResolver().resolve(None, make_route(USDC, SRT))
        assert asset.code == "SRT"

    def test_undeterminable(self):
        with pytest.raises(AssetUndeterminable):
            AssetResolver().resolve(RouteLeg(), make_route())

    def test_destination_without_code(self):
        with pytest.raises(AssetUndeterminable):
            AssetResolver().resolve(None, make_route({"code": ""}))


class TestTrustlineAdvisory:
    """Tests for the advisory trustline check."""

    @pytest.mark.asyncio
    async def test_missing_trustline(self, api, fake_api):
        fake_api.missing_trustlines = [f"stellar:SRT:{SRT_ISSUER}"]
        asset = DepositAsset(code="SRT", issuer=SRT_ISSUER)

        advisory = await AssetResolver(api).check_trustline(asset, make_route(USDC, SRT), ADDRESS)

        assert "SRT trustline" in advisory
        assert fake_api.body(0) == {
            "userPublicKey": ADDRESS,
            "assetKeys": [f"stellar:SRT:{SRT_ISSUER}"],
        }

    @pytest.mark.asyncio
    async def test_trustline_present(self, api, fake_api):
        asset = DepositAsset(code="SRT", issuer=SRT_ISSUER)

        assert await AssetResolver(api).check_trustline(asset, make_route(USDC, SRT), ADDRESS) is None

    @pytest.mark.asyncio
    async def test_skipped_for_native(self, api, fake_api):
        asset = DepositAsset(code="XLM", is_native=True)

        assert await AssetResolver(api).check_trustline(asset, make_route(SRT, XLM), ADDRESS) is None
        assert fake_api.requests == []

    @pytest.mark.asyncio
    async def test_skipped_for_route_through_native(self, api, fake_api):
        asset = DepositAsset(code="SRT", issuer=SRT_ISSUER)

        await AssetResolver(api).check_trustline(asset, make_route(USDC, XLM, SRT), ADDRESS)

        assert fake_api.requests == []

    @pytest.mark.asyncio
    async def test_check_failure_is_ignored(self, api, fake_api):
        fake_api.fail("/api/trustlines/check", 503)
        asset = DepositAsset(code="SRT", issuer=SRT_ISSUER)

        assert await AssetResolver(api).check_trustline(asset, make_route(USDC, SRT), ADDRESS) is None
