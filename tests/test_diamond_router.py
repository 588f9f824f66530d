import pytest

from facetcut.api.services.upgrade_service import upgrade_service
from facetcut.core.exceptions import SelectorAlreadyInstalledError, StaleDiamondStateError
from facetcut.domain.models.cut import FacetCutAction, NamedFacet, ResolvedCut, UpgradePlan
from facetcut.domain.models.diamond import DiamondState, TransactionReceipt
from facetcut.infrastructure.blockchain.selectors import selector_of
from tests.fakes import DIAMOND, OLD_FACET

pytestmark = pytest.mark.anyio("asyncio")


@pytest.mark.anyio
async def test_selectors_endpoint(async_client):
    response = await async_client.get(
        "/api/v1/diamond/selectors",
        params=[("signature", "transfer(address,uint256)"), ("signature", "balanceOf(address)")],
    )

    assert response.status_code == 200
    body = response.json()
    assert body["success"] is True
    assert body["data"] == [
        {"signature": "transfer(address,uint256)", "selector": "0xa9059cbb"},
        {"signature": "balanceOf(address)", "selector": "0x70a08231"},
    ]


@pytest.mark.anyio
async def test_state_endpoint_returns_loupe_snapshot(async_client, monkeypatch):
    async def fake_get_diamond_state(diamond_address):
        assert diamond_address == DIAMOND
        return DiamondState.from_loupe([(OLD_FACET, ["0xc2985578"])], diamond_address=DIAMOND)

    monkeypatch.setattr(upgrade_service, "get_diamond_state", fake_get_diamond_state)

    response = await async_client.get(f"/api/v1/diamond/{DIAMOND}/state")

    assert response.status_code == 200
    body = response.json()
    assert body["data"]["facets"] == [{"facet_address": OLD_FACET, "selectors": ["0xc2985578"]}]


@pytest.mark.anyio
async def test_upgrade_endpoint_delegates_to_service(async_client, monkeypatch):
    """Ensure /upgrade passes one parsed request to the service and returns its receipt."""
    calls = []

    async def fake_upgrade(*args, **kwargs):
        calls.append((args, kwargs))
        return TransactionReceipt(tx_hash="0x" + "ab" * 32, block_number=7, status=1)

    monkeypatch.setattr(upgrade_service, "upgrade", fake_upgrade)

    response = await async_client.post(
        "/api/v1/diamond/upgrade",
        json={
            "diamond_address": DIAMOND.lower(),
            "cuts": [
                {"facet": "FacetX", "action": 0, "functions": ["foo()"]},
                {"facet": None, "action": "Remove", "functions": ["bar()"]},
            ],
        },
    )

    assert response.status_code == 200
    body = response.json()
    assert body["success"] is True
    assert body["data"]["tx_hash"] == "0x" + "ab" * 32

    [(args, kwargs)] = calls
    assert kwargs == {}
    [request] = args
    assert request.diamond_address == DIAMOND
    assert request.cuts[0].facet == NamedFacet(name="FacetX")
    assert request.cuts[1].action is FacetCutAction.REMOVE


@pytest.mark.anyio
async def test_reverted_upgrade_reports_failure(async_client, monkeypatch):
    async def fake_upgrade_with_new_facets(request):
        return TransactionReceipt(tx_hash="0x" + "ef" * 32, status=0)

    monkeypatch.setattr(upgrade_service, "upgrade_with_new_facets", fake_upgrade_with_new_facets)

    response = await async_client.post(
        "/api/v1/diamond/upgrade-with-new-facets",
        json={"diamond_address": DIAMOND, "facets": ["FacetX"]},
    )

    assert response.status_code == 200
    body = response.json()
    assert body["success"] is False
    assert body["data"]["status"] == 0


@pytest.mark.anyio
async def test_plan_endpoint_returns_validated_plan(async_client, monkeypatch):
    foo = selector_of("foo()")

    async def fake_plan(request):
        return UpgradePlan(
            cuts=[
                ResolvedCut(
                    facet=NamedFacet(name="FacetX"),
                    action=FacetCutAction.ADD,
                    selectors=[foo],
                    signatures={foo: "foo()"},
                )
            ]
        )

    monkeypatch.setattr(upgrade_service, "plan_upgrade_with_new_facets", fake_plan)

    response = await async_client.post(
        "/api/v1/diamond/upgrade-with-new-facets/plan",
        json={"diamond_address": DIAMOND, "facets": ["FacetX"]},
    )

    assert response.status_code == 200
    [cut] = response.json()["data"]["cuts"]
    assert cut["facet"] == {"kind": "named", "name": "FacetX"}
    assert cut["action"] == 0
    assert cut["selectors"] == [foo]


@pytest.mark.anyio
@pytest.mark.parametrize(
    "error, status_code",
    [
        (SelectorAlreadyInstalledError("foo()", "0xc2985578"), 409),
        (StaleDiamondStateError("foo() was added"), 409),
    ],
)
async def test_validation_errors_are_mapped(async_client, monkeypatch, error, status_code):
    async def fake_upgrade(request):
        raise error

    monkeypatch.setattr(upgrade_service, "upgrade", fake_upgrade)

    response = await async_client.post(
        "/api/v1/diamond/upgrade",
        json={"diamond_address": DIAMOND, "cuts": [["FacetX", 0, ["foo()"]]]},
    )

    assert response.status_code == status_code
    body = response.json()
    assert body["success"] is False
    assert body["error_code"] == error.error_code
    assert body["message"] == error.message


@pytest.mark.anyio
async def test_unknown_action_is_rejected_before_service(async_client, monkeypatch):
    async def fake_upgrade(request):
        raise AssertionError("service must not be reached")

    monkeypatch.setattr(upgrade_service, "upgrade", fake_upgrade)

    response = await async_client.post(
        "/api/v1/diamond/upgrade",
        json={"diamond_address": DIAMOND, "cuts": [{"facet": "FacetX", "action": 5, "functions": ["foo()"]}]},
    )

    assert response.status_code == 400
    assert response.json()["error_code"] == "INVALID_CUT_ACTION"


@pytest.mark.anyio
async def test_health(async_client):
    response = await async_client.get("/health")

    assert response.status_code == 200
    assert response.json()["status"] == "healthy"
