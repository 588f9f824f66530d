import os
import sys

import pytest
from httpx import ASGITransport, AsyncClient
from asgi_lifespan import LifespanManager

PROJECT_ROOT = os.path.abspath(os.path.join(os.path.dirname(__file__), ".."))
if PROJECT_ROOT not in sys.path:
    sys.path.insert(0, PROJECT_ROOT)
os.environ.setdefault("ANYIO_BACKEND", "asyncio")

from facetcut.api.services.upgrade_service import UpgradeService  # noqa: E402
from facetcut.infrastructure.blockchain.artifacts import FacetArtifact  # noqa: E402
from facetcut.main import app  # noqa: E402
from tests.fakes import FakeArtifacts, FakeChain, make_artifact  # noqa: E402


@pytest.fixture
def anyio_backend():
    return "asyncio"


@pytest.fixture
def artifacts() -> FakeArtifacts:
    """Facets used across the test suite."""
    return FakeArtifacts(
        [
            make_artifact("FacetX", "foo()", "bar(uint256)"),
            make_artifact("FacetY", "foo()", "baz()"),
            make_artifact("FacetZ", "qux(address)"),
            make_artifact("InitFacet", "init(uint256)"),
            make_artifact("DiamondInit", "init(bytes)", "ping()"),
            FacetArtifact(
                name="Diamond",
                abi=[
                    {
                        "type": "constructor",
                        "inputs": [
                            {
                                "name": "_diamondCut",
                                "type": "tuple[]",
                                "components": [
                                    {"name": "facetAddress", "type": "address"},
                                    {"name": "action", "type": "uint8"},
                                    {"name": "functionSelectors", "type": "bytes4[]"},
                                ],
                            },
                            {"name": "_owner", "type": "address"},
                        ],
                    }
                ],
                bytecode="0x6000",
            ),
        ]
    )


@pytest.fixture
def chain() -> FakeChain:
    return FakeChain()


@pytest.fixture
def service(artifacts, chain) -> UpgradeService:
    return UpgradeService(artifacts=artifacts, deployer=chain, diamond=chain, revalidate=True)


@pytest.fixture
async def async_client():
    """Shared HTTPX async client with FastAPI lifespan handling."""
    async with LifespanManager(app):
        transport = ASGITransport(app=app)
        async with AsyncClient(transport=transport, base_url="http://testserver") as client:
            yield client
