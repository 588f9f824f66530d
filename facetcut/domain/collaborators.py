"""
Interfaces of the external collaborators the upgrade engine depends on.

The chain-backed implementations live in facetcut.infrastructure.blockchain;
tests provide in-memory stand-ins.
"""

from typing import Any, Dict, List, Optional, Protocol, Tuple

from facetcut.domain.models.diamond import TransactionReceipt
from facetcut.infrastructure.blockchain.artifacts import FacetArtifact


class ArtifactProvider(Protocol):
    """Facet source/ABI provider."""

    def get_artifact(self, name: str) -> FacetArtifact: ...


class ContractDeployer(Protocol):
    """Deploys a contract and waits until it is confirmed."""

    async def deploy_contract(
        self,
        artifact: FacetArtifact,
        args: Optional[List[Any]] = None,
        overrides: Optional[Dict[str, Any]] = None,
    ) -> TransactionReceipt: ...


class DiamondReader(Protocol):
    """Loupe read access to a deployed diamond."""

    async def facets(self, diamond_address: str) -> List[Tuple[str, List[Any]]]: ...

