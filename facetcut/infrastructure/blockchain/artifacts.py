"""
Compiled contract artifacts.

Reads hardhat-style JSON artifacts (``{"contractName", "abi", "bytecode"}``)
and exposes each contract's declared interface, selectors and call encoding.
"""

import json
from pathlib import Path
from typing import Any, Dict, List, Optional

from pydantic import BaseModel, Field
from web3 import Web3

from facetcut.core.config import settings
from facetcut.core.exceptions import FacetArtifactNotFoundError, UsageError
from facetcut.core.logging import get_logger
from facetcut.infrastructure.blockchain.selectors import (
    function_signatures,
    selectors_of,
)

logger = get_logger(__name__)


class FacetArtifact(BaseModel):
    """A deployable contract together with its declared ABI."""

    name: str = Field(..., description="Contract name")
    abi: List[Dict[str, Any]] = Field(..., description="Contract ABI")
    bytecode: str = Field("0x", description="Creation bytecode")

    @property
    def signatures(self) -> List[str]:
        """Every function signature declared by the contract."""
        return function_signatures(self.abi)

    @property
    def selectors(self) -> Dict[str, str]:
        """Routable signature -> selector map (initializer excluded)."""
        return selectors_of(self.abi)

    def encode_call(self, function_name: str, args: Optional[List[Any]] = None) -> str:
        """
        ABI-encode a call to one of the contract's functions.

        Returns:
            0x-prefixed calldata
        """
        contract = Web3().eth.contract(abi=self.abi)
        try:
            return contract.encode_abi(function_name, args=list(args or []))
        except Exception as e:
            raise UsageError(
                f"Can't encode {self.name}.{function_name}({args}): {e}",
                details={"contract": self.name, "function": function_name},
            ) from e


class ArtifactRegistry:
    """Loads contract artifacts by name from a hardhat artifacts directory."""

    def __init__(self, artifacts_dir: Optional[str] = None):
        """
        Initialize artifact registry.

        Args:
            artifacts_dir: Root of the artifacts tree (defaults to settings.ARTIFACTS_DIR)
        """
        self.artifacts_dir = Path(artifacts_dir or settings.ARTIFACTS_DIR)
        self._cache: Dict[str, FacetArtifact] = {}

    def _find(self, name: str) -> Optional[Path]:
        if not self.artifacts_dir.is_dir():
            return None
        for path in sorted(self.artifacts_dir.rglob(f"{name}.json")):
            # hardhat also writes <Name>.dbg.json next to each artifact
            if path.name == f"{name}.json":
                return path
        return None

    def get_artifact(self, name: str) -> FacetArtifact:
        """
        Return the artifact for a contract name.

        Raises:
            FacetArtifactNotFoundError: no artifact file for this name
        """
        if name in self._cache:
            return self._cache[name]

        path = self._find(name)
        if path is None:
            raise FacetArtifactNotFoundError(
                name, details={"artifacts_dir": str(self.artifacts_dir)}
            )

        with open(path, "r") as f:
            data = json.load(f)

        artifact = FacetArtifact(
            name=data.get("contractName", name),
            abi=data["abi"],
            bytecode=data.get("bytecode", "0x"),
        )
        self._cache[name] = artifact
        logger.debug(f"Loaded artifact {name} from {path}")
        return artifact
