"""
Diamond state models.

Read-only loupe snapshot, plan-scoped deployment session and transaction
receipts surfaced to callers.
"""

from typing import Any, Dict, List, Optional, Tuple

from pydantic import BaseModel, ConfigDict, Field, PrivateAttr
from web3 import Web3


def _selector_hex(selector: Any) -> str:
    if isinstance(selector, str):
        return selector.lower()
    return Web3.to_hex(selector).lower()


class FacetRecord(BaseModel):
    """One ``(facetAddress, selectors[])`` entry returned by the loupe."""

    model_config = ConfigDict(frozen=True)

    facet_address: str = Field(..., description="Installed facet address")
    selectors: List[str] = Field(default_factory=list, description="0x selectors")


class DiamondState(BaseModel):
    """
    Snapshot of the diamond's selector routing table at planning time.

    Never mutated by the planner; a fresh snapshot is read for every session.
    """

    model_config = ConfigDict(frozen=True)

    diamond_address: Optional[str] = None
    facets: List[FacetRecord] = Field(default_factory=list)

    _selector_map: Dict[str, str] = PrivateAttr(default_factory=dict)

    def model_post_init(self, __context: Any) -> None:
        for record in self.facets:
            for selector in record.selectors:
                self._selector_map[selector.lower()] = record.facet_address

    @classmethod
    def from_loupe(
        cls, facets: List[Tuple[str, List[Any]]], diamond_address: Optional[str] = None
    ) -> "DiamondState":
        """Build a snapshot from raw loupe output (selectors as bytes or hex)."""
        records = [
            FacetRecord(
                facet_address=Web3.to_checksum_address(address),
                selectors=[_selector_hex(selector) for selector in selectors],
            )
            for address, selectors in facets
        ]
        return cls(diamond_address=diamond_address, facets=records)

    def contains(self, selector: str) -> bool:
        return selector.lower() in self._selector_map

    def facet_of(self, selector: str) -> Optional[str]:
        return self._selector_map.get(selector.lower())

    @property
    def selectors(self) -> List[str]:
        return list(self._selector_map)

    @property
    def selector_map(self) -> Dict[str, str]:
        return dict(self._selector_map)


class DeploymentSession:
    """
    Plan-scoped deployment cache.

    Maps facet names to resolved addresses for the duration of one upgrade
    call. Create one per call; never share it between sessions.
    """

    def __init__(self):
        self.addresses: Dict[str, str] = {}
        self.deployed: List[Tuple[str, str]] = []

    def get(self, name: str) -> Optional[str]:
        return self.addresses.get(name)

    def record(self, name: str, address: str, fresh: bool = False) -> None:
        self.addresses[name] = address
        if fresh:
            self.deployed.append((name, address))

    def __contains__(self, name: str) -> bool:
        return name in self.addresses


class TransactionReceipt(BaseModel):
    """Subset of a mined transaction receipt returned to callers."""

    tx_hash: str = Field(..., description="Transaction hash")
    block_number: Optional[int] = Field(None, description="Block number")
    status: int = Field(..., description="1 on success, 0 when reverted")
    gas_used: Optional[int] = Field(None, description="Gas used")
    contract_address: Optional[str] = Field(None, description="Created contract, if any")

    @property
    def succeeded(self) -> bool:
        return self.status == 1

    @classmethod
    def from_web3(cls, receipt: Dict[str, Any]) -> "TransactionReceipt":
        return cls(
            tx_hash=Web3.to_hex(receipt["transactionHash"]),
            block_number=receipt.get("blockNumber"),
            status=receipt.get("status", 0),
            gas_used=receipt.get("gasUsed"),
            contract_address=receipt.get("contractAddress"),
        )
