"""
Diamond Client.
Reads the loupe and submits diamondCut transactions on a deployed diamond.
"""

from typing import Any, Dict, List, Optional, Tuple

from facetcut.core.logging import get_logger
from facetcut.domain.models.cut import FacetCut, InitCall
from facetcut.domain.models.diamond import TransactionReceipt
from facetcut.infrastructure.blockchain.contract_client import ChainClient

logger = get_logger(__name__)

# IDiamondLoupe.facets()
DIAMOND_LOUPE_ABI = [
    {
        "inputs": [],
        "name": "facets",
        "outputs": [
            {
                "components": [
                    {"name": "facetAddress", "type": "address"},
                    {"name": "functionSelectors", "type": "bytes4[]"},
                ],
                "name": "facets_",
                "type": "tuple[]",
            }
        ],
        "stateMutability": "view",
        "type": "function",
    }
]

# IDiamondCut.diamondCut(FacetCut[], address, bytes)
DIAMOND_CUT_ABI = [
    {
        "inputs": [
            {
                "components": [
                    {"name": "facetAddress", "type": "address"},
                    {"name": "action", "type": "uint8"},
                    {"name": "functionSelectors", "type": "bytes4[]"},
                ],
                "name": "_diamondCut",
                "type": "tuple[]",
            },
            {"name": "_init", "type": "address"},
            {"name": "_calldata", "type": "bytes"},
        ],
        "name": "diamondCut",
        "outputs": [],
        "stateMutability": "nonpayable",
        "type": "function",
    }
]


class DiamondClient:
    """Loupe reader and diamondCut writer backed by a ChainClient."""

    def __init__(self, chain_client: ChainClient):
        self.chain_client = chain_client

    async def facets(self, diamond_address: str) -> List[Tuple[str, List[Any]]]:
        """
        Query the loupe for every ``(facetAddress, selectors[])`` pair.

        Raises:
            ContractCallFailedError: the loupe could not be read
        """
        result = await self.chain_client.call_function(
            diamond_address, DIAMOND_LOUPE_ABI, "facets"
        )
        return [(facet[0], list(facet[1])) for facet in result]

    async def diamond_cut(
        self,
        diamond_address: str,
        cuts: List[FacetCut],
        init: InitCall,
        overrides: Optional[Dict[str, Any]] = None,
    ) -> TransactionReceipt:
        """
        Submit one atomic diamondCut transaction and wait for its receipt.

        A reverted cut comes back as a receipt with status 0.
        """
        contract = self.chain_client.contract_at(diamond_address, DIAMOND_CUT_ABI)
        call = contract.functions.diamondCut(
            [cut.as_contract_arg() for cut in cuts],
            init.facet_address,
            init.calldata,
        )
        return await self.chain_client.send_transaction(
            call, overrides=overrides, label="diamondCut"
        )
