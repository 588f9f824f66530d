"""
Diamond State Repository.
Reads the current selector -> facet routing table of a deployed diamond.
"""

from facetcut.core.logging import get_logger
from facetcut.domain.collaborators import DiamondReader
from facetcut.domain.models.diamond import DiamondState

logger = get_logger(__name__)


class DiamondStateRepository:
    """Repository for diamond loupe snapshots."""

    def __init__(self, reader: DiamondReader):
        """
        Initialize diamond state repository.

        Args:
            reader: Loupe read collaborator
        """
        self.reader = reader

    async def read_state(self, diamond_address: str) -> DiamondState:
        """
        Take a snapshot of the diamond's installed facets.

        Read failures propagate: planning without ground truth is never safe.

        Args:
            diamond_address: Diamond proxy address

        Returns:
            DiamondState snapshot
        """
        facets = await self.reader.facets(diamond_address)
        state = DiamondState.from_loupe(facets, diamond_address=diamond_address)
        logger.info(
            f"Read diamond state for {diamond_address}: "
            f"{len(state.facets)} facets, {len(state.selectors)} selectors"
        )
        return state
