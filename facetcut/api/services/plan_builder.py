"""
Plan Builder.
Derives cut entries from a list of target facets by diffing their selectors
against the diamond's current routing table.
"""

from typing import Any, Iterable, List, Optional

from facetcut.core.exceptions import (
    InvalidFacetReferenceError,
    SelectorAlreadyRemovedError,
)
from facetcut.core.logging import LoggerMixin
from facetcut.domain.collaborators import ArtifactProvider
from facetcut.domain.models.cut import (
    AddCut,
    DeployedAnonymousFacet,
    RemoveCut,
    ReplaceCut,
    coerce_facet_ref,
)
from facetcut.domain.models.diamond import DiamondState
from facetcut.infrastructure.blockchain.selectors import (
    is_selector,
    normalize_selector,
    selector_of,
)


class PlanBuilder(LoggerMixin):
    """Builds Add/Replace/Remove entries for whole-facet upgrades."""

    def __init__(self, artifacts: ArtifactProvider):
        """
        Initialize plan builder.

        Args:
            artifacts: Provider of declared facet interfaces
        """
        self.artifacts = artifacts

    def removal_entry(
        self, selectors_to_remove: Iterable[str], state: DiamondState
    ) -> Optional[RemoveCut]:
        """
        Check that every selector to remove is installed and wrap them in one entry.

        Items may be raw selectors or signatures.

        Raises:
            SelectorAlreadyRemovedError: a selector is not routed by the diamond
        """
        selectors = [
            normalize_selector(item) if is_selector(item) else selector_of(item)
            for item in selectors_to_remove
        ]
        if not selectors:
            return None
        for selector in selectors:
            if not state.contains(selector):
                raise SelectorAlreadyRemovedError(selector)
        return RemoveCut(functions=selectors)

    def build(
        self,
        facets: Iterable[Any],
        state: DiamondState,
        selectors_to_remove: Iterable[str] = (),
        quiet: bool = False,
    ) -> List[Any]:
        """
        Build the cut entries that bring each target facet fully up to date.

        Each facet contributes at most one Add entry (selectors not yet
        installed) and one Replace entry (selectors already installed). An
        optional Remove entry comes first.

        Args:
            facets: Target facets in any accepted shape
            state: Loupe snapshot taken for this session
            selectors_to_remove: Selectors or signatures to drop
            quiet: Demote progress output to debug level

        Returns:
            Cut entries, ready for the cut validator
        """
        log = self.progress(quiet)
        entries: List[Any] = []

        removal = self.removal_entry(selectors_to_remove, state)
        if removal is not None:
            entries.append(removal)

        for facet in facets:
            ref = coerce_facet_ref(facet)
            if isinstance(ref, DeployedAnonymousFacet):
                raise InvalidFacetReferenceError(
                    ref.address, "diff upgrades need a facet name to enumerate selectors"
                )

            artifact = self.artifacts.get_artifact(ref.name)
            add: List[str] = []
            replace: List[str] = []
            for selector in artifact.selectors.values():
                if state.contains(selector):
                    replace.append(selector)
                else:
                    add.append(selector)

            log(f"{ref.name}: {len(add)} to add, {len(replace)} to replace")
            if add:
                entries.append(AddCut(facet=ref, functions=add))
            if replace:
                entries.append(ReplaceCut(facet=ref, functions=replace))

        return entries
