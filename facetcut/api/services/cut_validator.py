"""
Cut Validator.
Checks every proposed cut entry against the declared facet interfaces and the
current diamond state before anything is deployed or submitted.
"""

from typing import Any, Dict, Iterable, List, Optional, Tuple

from facetcut.core.exceptions import (
    DuplicateSelectorError,
    EmptyCutError,
    InvalidFacetReferenceError,
    SelectorAlreadyInstalledError,
    SelectorNotInstalledError,
    SignatureNotOnFacetError,
    StaleDiamondStateError,
)
from facetcut.core.logging import LoggerMixin
from facetcut.domain.collaborators import ArtifactProvider
from facetcut.domain.models.cut import (
    DeployedAnonymousFacet,
    FacetCutAction,
    RemoveCut,
    ResolvedCut,
    UpgradePlan,
    coerce_cut_entry,
    facet_label,
    facet_name,
)
from facetcut.domain.models.diamond import DiamondState
from facetcut.infrastructure.blockchain.artifacts import FacetArtifact
from facetcut.infrastructure.blockchain.selectors import (
    is_selector,
    normalize_selector,
    selector_of,
)

_VERBS = {
    FacetCutAction.ADD: "add",
    FacetCutAction.REPLACE: "replace",
    FacetCutAction.REMOVE: "remove",
}


class CutValidator(LoggerMixin):
    """Validates cut entries and materializes their selectors."""

    def __init__(self, artifacts: ArtifactProvider):
        """
        Initialize cut validator.

        Args:
            artifacts: Provider of declared facet interfaces
        """
        self.artifacts = artifacts

    def parse(self, entries: Iterable[Any]) -> List[Any]:
        """
        Coerce raw cut entries into their typed variants.

        Pure: raises usage errors only and never touches the network.
        """
        return [coerce_cut_entry(entry) for entry in entries]

    def validate(
        self, entries: Iterable[Any], state: DiamondState, quiet: bool = False
    ) -> UpgradePlan:
        """
        Validate a cut against the current diamond state.

        Args:
            entries: Cut entries in any accepted shape
            state: Loupe snapshot taken for this session
            quiet: Demote progress output to debug level

        Returns:
            UpgradePlan with selectors materialized in entry order

        Raises:
            UsageError: malformed entry or unknown action
            CutValidationError: an entry breaks a planning rule
        """
        log = self.progress(quiet)
        interfaces: Dict[str, FacetArtifact] = {}
        seen: Dict[str, str] = {}
        cuts: List[ResolvedCut] = []

        for entry in self.parse(entries):
            cut = self._resolve_entry(entry, interfaces)
            for selector in cut.selectors:
                if selector in seen:
                    raise DuplicateSelectorError(cut.signature_for(selector), selector)
                seen[selector] = cut.signature_for(selector)
                log(
                    "Function",
                    action=cut.action.name,
                    facet=facet_label(cut.facet) if cut.facet else None,
                    selector=selector,
                    signature=cut.signature_for(selector),
                )
            self._check_state(cut, state)
            cuts.append(cut)

        return UpgradePlan(cuts=cuts)

    def check_against_state(self, cuts: Iterable[ResolvedCut], state: DiamondState) -> None:
        """
        Re-run the installed/not-installed rules against a fresh snapshot.

        Raises:
            StaleDiamondStateError: the diamond changed in a conflicting way
        """
        for cut in cuts:
            try:
                self._check_state(cut, state)
            except (SelectorAlreadyInstalledError, SelectorNotInstalledError) as e:
                raise StaleDiamondStateError(e.message, details={"rule": e.error_code}) from e

    def _interface(self, ref, interfaces: Dict[str, FacetArtifact]) -> Optional[FacetArtifact]:
        name = facet_name(ref)
        if name is None:
            return None
        if name not in interfaces:
            interfaces[name] = self.artifacts.get_artifact(name)
        return interfaces[name]

    def _resolve_entry(self, entry, interfaces: Dict[str, FacetArtifact]) -> ResolvedCut:
        if isinstance(entry, RemoveCut):
            selectors, signatures = self._materialize(entry.functions, None, entry.action)
            return ResolvedCut(
                facet=None, action=entry.action, selectors=selectors, signatures=signatures
            )

        if entry.action is FacetCutAction.REPLACE and isinstance(entry.facet, DeployedAnonymousFacet):
            raise InvalidFacetReferenceError(
                entry.facet.address,
                "Replace needs a facet name so its declared interface can be checked",
            )

        artifact = self._interface(entry.facet, interfaces)
        selectors, signatures = self._materialize(entry.functions, artifact, entry.action)
        return ResolvedCut(
            facet=entry.facet, action=entry.action, selectors=selectors, signatures=signatures
        )

    def _materialize(
        self,
        functions: List[str],
        artifact: Optional[FacetArtifact],
        action: FacetCutAction,
    ) -> Tuple[List[str], Dict[str, str]]:
        """Turn signatures / raw selectors into ordered unique selectors."""
        if not functions:
            raise EmptyCutError(_VERBS[action])

        declared: Dict[str, str] = {}
        if artifact is not None:
            declared = {selector_of(sig): sig for sig in artifact.signatures}

        selectors: List[str] = []
        signatures: Dict[str, str] = {}
        for function in functions:
            if is_selector(function):
                selector = normalize_selector(function)
                signature = declared.get(selector, selector)
            else:
                selector = selector_of(function)
                signature = function

            if artifact is not None and selector not in declared:
                raise SignatureNotOnFacetError(_VERBS[action], signature, artifact.name)
            if selector in signatures:
                raise DuplicateSelectorError(signature, selector)

            selectors.append(selector)
            signatures[selector] = signature
        return selectors, signatures

    def _check_state(self, cut: ResolvedCut, state: DiamondState) -> None:
        verb = _VERBS[cut.action]
        for selector in cut.selectors:
            installed = state.contains(selector)
            if cut.action is FacetCutAction.ADD and installed:
                raise SelectorAlreadyInstalledError(
                    cut.signature_for(selector),
                    selector,
                    details={"installed_facet": state.facet_of(selector)},
                )
            if cut.action is not FacetCutAction.ADD and not installed:
                raise SelectorNotInstalledError(verb, cut.signature_for(selector), selector)
