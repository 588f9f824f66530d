"""
Facet Deployment Service.
Resolves facet references to on-chain addresses, deploying each named facet
at most once per upgrade session.
"""

from typing import Any, Iterable, List, Optional, Tuple

from facetcut.core.exceptions import DeploymentError, FacetArtifactNotFoundError
from facetcut.core.logging import LoggerMixin, log_facet_deployment
from facetcut.domain.collaborators import ArtifactProvider, ContractDeployer
from facetcut.domain.models.cut import (
    ZERO_ADDRESS,
    DeployedAnonymousFacet,
    DeployedFacet,
    FacetCut,
    FacetCutAction,
    UpgradePlan,
    coerce_facet_ref,
    facet_name,
)
from facetcut.domain.models.diamond import DeploymentSession


class FacetDeploymentService(LoggerMixin):
    """Deployment orchestrator for facets referenced by a plan."""

    def __init__(self, deployer: ContractDeployer, artifacts: ArtifactProvider):
        """
        Initialize facet deployment service.

        Args:
            deployer: Contract deployment collaborator
            artifacts: Provider of deployable facet artifacts
        """
        self.deployer = deployer
        self.artifacts = artifacts

    async def resolve(self, ref, session: DeploymentSession, quiet: bool = False) -> str:
        """
        Resolve one facet reference to an address.

        Already-deployed references are recorded without a transaction. Named
        references are deployed on first use and served from the session
        cache afterwards.

        Raises:
            DeploymentError: the deployment failed; carries session progress
        """
        if isinstance(ref, DeployedAnonymousFacet):
            log_facet_deployment(None, ref.address, reused=True, quiet=quiet)
            return ref.address

        if isinstance(ref, DeployedFacet):
            if ref.name not in session:
                session.record(ref.name, ref.address)
                log_facet_deployment(ref.name, ref.address, reused=True, quiet=quiet)
            return ref.address

        cached = session.get(ref.name)
        if cached:
            return cached

        self.progress(quiet)(f"Deploying {ref.name}")
        try:
            artifact = self.artifacts.get_artifact(ref.name)
            receipt = await self.deployer.deploy_contract(artifact)
        except DeploymentError as e:
            raise DeploymentError(ref.name, deployed=session.deployed, details=e.details) from e
        except FacetArtifactNotFoundError:
            raise
        except Exception as e:
            raise DeploymentError(
                ref.name, deployed=session.deployed, details={"error": str(e)}
            ) from e

        address = receipt.contract_address
        session.record(ref.name, address, fresh=True)
        log_facet_deployment(ref.name, address, tx_hash=receipt.tx_hash, quiet=quiet)
        return address

    async def deploy_plan(
        self, plan: UpgradePlan, session: DeploymentSession, quiet: bool = False
    ) -> List[FacetCut]:
        """
        Bind every cut entry of a validated plan to a deployed facet address.

        Deployments run one at a time, in the order facets are first
        referenced. Remove entries bind to the zero address.
        """
        cuts: List[FacetCut] = []
        for cut in plan.cuts:
            if cut.action is FacetCutAction.REMOVE:
                address = ZERO_ADDRESS
            else:
                address = await self.resolve(cut.facet, session, quiet=quiet)
            cuts.append(
                FacetCut(facet_address=address, action=cut.action, selectors=cut.selectors)
            )
        return cuts

    async def deploy_facets(
        self,
        facets: Iterable[Any],
        session: Optional[DeploymentSession] = None,
        quiet: bool = False,
    ) -> List[Tuple[Optional[str], str]]:
        """
        Deploy or pass through a list of facets.

        Args:
            facets: Facet references in any accepted shape
            session: Deployment cache to use (a fresh one by default)
            quiet: Demote progress output to debug level

        Returns:
            List of (name, address) pairs in input order
        """
        refs = [coerce_facet_ref(facet) for facet in facets]
        session = session if session is not None else DeploymentSession()
        deployed = []
        for ref in refs:
            address = await self.resolve(ref, session, quiet=quiet)
            deployed.append((facet_name(ref), address))
        return deployed
