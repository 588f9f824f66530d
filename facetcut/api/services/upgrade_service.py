"""
Upgrade Service Layer.
Public diamond operations: facet deployment, diamond deployment, manual and
diff-based upgrades. Every operation validates its whole plan before the first
transaction is sent and runs its transactions strictly one after another.
"""

import functools
from collections.abc import Mapping
from typing import Any, Dict, List, Optional

from pydantic import ValidationError

from facetcut.api.dto.diamond_dto import (
    DeployDiamondRequestDTO,
    DeployedFacetDTO,
    DeployFacetsRequestDTO,
    DiamondDeploymentDTO,
    UpgradeRequestDTO,
    UpgradeWithNewFacetsRequestDTO,
)
from facetcut.api.services.cut_validator import CutValidator
from facetcut.api.services.deployment_service import FacetDeploymentService
from facetcut.api.services.plan_builder import PlanBuilder
from facetcut.core.config import settings
from facetcut.core.exceptions import (
    DeploymentError,
    InvalidArgumentCountError,
    InvalidFacetReferenceError,
    UsageError,
)
from facetcut.core.logging import get_logger, log_diamond_cut
from facetcut.domain.models.cut import (
    AddCut,
    DeployedAnonymousFacet,
    FacetCut,
    InitCall,
    UpgradePlan,
    facet_name,
)
from facetcut.domain.models.diamond import (
    DeploymentSession,
    DiamondState,
    TransactionReceipt,
)
from facetcut.domain.repositories.diamond_state_repository import (
    DiamondStateRepository,
)
from facetcut.infrastructure.blockchain.artifacts import ArtifactRegistry
from facetcut.infrastructure.blockchain.contract_client import ChainClient
from facetcut.infrastructure.blockchain.diamond_client import DiamondClient

logger = get_logger(__name__)


def single_config(request_cls):
    """
    Require exactly one configuration argument: a request DTO or a mapping.

    Any other call shape is rejected before the operation touches the network.
    """

    def decorator(func):
        @functools.wraps(func)
        async def wrapper(self, *args, **kwargs):
            if kwargs or len(args) != 1:
                raise InvalidArgumentCountError(len(args) + len(kwargs))

            request = args[0]
            if isinstance(request, Mapping):
                try:
                    request = request_cls.model_validate(dict(request))
                except ValidationError as e:
                    raise UsageError(
                        f"Invalid {request_cls.__name__}",
                        details={"errors": e.errors(include_url=False)},
                    ) from e
            elif not isinstance(request, request_cls):
                raise UsageError(
                    f"Expected {request_cls.__name__} or a mapping, got {type(request).__name__}"
                )
            return await func(self, request)

        return wrapper

    return decorator


class UpgradeService:
    """Service class for diamond deployment and upgrades."""

    def __init__(
        self,
        artifacts=None,
        deployer=None,
        diamond=None,
        revalidate: Optional[bool] = None,
    ):
        """
        Initialize upgrade service.

        Collaborators left as None are built from settings on first use.

        Args:
            artifacts: Facet source/ABI provider
            deployer: Contract deployer
            diamond: Loupe reader and diamondCut writer
            revalidate: Re-check the plan against fresh state before submitting
        """
        self._artifacts = artifacts
        self._deployer = deployer
        self._diamond = diamond
        self.revalidate = (
            settings.REVALIDATE_BEFORE_SUBMIT if revalidate is None else revalidate
        )
        self._chain_client: Optional[ChainClient] = None

    # Collaborators

    def _get_chain_client(self) -> ChainClient:
        """Get or create the chain client."""
        if not self._chain_client:
            self._chain_client = ChainClient()
        return self._chain_client

    @property
    def artifacts(self):
        if self._artifacts is None:
            self._artifacts = ArtifactRegistry()
        return self._artifacts

    @property
    def deployer(self):
        if self._deployer is None:
            self._deployer = self._get_chain_client()
        return self._deployer

    @property
    def diamond(self):
        if self._diamond is None:
            self._diamond = DiamondClient(self._get_chain_client())
        return self._diamond

    @property
    def validator(self) -> CutValidator:
        return CutValidator(self.artifacts)

    @property
    def plan_builder(self) -> PlanBuilder:
        return PlanBuilder(self.artifacts)

    @property
    def deployments(self) -> FacetDeploymentService:
        return FacetDeploymentService(self.deployer, self.artifacts)

    @property
    def state_repository(self) -> DiamondStateRepository:
        return DiamondStateRepository(self.diamond)

    # Public operations

    async def get_diamond_state(self, diamond_address: Optional[str] = None) -> DiamondState:
        """Read the diamond's installed facets and selectors."""
        return await self.state_repository.read_state(self._diamond_address(diamond_address))

    @single_config(DeployFacetsRequestDTO)
    async def deploy_facets(self, request: DeployFacetsRequestDTO) -> List[DeployedFacetDTO]:
        """
        Deploy named facets and pass through already-deployed ones.

        Returns:
            One DeployedFacetDTO per input facet, in input order
        """
        deployed = await self.deployments.deploy_facets(request.facets, quiet=request.quiet)
        return [DeployedFacetDTO(name=name, address=address) for name, address in deployed]

    @single_config(DeployDiamondRequestDTO)
    async def deploy(self, request: DeployDiamondRequestDTO) -> DiamondDeploymentDTO:
        """
        Deploy facets, then a diamond whose constructor adds every facet.

        The constructor receives ``(cut, [owner], *constructor_args)``.
        """
        for ref in request.facets:
            if isinstance(ref, DeployedAnonymousFacet):
                raise InvalidFacetReferenceError(
                    ref.address, "diamond deployment needs facet names to enumerate selectors"
                )

        diamond_artifact = self.artifacts.get_artifact(request.diamond_name)
        entries = [
            AddCut(facet=ref, functions=list(self.artifacts.get_artifact(ref.name).selectors.values()))
            for ref in request.facets
        ]
        plan = self.validator.validate(entries, DiamondState(), quiet=request.quiet)

        session = DeploymentSession()
        cuts = await self.deployments.deploy_plan(plan, session, quiet=request.quiet)

        args: List[Any] = [[cut.as_contract_arg() for cut in cuts]]
        if request.owner:
            args.append(request.owner)
        args.extend(request.constructor_args)

        log_diamond_cut(
            "(constructor)",
            [cut.as_log_dict() for cut in cuts],
            InitCall.none().facet_address,
            InitCall.none().calldata,
            quiet=request.quiet,
        )
        logger.info(f"Deploying {request.diamond_name}")
        try:
            receipt = await self.deployer.deploy_contract(
                diamond_artifact, args, request.tx_overrides or None
            )
        except DeploymentError as e:
            raise DeploymentError(
                request.diamond_name, deployed=session.deployed, details=e.details
            ) from e

        logger.info(
            f"{request.diamond_name} deployed: {receipt.contract_address}",
            tx_hash=receipt.tx_hash,
        )
        return DiamondDeploymentDTO(
            diamond_name=request.diamond_name,
            address=receipt.contract_address,
            tx_hash=receipt.tx_hash,
            facets=[
                DeployedFacetDTO(name=facet_name(cut.facet), address=deployed.facet_address)
                for cut, deployed in zip(plan.cuts, cuts)
            ],
        )

    @single_config(UpgradeRequestDTO)
    async def plan_upgrade(self, request: UpgradeRequestDTO) -> UpgradePlan:
        """Validate a manual upgrade without deploying or submitting anything."""
        plan, _ = await self._plan_manual(request)
        return plan

    @single_config(UpgradeRequestDTO)
    async def upgrade(self, request: UpgradeRequestDTO) -> TransactionReceipt:
        """
        Apply explicit cut entries to a diamond.

        Validates every entry against the current state, deploys the facets it
        names (once each), resolves the optional initializer and submits one
        diamondCut transaction. A reverted cut is returned, not raised.
        """
        plan, diamond_address = await self._plan_manual(request)
        return await self._execute(
            diamond_address,
            plan,
            request.init_facet,
            request.init_args,
            request.tx_overrides,
            request.quiet,
        )

    @single_config(UpgradeWithNewFacetsRequestDTO)
    async def plan_upgrade_with_new_facets(
        self, request: UpgradeWithNewFacetsRequestDTO
    ) -> UpgradePlan:
        """Build and validate a diff-based upgrade without deploying anything."""
        plan, _ = await self._plan_diff(request)
        return plan

    @single_config(UpgradeWithNewFacetsRequestDTO)
    async def upgrade_with_new_facets(
        self, request: UpgradeWithNewFacetsRequestDTO
    ) -> TransactionReceipt:
        """
        Bring whole facets up to date on a diamond.

        Each facet's selectors are added when new and replaced when already
        installed; ``selectors_to_remove`` are removed first.
        """
        plan, diamond_address = await self._plan_diff(request)
        return await self._execute(
            diamond_address,
            plan,
            request.init_facet,
            request.init_args,
            request.tx_overrides,
            request.quiet,
        )

    # Planning

    def _diamond_address(self, diamond_address: Optional[str]) -> str:
        address = diamond_address or settings.DIAMOND_ADDRESS
        if not address:
            raise UsageError("diamond_address not given and DIAMOND_ADDRESS not configured")
        return address

    def _check_init_facet(self, init_facet) -> None:
        if init_facet is None:
            return
        if isinstance(init_facet, DeployedAnonymousFacet):
            raise InvalidFacetReferenceError(
                init_facet.address, "initializer needs a facet name to encode init"
            )
        artifact = self.artifacts.get_artifact(init_facet.name)
        if not any(signature.startswith("init(") for signature in artifact.signatures):
            raise UsageError(f"{init_facet.name} has no init function")

    async def _plan_manual(self, request: UpgradeRequestDTO):
        diamond_address = self._diamond_address(request.diamond_address)
        self._check_init_facet(request.init_facet)
        state = await self.state_repository.read_state(diamond_address)
        plan = self.validator.validate(request.cuts, state, quiet=request.quiet)
        return plan, diamond_address

    async def _plan_diff(self, request: UpgradeWithNewFacetsRequestDTO):
        diamond_address = self._diamond_address(request.diamond_address)
        self._check_init_facet(request.init_facet)
        state = await self.state_repository.read_state(diamond_address)
        entries = self.plan_builder.build(
            request.facets,
            state,
            selectors_to_remove=request.selectors_to_remove,
            quiet=request.quiet,
        )
        plan = self.validator.validate(entries, state, quiet=request.quiet)
        return plan, diamond_address

    # Execution

    async def _execute(
        self,
        diamond_address: str,
        plan: UpgradePlan,
        init_facet,
        init_args: List[Any],
        tx_overrides: Dict[str, Any],
        quiet: bool,
    ) -> TransactionReceipt:
        session = DeploymentSession()
        cuts = await self.deployments.deploy_plan(plan, session, quiet=quiet)
        init = await self._assemble_init(init_facet, init_args, session, quiet)
        return await self._submit(diamond_address, plan, cuts, init, tx_overrides, quiet)

    async def _assemble_init(
        self,
        init_facet,
        init_args: List[Any],
        session: DeploymentSession,
        quiet: bool = False,
    ) -> InitCall:
        """
        Resolve the initializer and encode its ``init`` call.

        A facet already deployed in this session is reused.
        """
        if init_facet is None:
            return InitCall.none()

        reused = init_facet.name in session
        address = await self.deployments.resolve(init_facet, session, quiet=quiet)
        log = logger.debug if quiet else logger.info
        log(f"{'Using' if reused else 'Deployed'} init facet: {address}")

        calldata = self.artifacts.get_artifact(init_facet.name).encode_call("init", init_args)
        log("Function call", calldata=calldata)
        return InitCall(facet_address=address, calldata=calldata)

    async def _submit(
        self,
        diamond_address: str,
        plan: UpgradePlan,
        cuts: List[FacetCut],
        init: InitCall,
        tx_overrides: Dict[str, Any],
        quiet: bool = False,
    ) -> TransactionReceipt:
        """Send the diamondCut transaction and return its receipt."""
        if self.revalidate:
            fresh_state = await self.state_repository.read_state(diamond_address)
            self.validator.check_against_state(plan.cuts, fresh_state)

        log_diamond_cut(
            diamond_address,
            [cut.as_log_dict() for cut in cuts],
            init.facet_address,
            init.calldata,
            quiet=quiet,
        )
        receipt = await self.diamond.diamond_cut(
            diamond_address, cuts, init, tx_overrides or None
        )

        logger.info(f"Upgrade transaction hash: {receipt.tx_hash}")
        if not receipt.succeeded:
            logger.warning(
                "Upgrade transaction reverted",
                diamond_address=diamond_address,
                tx_hash=receipt.tx_hash,
            )
        return receipt


# Global service instance
upgrade_service = UpgradeService()
