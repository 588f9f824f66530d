"""
Diamond Router for the Facet Cut service.
Handles selector lookup, loupe snapshots, deployments and upgrades.
"""

from typing import List

from fastapi import APIRouter, Query

from facetcut.api.dto.diamond_dto import (
    DeployDiamondRequestDTO,
    DeployFacetsRequestDTO,
    DeployFacetsResponseDTO,
    DiamondDeploymentResponseDTO,
    DiamondStateResponseDTO,
    SelectorDTO,
    SelectorResponseDTO,
    UpgradePlanResponseDTO,
    UpgradeRequestDTO,
    UpgradeResponseDTO,
    UpgradeWithNewFacetsRequestDTO,
)
from facetcut.api.services.upgrade_service import upgrade_service
from facetcut.core.logging import get_logger
from facetcut.infrastructure.blockchain.selectors import selector_of

logger = get_logger(__name__)

# Create router
router = APIRouter()


@router.get("/selectors", response_model=SelectorResponseDTO)
async def get_selectors(
    signature: List[str] = Query(..., description="Function signature(s), e.g. transfer(address,uint256)"),
) -> SelectorResponseDTO:
    """
    Compute 4-byte selectors for one or more function signatures.

    Example: /api/v1/diamond/selectors?signature=foo()&signature=bar(uint256)
    """
    return SelectorResponseDTO(
        success=True,
        message="Selectors computed",
        data=[SelectorDTO(signature=sig, selector=selector_of(sig)) for sig in signature],
    )


@router.get("/{diamond_address}/state", response_model=DiamondStateResponseDTO)
async def get_diamond_state(diamond_address: str) -> DiamondStateResponseDTO:
    """
    Read the diamond's installed facets through its loupe.

    Args:
        diamond_address: Diamond proxy address

    Returns:
        DiamondStateResponseDTO with every (facet, selectors) pair
    """
    state = await upgrade_service.get_diamond_state(diamond_address)
    return DiamondStateResponseDTO(
        success=True,
        message=f"{len(state.facets)} facets installed",
        data=state,
    )


@router.post("/facets/deploy", response_model=DeployFacetsResponseDTO)
async def deploy_facets(request: DeployFacetsRequestDTO) -> DeployFacetsResponseDTO:
    """Deploy named facets; already-deployed facets are passed through."""
    logger.info(f"Deploying {len(request.facets)} facets")
    deployed = await upgrade_service.deploy_facets(request)
    return DeployFacetsResponseDTO(
        success=True, message=f"{len(deployed)} facets resolved", data=deployed
    )


@router.post("/deploy", response_model=DiamondDeploymentResponseDTO)
async def deploy_diamond(request: DeployDiamondRequestDTO) -> DiamondDeploymentResponseDTO:
    """
    Deploy facets, then a diamond that adds all of them at construction.

    Args:
        request: Diamond name, facets, owner and constructor arguments

    Returns:
        DiamondDeploymentResponseDTO with the diamond and facet addresses
    """
    logger.info(f"Deploying diamond {request.diamond_name}")
    deployment = await upgrade_service.deploy(request)
    return DiamondDeploymentResponseDTO(
        success=True, message=f"{request.diamond_name} deployed", data=deployment
    )


@router.post("/upgrade/plan", response_model=UpgradePlanResponseDTO)
async def plan_upgrade(request: UpgradeRequestDTO) -> UpgradePlanResponseDTO:
    """Validate explicit cut entries against the diamond without sending anything."""
    plan = await upgrade_service.plan_upgrade(request)
    return UpgradePlanResponseDTO(success=True, message="Upgrade plan is valid", data=plan)


@router.post("/upgrade", response_model=UpgradeResponseDTO)
async def upgrade(request: UpgradeRequestDTO) -> UpgradeResponseDTO:
    """
    Apply explicit cut entries to a diamond.

    A reverted diamondCut is reported with success=false and its receipt.
    """
    logger.info(f"Upgrading diamond {request.diamond_address} with {len(request.cuts)} cuts")
    receipt = await upgrade_service.upgrade(request)
    return UpgradeResponseDTO(
        success=receipt.succeeded,
        message="Upgrade applied" if receipt.succeeded else "Upgrade transaction reverted",
        data=receipt,
    )


@router.post("/upgrade-with-new-facets/plan", response_model=UpgradePlanResponseDTO)
async def plan_upgrade_with_new_facets(
    request: UpgradeWithNewFacetsRequestDTO,
) -> UpgradePlanResponseDTO:
    """Build and validate a diff-based upgrade without deploying anything."""
    plan = await upgrade_service.plan_upgrade_with_new_facets(request)
    return UpgradePlanResponseDTO(success=True, message="Upgrade plan is valid", data=plan)


@router.post("/upgrade-with-new-facets", response_model=UpgradeResponseDTO)
async def upgrade_with_new_facets(
    request: UpgradeWithNewFacetsRequestDTO,
) -> UpgradeResponseDTO:
    """
    Bring whole facets up to date on a diamond.

    New selectors are added, installed ones replaced, and
    selectors_to_remove dropped first.
    """
    logger.info(f"Upgrading diamond {request.diamond_address} to {len(request.facets)} facets")
    receipt = await upgrade_service.upgrade_with_new_facets(request)
    return UpgradeResponseDTO(
        success=receipt.succeeded,
        message="Upgrade applied" if receipt.succeeded else "Upgrade transaction reverted",
        data=receipt,
    )
