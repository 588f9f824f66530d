from typing import Annotated, Any, Dict, List, Optional

from pydantic import AfterValidator, BaseModel, BeforeValidator, Field, field_validator
from web3 import Web3

from facetcut.domain.models.cut import (
    CutEntry,
    FacetRef,
    UpgradePlan,
    coerce_cut_entry,
    coerce_facet_ref,
)
from facetcut.domain.models.diamond import DiamondState, TransactionReceipt


def _coerce_facets(v):
    if isinstance(v, (str, bytes)) or not isinstance(v, (list, tuple)):
        raise ValueError("facets must be a list")
    return [coerce_facet_ref(facet) for facet in v]


def _coerce_optional_facet(v):
    if v is None or v == "":
        return None
    return coerce_facet_ref(v)


def _checksum_optional(v):
    if v is None:
        return v
    if not Web3.is_address(v):
        raise ValueError(f"Invalid address: {v!r}")
    return Web3.to_checksum_address(v)


FacetRefList = Annotated[List[FacetRef], BeforeValidator(_coerce_facets)]
OptionalFacetRef = Annotated[Optional[FacetRef], BeforeValidator(_coerce_optional_facet)]
OptionalAddress = Annotated[Optional[str], AfterValidator(_checksum_optional)]


# Request DTOs
class DeployFacetsRequestDTO(BaseModel):
    """Request DTO for deploying (or passing through) facets."""

    facets: FacetRefList = Field(
        ..., description="Facet names, addresses, or {name, address} objects"
    )
    quiet: bool = Field(False, description="Suppress progress output")


class DeployDiamondRequestDTO(BaseModel):
    """Request DTO for deploying a diamond with an initial set of facets."""

    diamond_name: str = Field(..., description="Diamond contract name")
    facets: FacetRefList = Field(..., description="Facets added at construction")
    owner: OptionalAddress = Field(None, description="Owner passed after the cut")
    constructor_args: List[Any] = Field(
        default_factory=list, description="Extra constructor arguments"
    )
    tx_overrides: Dict[str, Any] = Field(
        default_factory=dict, description="Transaction overrides"
    )
    quiet: bool = Field(False, description="Suppress progress output")


class UpgradeRequestDTO(BaseModel):
    """Request DTO for a manual diamond upgrade."""

    diamond_address: OptionalAddress = Field(
        None, description="Diamond address (defaults to DIAMOND_ADDRESS)"
    )
    cuts: List[CutEntry] = Field(
        ..., description="Cut entries: {facet, action, functions}"
    )
    init_facet: OptionalFacetRef = Field(None, description="Initializer facet")
    init_args: List[Any] = Field(default_factory=list, description="Arguments for init")
    tx_overrides: Dict[str, Any] = Field(
        default_factory=dict, description="Transaction overrides"
    )
    quiet: bool = Field(False, description="Suppress progress output")

    @field_validator("cuts", mode="before")
    @classmethod
    def coerce_cuts(cls, v):
        if isinstance(v, (str, bytes)) or not isinstance(v, (list, tuple)):
            raise ValueError("cuts must be a list")
        return [coerce_cut_entry(entry) for entry in v]


class UpgradeWithNewFacetsRequestDTO(BaseModel):
    """Request DTO for a diff-based upgrade to the given facets."""

    diamond_address: OptionalAddress = Field(
        None, description="Diamond address (defaults to DIAMOND_ADDRESS)"
    )
    facets: FacetRefList = Field(..., description="Facets to bring fully up to date")
    selectors_to_remove: List[str] = Field(
        default_factory=list, description="Selectors or signatures to remove"
    )
    init_facet: OptionalFacetRef = Field(None, description="Initializer facet")
    init_args: List[Any] = Field(default_factory=list, description="Arguments for init")
    tx_overrides: Dict[str, Any] = Field(
        default_factory=dict, description="Transaction overrides"
    )
    quiet: bool = Field(False, description="Suppress progress output")


# Response DTOs
class DeployedFacetDTO(BaseModel):
    """A resolved facet."""

    name: Optional[str] = Field(None, description="Contract name")
    address: str = Field(..., description="Deployed address")


class DiamondDeploymentDTO(BaseModel):
    """Result of a diamond deployment."""

    diamond_name: str = Field(..., description="Diamond contract name")
    address: str = Field(..., description="Diamond address")
    tx_hash: str = Field(..., description="Creation transaction hash")
    facets: List[DeployedFacetDTO] = Field(..., description="Facets added at construction")


class SelectorDTO(BaseModel):
    """A signature and its selector."""

    signature: str = Field(..., description="Function signature")
    selector: str = Field(..., description="4-byte selector")


class DeployFacetsResponseDTO(BaseModel):
    """Response DTO for facet deployment."""

    success: bool = Field(..., description="Operation success status")
    message: str = Field(..., description="Response message")
    data: List[DeployedFacetDTO] = Field(default_factory=list, description="Facets")


class DiamondDeploymentResponseDTO(BaseModel):
    """Response DTO for diamond deployment."""

    success: bool = Field(..., description="Operation success status")
    message: str = Field(..., description="Response message")
    data: Optional[DiamondDeploymentDTO] = Field(None, description="Deployment result")


class UpgradePlanResponseDTO(BaseModel):
    """Response DTO for a validated, unsubmitted upgrade plan."""

    success: bool = Field(..., description="Operation success status")
    message: str = Field(..., description="Response message")
    data: Optional[UpgradePlan] = Field(None, description="Validated plan")


class UpgradeResponseDTO(BaseModel):
    """Response DTO for a submitted upgrade."""

    success: bool = Field(..., description="True when the upgrade transaction succeeded")
    message: str = Field(..., description="Response message")
    data: Optional[TransactionReceipt] = Field(None, description="Upgrade receipt")


class DiamondStateResponseDTO(BaseModel):
    """Response DTO for a loupe snapshot."""

    success: bool = Field(..., description="Operation success status")
    message: str = Field(..., description="Response message")
    data: Optional[DiamondState] = Field(None, description="Installed facets")


class SelectorResponseDTO(BaseModel):
    """Response DTO for selector computation."""

    success: bool = Field(..., description="Operation success status")
    message: str = Field(..., description="Response message")
    data: List[SelectorDTO] = Field(default_factory=list, description="Selectors")
