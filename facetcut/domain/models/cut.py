"""
Diamond cut models.

Facet references, cut entries (one variant per action) and the resolved plan
that is validated, deployed and finally submitted through diamondCut.
"""

from collections.abc import Mapping
from enum import IntEnum
from typing import Annotated, Any, Dict, List, Literal, Optional, Tuple, Union

from pydantic import BaseModel, ConfigDict, Field, field_validator
from web3 import Web3

from facetcut.core.exceptions import (
    InvalidFacetCutActionError,
    InvalidFacetReferenceError,
    RemoveFacetNotAllowedError,
)


ZERO_ADDRESS = "0x0000000000000000000000000000000000000000"


class FacetCutAction(IntEnum):
    """Action codes understood by diamondCut."""

    ADD = 0
    REPLACE = 1
    REMOVE = 2


def _checksum(value: str) -> str:
    if not isinstance(value, str) or not Web3.is_address(value):
        raise ValueError(f"Invalid address: {value!r}")
    return Web3.to_checksum_address(value)


# Facet references


class NamedFacet(BaseModel):
    """A facet known only by contract name; deployed on first use."""

    model_config = ConfigDict(frozen=True)

    kind: Literal["named"] = "named"
    name: str = Field(..., min_length=1, description="Contract name")


class DeployedFacet(BaseModel):
    """An already-deployed facet whose contract name is known."""

    model_config = ConfigDict(frozen=True)

    kind: Literal["deployed"] = "deployed"
    name: str = Field(..., min_length=1, description="Contract name")
    address: str = Field(..., description="Deployed facet address")

    @field_validator("address")
    @classmethod
    def checksum_address(cls, v):
        return _checksum(v)


class DeployedAnonymousFacet(BaseModel):
    """An already-deployed facet known only by address."""

    model_config = ConfigDict(frozen=True)

    kind: Literal["anonymous"] = "anonymous"
    address: str = Field(..., description="Deployed facet address")

    @field_validator("address")
    @classmethod
    def checksum_address(cls, v):
        return _checksum(v)


FacetRef = Annotated[
    Union[NamedFacet, DeployedFacet, DeployedAnonymousFacet],
    Field(discriminator="kind"),
]

_FACET_REF_TYPES = (NamedFacet, DeployedFacet, DeployedAnonymousFacet)


def facet_name(ref) -> Optional[str]:
    """Contract name of a facet reference, None for anonymous facets."""
    return getattr(ref, "name", None)


def facet_label(ref) -> str:
    """Human readable facet identity for messages."""
    return facet_name(ref) or ref.address


def coerce_facet_ref(value: Any):
    """
    Turn any accepted facet input into a FacetRef.

    Accepted: a FacetRef model, a contract name, a deployed address,
    a ``(name, address)`` pair, or a mapping with ``name`` and/or ``address``.
    """
    if isinstance(value, _FACET_REF_TYPES):
        return value

    if isinstance(value, str):
        if not value:
            raise InvalidFacetReferenceError(value, "facet name must be a non-empty string")
        if Web3.is_address(value):
            return DeployedAnonymousFacet(address=value)
        return NamedFacet(name=value)

    if isinstance(value, (list, tuple)):
        if len(value) != 2:
            raise InvalidFacetReferenceError(value, "expected a (name, address) pair")
        name, address = value
        if not isinstance(name, str) or not name:
            raise InvalidFacetReferenceError(name, "facet name must be a string")
        address = getattr(address, "address", address)
        if not isinstance(address, str) or not Web3.is_address(address):
            raise InvalidFacetReferenceError(address, "facet must be a deployed address")
        return DeployedFacet(name=name, address=address)

    if isinstance(value, Mapping):
        name = value.get("name")
        address = value.get("address")
        if name and address:
            return coerce_facet_ref((name, address))
        if address:
            if not isinstance(address, str) or not Web3.is_address(address):
                raise InvalidFacetReferenceError(address, "facet must be a deployed address")
            return DeployedAnonymousFacet(address=address)
        if name:
            return coerce_facet_ref(name)
        raise InvalidFacetReferenceError(value, "mapping needs a name or an address")

    raise InvalidFacetReferenceError(value)


# Cut entries


class AddCut(BaseModel):
    """Route new functions to a facet."""

    model_config = ConfigDict(frozen=True)

    action: Literal[FacetCutAction.ADD] = FacetCutAction.ADD
    facet: FacetRef
    functions: List[str] = Field(..., description="Signatures or 0x selectors")


class ReplaceCut(BaseModel):
    """Re-route installed functions to another facet."""

    model_config = ConfigDict(frozen=True)

    action: Literal[FacetCutAction.REPLACE] = FacetCutAction.REPLACE
    facet: FacetRef
    functions: List[str] = Field(..., description="Signatures or 0x selectors")


class RemoveCut(BaseModel):
    """Drop installed functions from the diamond. Carries no facet."""

    model_config = ConfigDict(frozen=True, extra="forbid")

    action: Literal[FacetCutAction.REMOVE] = FacetCutAction.REMOVE
    functions: List[str] = Field(..., description="Signatures or 0x selectors")


# Tagged on the `action` literal of each variant
CutEntry = Union[AddCut, ReplaceCut, RemoveCut]

_CUT_ENTRY_TYPES = (AddCut, ReplaceCut, RemoveCut)


def _coerce_action(action: Any) -> FacetCutAction:
    if isinstance(action, FacetCutAction):
        return action
    if isinstance(action, str) and action.upper() in FacetCutAction.__members__:
        return FacetCutAction[action.upper()]
    if isinstance(action, int) and not isinstance(action, bool):
        try:
            return FacetCutAction(action)
        except ValueError:
            pass
    raise InvalidFacetCutActionError(action)


def coerce_cut_entry(value: Any):
    """
    Turn a cut entry in any accepted shape into its typed variant.

    Accepted: an AddCut/ReplaceCut/RemoveCut model, a mapping with
    ``facet``, ``action`` and ``functions``, or a ``(facet, action, functions)``
    triple.
    """
    if isinstance(value, _CUT_ENTRY_TYPES):
        return value

    if isinstance(value, Mapping):
        facet = value.get("facet")
        action = value.get("action")
        functions = value.get("functions", value.get("selectors"))
    elif isinstance(value, (list, tuple)) and len(value) == 3:
        facet, action, functions = value
    else:
        raise InvalidFacetReferenceError(value, "cut entry must be (facet, action, functions)")

    action = _coerce_action(action)
    if isinstance(functions, str) or not isinstance(functions, (list, tuple)):
        raise InvalidFacetReferenceError(functions, "cut functions must be a list")
    functions = list(functions)

    if action is FacetCutAction.REMOVE:
        if facet not in (None, "", ZERO_ADDRESS):
            raise RemoveFacetNotAllowedError(facet)
        return RemoveCut(functions=functions)

    if facet is None:
        raise InvalidFacetReferenceError(facet, f"{action.name} entry needs a facet")
    ref = coerce_facet_ref(facet)
    if action is FacetCutAction.ADD:
        return AddCut(facet=ref, functions=functions)
    return ReplaceCut(facet=ref, functions=functions)


# Resolved plan


class ResolvedCut(BaseModel):
    """A validated cut entry with its selectors materialized."""

    model_config = ConfigDict(frozen=True)

    facet: Optional[FacetRef] = Field(None, description="Target facet, None for Remove")
    action: FacetCutAction
    selectors: List[str]
    signatures: Dict[str, str] = Field(
        default_factory=dict, description="selector -> signature, for diagnostics"
    )

    def signature_for(self, selector: str) -> str:
        return self.signatures.get(selector, selector)


class UpgradePlan(BaseModel):
    """Ordered list of validated cut entries, submitted atomically."""

    cuts: List[ResolvedCut] = Field(default_factory=list)

    @property
    def selectors(self) -> List[str]:
        return [selector for cut in self.cuts for selector in cut.selectors]


class FacetCut(BaseModel):
    """A cut entry bound to a concrete facet address, ready for diamondCut."""

    model_config = ConfigDict(frozen=True)

    facet_address: str
    action: FacetCutAction
    selectors: List[str]

    def as_contract_arg(self) -> Tuple[str, int, List[bytes]]:
        """Encode as the ``(address,uint8,bytes4[])`` struct diamondCut expects."""
        return (
            Web3.to_checksum_address(self.facet_address),
            int(self.action),
            [Web3.to_bytes(hexstr=selector) for selector in self.selectors],
        )

    def as_log_dict(self) -> Dict[str, Any]:
        return {
            "facet": self.facet_address,
            "action": self.action.name,
            "selectors": list(self.selectors),
        }


class InitCall(BaseModel):
    """Initializer executed by diamondCut after the cut is applied."""

    model_config = ConfigDict(frozen=True)

    facet_address: str = ZERO_ADDRESS
    calldata: str = "0x"

    @classmethod
    def none(cls) -> "InitCall":
        return cls()
