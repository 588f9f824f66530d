"""
Custom exceptions for the Facet Cut service.
Provides structured error handling for diamond planning, deployment and upgrades.
"""

from typing import Any, Dict, List, Optional, Tuple
from fastapi import status


class DiamondException(Exception):
    """Base exception for the Facet Cut service."""

    def __init__(
        self,
        message: str,
        error_code: str = "DIAMOND_ERROR",
        details: Optional[Dict[str, Any]] = None
    ):
        self.message = message
        self.error_code = error_code
        self.details = details or {}
        super().__init__(self.message)


# Usage errors: malformed input, raised before any network interaction
class UsageError(DiamondException):
    """Raised when an operation is called with malformed input."""

    def __init__(self, message: str = "Invalid usage", error_code: str = "USAGE_ERROR", details: Optional[Dict[str, Any]] = None):
        super().__init__(message, error_code, details)


class InvalidArgumentCountError(UsageError):
    """Raised when a public operation receives anything but one config argument."""

    def __init__(self, count: int, details: Optional[Dict[str, Any]] = None):
        message = f"Requires only 1 config argument. {count} arguments used."
        super().__init__(message, "INVALID_ARGUMENT_COUNT", details)


class InvalidFacetReferenceError(UsageError):
    """Raised when a facet reference has an unsupported shape or type."""

    def __init__(self, value: Any, reason: str = "unsupported facet reference", details: Optional[Dict[str, Any]] = None):
        message = f"Error using facet: {reason}. Bad input: {value!r}"
        super().__init__(message, "INVALID_FACET_REFERENCE", details)


class InvalidFacetCutActionError(UsageError):
    """Raised when a cut entry carries an action outside Add/Replace/Remove."""

    def __init__(self, action: Any, details: Optional[Dict[str, Any]] = None):
        message = f"Incorrect FacetCutAction value. Must be 0, 1 or 2. Value used: {action!r}"
        super().__init__(message, "INVALID_CUT_ACTION", details)


# Validation errors: plan inconsistent with current diamond state
class CutValidationError(DiamondException):
    """Raised when a cut entry breaks a planning rule."""

    def __init__(self, message: str = "Cut validation failed", error_code: str = "CUT_VALIDATION_ERROR", details: Optional[Dict[str, Any]] = None):
        super().__init__(message, error_code, details)


class SelectorAlreadyInstalledError(CutValidationError):
    """Raised when an Add entry targets a selector the diamond already routes."""

    def __init__(self, signature: str, selector: str, details: Optional[Dict[str, Any]] = None):
        message = f"Can't add '{signature}' ({selector}). It already exists in deployed diamond."
        super().__init__(message, "SELECTOR_ALREADY_INSTALLED", details)


class SelectorNotInstalledError(CutValidationError):
    """Raised when a Replace or Remove entry targets a selector the diamond lacks."""

    def __init__(self, action: str, signature: str, selector: str, details: Optional[Dict[str, Any]] = None):
        message = f"Can't {action} '{signature}' ({selector}). It doesn't exist in deployed diamond."
        super().__init__(message, "SELECTOR_NOT_FOUND", details)


class SelectorAlreadyRemovedError(SelectorNotInstalledError):
    """Raised when a selector scheduled for removal is already gone."""

    def __init__(self, selector: str, details: Optional[Dict[str, Any]] = None):
        message = f"Function selector to remove is already gone: {selector}"
        CutValidationError.__init__(self, message, "SELECTOR_NOT_FOUND", details)


class SignatureNotOnFacetError(CutValidationError):
    """Raised when a signature is missing from the target facet's declared interface."""

    def __init__(self, action: str, signature: str, facet_name: str, details: Optional[Dict[str, Any]] = None):
        message = f"Can't {action} '{signature}'. It doesn't exist in {facet_name} source code."
        super().__init__(message, "SIGNATURE_NOT_ON_FACET", details)


class RemoveFacetNotAllowedError(CutValidationError):
    """Raised when a Remove entry carries a facet identity."""

    def __init__(self, facet: Any, details: Optional[Dict[str, Any]] = None):
        message = (
            "Can't remove functions because facet name must be absent for Remove, "
            f"not {facet!r}."
        )
        super().__init__(message, "REMOVE_FACET_NOT_ALLOWED", details)


class DuplicateSelectorError(CutValidationError):
    """Raised when one selector appears more than once in a plan."""

    def __init__(self, signature: str, selector: str, details: Optional[Dict[str, Any]] = None):
        message = f"'{signature}' ({selector}) appears more than once in the cut."
        super().__init__(message, "DUPLICATE_SELECTOR", details)


class EmptyCutError(CutValidationError):
    """Raised when a cut entry lists no functions."""

    def __init__(self, action: str, details: Optional[Dict[str, Any]] = None):
        message = f"No selectors in {action} cut entry."
        super().__init__(message, "EMPTY_CUT", details)


class StaleDiamondStateError(CutValidationError):
    """Raised when the diamond changed between planning and submission."""

    def __init__(self, reason: str, details: Optional[Dict[str, Any]] = None):
        message = f"Diamond state changed since planning: {reason}"
        super().__init__(message, "STALE_DIAMOND_STATE", details)


# Artifacts
class FacetArtifactNotFoundError(DiamondException):
    """Raised when no compiled artifact exists for a contract name."""

    def __init__(self, name: str, details: Optional[Dict[str, Any]] = None):
        message = f"Contract artifact not found: {name}"
        super().__init__(message, "ARTIFACT_NOT_FOUND", details)


# Blockchain Operations
class BlockchainError(DiamondException):
    """Raised when blockchain operations fail."""

    def __init__(self, message: str = "Blockchain operation failed", details: Optional[Dict[str, Any]] = None):
        super().__init__(message, "BLOCKCHAIN_ERROR", details)


class ContractCallFailedError(DiamondException):
    """Raised when a read-only smart contract call fails."""

    def __init__(self, contract_address: str, method: str, details: Optional[Dict[str, Any]] = None):
        message = f"Contract call failed: {contract_address}.{method}"
        super().__init__(message, "CONTRACT_CALL_FAILED", details)


class DeploymentError(DiamondException):
    """Raised when a contract deployment fails; carries the facets already deployed."""

    def __init__(
        self,
        contract_name: str,
        deployed: Optional[List[Tuple[str, str]]] = None,
        details: Optional[Dict[str, Any]] = None,
    ):
        message = f"Deployment failed: {contract_name}"
        self.deployed = list(deployed or [])
        details = dict(details or {})
        details["deployed"] = [
            {"name": name, "address": address} for name, address in self.deployed
        ]
        super().__init__(message, "DEPLOYMENT_FAILED", details)


class TransactionFailedError(DiamondException):
    """Raised when a transaction could not be sent or confirmed."""

    def __init__(self, tx_hash: str, details: Optional[Dict[str, Any]] = None):
        message = f"Transaction failed: {tx_hash}"
        super().__init__(message, "TRANSACTION_FAILED", details)


def get_exception_status_code(exc: DiamondException) -> int:
    """
    Get the appropriate HTTP status code for a DiamondException.

    Args:
        exc: DiamondException instance

    Returns:
        int: HTTP status code
    """
    status_mapping = {
        # Usage
        "USAGE_ERROR": status.HTTP_400_BAD_REQUEST,
        "INVALID_ARGUMENT_COUNT": status.HTTP_400_BAD_REQUEST,
        "INVALID_FACET_REFERENCE": status.HTTP_400_BAD_REQUEST,
        "INVALID_CUT_ACTION": status.HTTP_400_BAD_REQUEST,

        # Validation
        "CUT_VALIDATION_ERROR": status.HTTP_422_UNPROCESSABLE_ENTITY,
        "SELECTOR_ALREADY_INSTALLED": status.HTTP_409_CONFLICT,
        "SELECTOR_NOT_FOUND": status.HTTP_409_CONFLICT,
        "SIGNATURE_NOT_ON_FACET": status.HTTP_422_UNPROCESSABLE_ENTITY,
        "REMOVE_FACET_NOT_ALLOWED": status.HTTP_422_UNPROCESSABLE_ENTITY,
        "DUPLICATE_SELECTOR": status.HTTP_422_UNPROCESSABLE_ENTITY,
        "EMPTY_CUT": status.HTTP_422_UNPROCESSABLE_ENTITY,
        "STALE_DIAMOND_STATE": status.HTTP_409_CONFLICT,

        # Artifacts
        "ARTIFACT_NOT_FOUND": status.HTTP_404_NOT_FOUND,

        # Blockchain Operations
        "BLOCKCHAIN_ERROR": status.HTTP_502_BAD_GATEWAY,
        "CONTRACT_CALL_FAILED": status.HTTP_502_BAD_GATEWAY,
        "DEPLOYMENT_FAILED": status.HTTP_502_BAD_GATEWAY,
        "TRANSACTION_FAILED": status.HTTP_502_BAD_GATEWAY,
    }

    return status_mapping.get(exc.error_code, status.HTTP_500_INTERNAL_SERVER_ERROR)
