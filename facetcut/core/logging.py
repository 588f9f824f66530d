"""
Logging configuration for the Facet Cut service.
Provides structured logging for facet deployments and diamond upgrades.
"""

import logging
import sys
from typing import Any, Dict, List, Optional
import structlog
from structlog.stdlib import LoggerFactory

from facetcut.core.config import is_production, settings


def setup_logging() -> None:
    """
    Configure structured logging for the application.
    Sets up different log formats for development and production environments.
    """

    # Configure structlog
    structlog.configure(
        processors=[
            structlog.stdlib.filter_by_level,
            structlog.stdlib.add_logger_name,
            structlog.stdlib.add_log_level,
            structlog.stdlib.PositionalArgumentsFormatter(),
            structlog.processors.TimeStamper(fmt="iso"),
            structlog.processors.StackInfoRenderer(),
            structlog.processors.format_exc_info,
            structlog.processors.UnicodeDecoder(),
            _get_processor(),
        ],
        context_class=dict,
        logger_factory=LoggerFactory(),
        wrapper_class=structlog.stdlib.BoundLogger,
        cache_logger_on_first_use=True,
    )

    # Configure standard library logging
    logging.basicConfig(
        format="%(message)s",
        stream=sys.stdout,
        level=getattr(logging, settings.LOG_LEVEL.upper()),
    )

    # Set specific logger levels
    logging.getLogger("uvicorn").setLevel(logging.INFO)
    logging.getLogger("uvicorn.access").setLevel(logging.INFO)
    logging.getLogger("web3").setLevel(logging.WARNING)
    logging.getLogger("urllib3").setLevel(logging.WARNING)
    logging.getLogger("httpx").setLevel(logging.WARNING)


def _get_processor():
    """
    Get the appropriate processor based on environment.

    Returns:
        Processor function for structlog
    """
    if is_production() or settings.LOG_FORMAT == "json":
        return structlog.processors.JSONRenderer()
    else:
        return structlog.dev.ConsoleRenderer(colors=True)


def get_logger(name: str) -> structlog.stdlib.BoundLogger:
    """
    Get a structured logger instance.

    Args:
        name: Logger name (usually __name__)

    Returns:
        structlog.stdlib.BoundLogger: Configured logger instance
    """
    return structlog.get_logger(name)


class LoggerMixin:
    """Mixin class to add logging capabilities to any class."""

    @property
    def logger(self) -> structlog.stdlib.BoundLogger:
        """Get logger instance for this class."""
        return get_logger(self.__class__.__module__ + "." + self.__class__.__name__)

    def progress(self, quiet: bool = False):
        """Return the log method used for step-by-step progress output."""
        return self.logger.debug if quiet else self.logger.info


# Specialized logging functions for diamond operations

def log_facet_deployment(
    facet_name: Optional[str],
    facet_address: str,
    reused: bool = False,
    quiet: bool = False,
    **kwargs
) -> None:
    """
    Log a facet resolution (fresh deployment or reuse of an existing instance).

    Args:
        facet_name: Facet contract name (None for anonymous deployed facets)
        facet_address: Resolved on-chain address
        reused: True when no deployment transaction was sent
        quiet: Demote the entry to debug level
        **kwargs: Additional context
    """
    logger = get_logger("facet.deployment")
    log = logger.debug if quiet else logger.info
    log(
        "Facet resolved",
        facet_name=facet_name,
        facet_address=facet_address,
        reused=reused,
        **kwargs
    )


def log_diamond_cut(
    diamond_address: str,
    cuts: List[Dict[str, Any]],
    init_address: str,
    calldata: str,
    quiet: bool = False,
    **kwargs
) -> None:
    """
    Log the diamondCut arguments right before submission.

    Args:
        diamond_address: Target diamond proxy
        cuts: Cut entries as plain dicts (facet, action, selectors)
        init_address: Initializer facet address (zero address when none)
        calldata: Encoded initializer call ("0x" when none)
        quiet: Demote the entry to debug level
        **kwargs: Additional context
    """
    logger = get_logger("diamond.cut")
    log = logger.debug if quiet else logger.info
    log(
        "Diamond cut",
        diamond_address=diamond_address,
        cuts=cuts,
        init_address=init_address,
        calldata=calldata,
        **kwargs
    )


def log_blockchain_transaction(
    tx_hash: str,
    chain_id: int,
    contract_address: str = None,
    method: str = None,
    status: int = None,
    **kwargs
) -> None:
    """
    Log blockchain transaction details.

    Args:
        tx_hash: Transaction hash
        chain_id: Blockchain chain ID
        contract_address: Smart contract address
        method: Contract method called
        status: Receipt status (1 success, 0 reverted)
        **kwargs: Additional transaction context
    """
    logger = get_logger("blockchain.transaction")
    logger.info(
        "Blockchain transaction",
        tx_hash=tx_hash,
        chain_id=chain_id,
        contract_address=contract_address,
        method=method,
        status=status,
        **kwargs
    )


def log_error(error: Exception, context: Dict[str, Any] = None) -> None:
    """
    Log an error with context.

    Args:
        error: Exception instance
        context: Additional context information
    """
    logger = get_logger("error")
    logger.error(
        "An error occurred",
        error=str(error),
        error_type=type(error).__name__,
        context=context or {},
        exc_info=True
    )


def log_request(method: str, url: str, status_code: int, duration: float, **kwargs) -> None:
    """
    Log HTTP request details.

    Args:
        method: HTTP method
        url: Request URL
        status_code: Response status code
        duration: Request duration in seconds
        **kwargs: Additional context to log
    """
    logger = get_logger("http.request")
    logger.info(
        "HTTP request completed",
        method=method,
        url=url,
        status_code=status_code,
        duration=duration,
        **kwargs
    )
