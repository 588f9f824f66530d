"""
Chain Client for contract deployment and transactions.
Handles Web3 connection, signing and receipt confirmation.
"""

from typing import Any, Dict, List, Optional

from eth_account import Account
from web3 import Web3
from web3.contract import Contract

from facetcut.core.config import settings
from facetcut.core.exceptions import (
    BlockchainError,
    ContractCallFailedError,
    DeploymentError,
    TransactionFailedError,
)
from facetcut.core.logging import get_logger, log_blockchain_transaction
from facetcut.domain.models.diamond import TransactionReceipt
from facetcut.infrastructure.blockchain.artifacts import FacetArtifact

logger = get_logger(__name__)


class ChainClient:
    """Client for deploying contracts and sending signed transactions."""

    def __init__(
        self,
        rpc_url: Optional[str] = None,
        private_key: Optional[str] = None,
        w3: Optional[Web3] = None,
    ):
        """
        Initialize chain client.

        Args:
            rpc_url: JSON-RPC endpoint (defaults to settings.ACTIVE_RPC_URL)
            private_key: Signer key (defaults to settings.EVM_PRIVATE_KEY)
            w3: Pre-built Web3 instance, used instead of rpc_url when given
        """
        rpc_url = rpc_url or settings.ACTIVE_RPC_URL
        self.w3 = w3 or Web3(Web3.HTTPProvider(rpc_url))
        self.private_key = private_key or settings.EVM_PRIVATE_KEY
        logger.info(f"Connecting to RPC: {rpc_url}")

        if not self.w3.is_connected():
            logger.error("Failed to connect to Web3 provider")
            raise BlockchainError(
                "Cannot connect to blockchain RPC", details={"rpc_url": rpc_url}
            )

    @property
    def account(self):
        if not self.private_key:
            raise BlockchainError("EVM_PRIVATE_KEY not configured")
        return Account.from_key(self.private_key)

    def contract_at(self, address: str, abi: List[Dict]) -> Contract:
        return self.w3.eth.contract(address=Web3.to_checksum_address(address), abi=abi)

    async def send_transaction(
        self,
        transactable: Any,
        overrides: Optional[Dict[str, Any]] = None,
        label: str = "transaction",
    ) -> TransactionReceipt:
        """
        Sign, send and confirm a contract function call or constructor.

        Args:
            transactable: A bound contract function or constructor call
            overrides: Transaction fields (gas, gasPrice, value, nonce, ...)
            label: Name used in logs and errors

        Returns:
            The mined receipt, including reverted ones (status 0)

        Raises:
            TransactionFailedError: the transaction could not be sent or confirmed
        """
        account = self.account
        tx_params: Dict[str, Any] = {"from": account.address}
        tx_params.update(overrides or {})

        logger.info(f"Sending transaction: {label} from {account.address}")

        try:
            if "nonce" not in tx_params:
                tx_params["nonce"] = self.w3.eth.get_transaction_count(account.address)

            # Estimate gas if not provided
            if "gas" not in tx_params:
                try:
                    estimate = transactable.estimate_gas({"from": account.address})
                    tx_params["gas"] = int(estimate * settings.GAS_LIMIT_BUFFER)
                except Exception as e:
                    logger.warning(f"Gas estimation failed: {e}, using default")
                    tx_params["gas"] = settings.DEFAULT_GAS_LIMIT

            if "gasPrice" not in tx_params and "maxFeePerGas" not in tx_params:
                tx_params["gasPrice"] = self.w3.eth.gas_price

            transaction = transactable.build_transaction(tx_params)
            signed_txn = self.w3.eth.account.sign_transaction(transaction, self.private_key)
            tx_hash = self.w3.eth.send_raw_transaction(signed_txn.raw_transaction)
        except Exception as e:
            logger.error(f"Error sending {label}: {e}", exc_info=True)
            raise TransactionFailedError(label, details={"error": str(e)}) from e

        logger.info(f"Transaction sent: {Web3.to_hex(tx_hash)}")

        try:
            tx_receipt = self.w3.eth.wait_for_transaction_receipt(
                tx_hash, timeout=settings.TX_RECEIPT_TIMEOUT
            )
        except Exception as e:
            logger.error(f"Error waiting for {label}: {e}", exc_info=True)
            raise TransactionFailedError(
                Web3.to_hex(tx_hash), details={"error": str(e)}
            ) from e

        receipt = TransactionReceipt.from_web3(dict(tx_receipt))
        log_blockchain_transaction(
            tx_hash=receipt.tx_hash,
            chain_id=settings.EVM_CHAIN_ID,
            contract_address=receipt.contract_address,
            method=label,
            status=receipt.status,
        )
        return receipt

    async def deploy_contract(
        self,
        artifact: FacetArtifact,
        args: Optional[List[Any]] = None,
        overrides: Optional[Dict[str, Any]] = None,
    ) -> TransactionReceipt:
        """
        Deploy a contract from its artifact and wait for confirmation.

        Raises:
            DeploymentError: sending failed or the creation transaction reverted
        """
        factory = self.w3.eth.contract(abi=artifact.abi, bytecode=artifact.bytecode)
        try:
            receipt = await self.send_transaction(
                factory.constructor(*(args or [])),
                overrides=overrides,
                label=f"deploy {artifact.name}",
            )
        except TransactionFailedError as e:
            raise DeploymentError(artifact.name, details=e.details) from e

        if not receipt.succeeded or not receipt.contract_address:
            raise DeploymentError(artifact.name, details={"tx_hash": receipt.tx_hash})
        return receipt

    async def call_function(
        self, address: str, abi: List[Dict], function_name: str, args: Optional[List[Any]] = None
    ) -> Any:
        """
        Call a read-only contract function.

        Raises:
            ContractCallFailedError: the call could not be executed
        """
        try:
            contract_function = getattr(self.contract_at(address, abi).functions, function_name)
            result = contract_function(*(args or [])).call()
        except Exception as e:
            logger.error(f"Error calling function: {e}", exc_info=True)
            raise ContractCallFailedError(address, function_name, details={"error": str(e)}) from e

        logger.debug(f"Called function: {function_name}({args}) = {result}")
        return result
