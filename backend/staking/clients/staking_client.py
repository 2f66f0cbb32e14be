"""
Blocking Solana RPC client for the BONK stake pool.

Wraps a solana-py ``Client`` with the stake program's address derivation,
balance lookups, nonce probing and deposit submission. Every public method
issues plain request/response RPC calls; failed calls are not retried.
"""

import time
from dataclasses import replace
from typing import List, Optional, Dict, Any, Tuple

import httpx
from solana.rpc.api import Client
from solana.rpc.commitment import Commitment
from solana.rpc.core import RPCException
from solana.rpc.types import TxOpts
from solders.instruction import Instruction
from solders.keypair import Keypair
from solders.pubkey import Pubkey
from solders.signature import Signature
from solders.transaction_status import TransactionConfirmationStatus
from tenacity import (
    Retrying,
    RetryError,
    retry_if_result,
    stop_after_delay,
    wait_fixed,
)

from ..accounts import (
    StakeInfo,
    StakePool,
    decode_stake_deposit_receipt,
    decode_stake_pool,
    get_user_stake_ata,
    get_user_token_ata,
)
from ..config import BONK_MAINNET, ClientSettings, StakingDeployment
from ..errors import (
    AccountDecodeError,
    AccountNotFoundError,
    ConfirmationTimeoutError,
    InsufficientBalanceError,
    NonceExhaustedError,
    TransactionFailedError,
)
from ..instructions import (
    StakeConfig,
    build_deposit_instructions,
    build_signed_transaction,
    validate_nonce,
)
from ..logging_utils import (
    LogLevel,
    OperationType,
    create_operation_logger,
    log_operation_context,
    log_rpc_metrics,
    log_stake_event,
    log_staking_operation,
)
from ..pda import derive_stake_deposit_receipt

_ACCEPTED_CONFIRMATIONS = {
    'processed': (
        TransactionConfirmationStatus.Processed,
        TransactionConfirmationStatus.Confirmed,
        TransactionConfirmationStatus.Finalized,
    ),
    'confirmed': (
        TransactionConfirmationStatus.Confirmed,
        TransactionConfirmationStatus.Finalized,
    ),
    'finalized': (
        TransactionConfirmationStatus.Finalized,
    ),
}


def _confirmation_level(status) -> TransactionConfirmationStatus:
    """
    Confirmation level of a signature status.

    Nodes that omit ``confirmation_status`` still report ``confirmations``,
    which is null once the slot is rooted.
    """
    if status.confirmation_status is not None:
        return status.confirmation_status
    if status.confirmations is None:
        return TransactionConfirmationStatus.Finalized
    if status.confirmations > 0:
        return TransactionConfirmationStatus.Confirmed
    return TransactionConfirmationStatus.Processed


class BonkStakingClient:
    """
    High-level client for BONK staking operations.

    The deployment (program, pool, mint, vaults) is injected so the same
    client works against any deployment of the stake program.
    """

    def __init__(
        self,
        rpc_url: Optional[str] = None,
        deployment: StakingDeployment = BONK_MAINNET,
        settings: Optional[ClientSettings] = None,
        rpc: Optional[Client] = None,
        endpoint_name: Optional[str] = None,
    ):
        """
        Initialize the staking client.

        Args:
            rpc_url: Solana RPC endpoint URL
            deployment: Addresses of the stake pool deployment
            settings: Commitment, priority fee, probe limit and timeouts
            rpc: Pre-built solana-py client, used instead of ``rpc_url``
            endpoint_name: Name used for the endpoint in logs
        """
        if rpc is None and rpc_url is None:
            raise ValueError("Either rpc_url or rpc must be provided")

        self.settings = settings or ClientSettings()
        self.deployment = deployment
        self.rpc_url = rpc_url
        self.endpoint_name = endpoint_name or rpc_url or "injected"
        self.commitment = Commitment(self.settings.commitment)

        if rpc is None:
            rpc = Client(rpc_url, commitment=self.commitment, timeout=self.settings.timeout)
        self.rpc = rpc

        self.logger = create_operation_logger("BonkStakingClient").bind(deployment=deployment.name)
        self.logger.info(
            "BonkStakingClient initialized",
            endpoint=self.endpoint_name,
            stake_pool=str(deployment.stake_pool),
            commitment=self.settings.commitment
        )

    def _call(self, method_name: str, *args, **kwargs):
        """Make a single RPC call, recording its timing."""
        start_time = time.time()
        try:
            result = getattr(self.rpc, method_name)(*args, **kwargs)
        except Exception as e:
            log_rpc_metrics(
                self.endpoint_name, method_name, time.time() - start_time,
                success=False, error_message=str(e)
            )
            raise

        log_rpc_metrics(self.endpoint_name, method_name, time.time() - start_time, success=True)
        return result

    # Addresses

    def derive_receipt(self, user: Pubkey, nonce: int) -> Tuple[Pubkey, int]:
        """Derive the stake deposit receipt PDA of ``user`` for ``nonce``."""
        return derive_stake_deposit_receipt(
            user, self.deployment.stake_pool, validate_nonce(nonce), self.deployment.program_id
        )

    # Accounts

    def account_exists(self, pubkey: Pubkey) -> bool:
        response = self._call("get_account_info", pubkey)
        return response.value is not None

    def get_account_data(self, pubkey: Pubkey) -> bytes:
        """Fetch raw account data, raising AccountNotFoundError when missing."""
        response = self._call("get_account_info", pubkey)
        if response.value is None:
            raise AccountNotFoundError(str(pubkey))
        return bytes(response.value.data)

    def receipt_exists(self, user: Pubkey, nonce: int) -> bool:
        receipt, _ = self.derive_receipt(user, nonce)
        return self.account_exists(receipt)

    @log_staking_operation(OperationType.NONCE_PROBE, "find_next_available_nonce", level=LogLevel.DEBUG)
    def find_next_available_nonce(self, user: Pubkey, limit: Optional[int] = None) -> int:
        """
        Find the first nonce without an existing receipt account.

        Probes nonces 0..limit-1 in order. Two callers probing at the same
        time can pick the same nonce; the cluster accepts only one of them.

        Raises:
            NonceExhaustedError: every probed nonce is in use
        """
        if limit is None:
            limit = self.settings.nonce_probe_limit

        for nonce in range(limit):
            if not self.receipt_exists(user, nonce):
                return nonce

        raise NonceExhaustedError(limit)

    # Balances

    @log_staking_operation(OperationType.BALANCE_QUERY, "token_balance", level=LogLevel.DEBUG)
    def _token_balance(self, token_account: Pubkey) -> int:
        try:
            response = self._call("get_token_account_balance", token_account)
        except RPCException:
            # Account doesn't exist yet
            return 0
        if response.value is None:
            return 0
        return int(response.value.amount)

    def get_token_balance(self, user: Pubkey) -> int:
        """Get the user's staked-token balance (e.g. BONK) in base units."""
        return self._token_balance(get_user_token_ata(user, self.deployment))

    def get_stake_balance(self, user: Pubkey) -> int:
        """Get the user's stake token balance in base units."""
        return self._token_balance(get_user_stake_ata(user, self.deployment))

    def get_sol_balance(self, user: Pubkey) -> int:
        """Get the user's SOL balance in lamports."""
        return self._call("get_balance", user).value

    # Positions

    @log_staking_operation(OperationType.ACCOUNT_INSPECTION, "get_stake_pool", level=LogLevel.DEBUG)
    def get_stake_pool(self) -> StakePool:
        return decode_stake_pool(self.get_account_data(self.deployment.stake_pool))

    @log_staking_operation(OperationType.POSITION_SCAN, "get_user_stakes", level=LogLevel.DEBUG)
    def get_user_stakes(self, user: Pubkey, max_nonce: Optional[int] = None) -> List[StakeInfo]:
        """
        Scan nonces 0..max_nonce-1 for existing stake deposit receipts.

        Receipts whose data cannot be decoded are still reported, with
        ``decoded`` set to False.
        """
        if max_nonce is None:
            max_nonce = self.settings.nonce_probe_limit

        stakes = []
        for nonce in range(max_nonce):
            receipt_address, _ = self.derive_receipt(user, nonce)
            response = self._call("get_account_info", receipt_address)
            if response.value is None:
                continue

            try:
                receipt = decode_stake_deposit_receipt(bytes(response.value.data))
            except AccountDecodeError as e:
                self.logger.warning(
                    "Could not decode stake receipt",
                    receipt=str(receipt_address),
                    nonce=nonce,
                    error=str(e)
                )
                stakes.append(StakeInfo(receipt_address=receipt_address, nonce=nonce, decoded=False))
                continue

            stakes.append(StakeInfo.from_receipt(receipt_address, nonce, receipt))

        return stakes

    # Staking

    def prepare_stake(
        self,
        user: Pubkey,
        amount: int,
        lock_duration_days: int,
        nonce: Optional[int] = None,
    ) -> Tuple[StakeConfig, List[Instruction]]:
        """
        Validate a deposit and build its instructions without sending.

        Amount, duration and an explicit nonce are validated before any RPC
        call. The nonce is probed when not given, then the token balance is
        checked.
        """
        config = StakeConfig.from_days(amount, lock_duration_days, 0 if nonce is None else nonce)

        if nonce is None:
            config = replace(config, nonce=self.find_next_available_nonce(user))

        available = self.get_token_balance(user)
        if available < amount:
            raise InsufficientBalanceError(required=amount, available=available)

        instructions = build_deposit_instructions(
            user, config, self.deployment, self.settings.priority_fee
        )
        return config, instructions

    @log_staking_operation(OperationType.STAKE_DEPOSIT, "stake")
    def stake(
        self,
        user: Keypair,
        amount: int,
        lock_duration_days: int,
        nonce: Optional[int] = None,
    ) -> Signature:
        """
        Stake tokens into the pool.

        Args:
            user: The user's keypair, payer and owner of the position
            amount: Amount to stake in base units, not UI amount
            lock_duration_days: Lock duration in days (30, 90, 180, or 365)
            nonce: Nonce for the stake deposit receipt, None to auto-select

        Returns:
            Transaction signature
        """
        user_pubkey = user.pubkey()
        config, instructions = self.prepare_stake(user_pubkey, amount, lock_duration_days, nonce)
        receipt_address, _ = self.derive_receipt(user_pubkey, config.nonce)

        log_stake_event(
            "prepared",
            owner=str(user_pubkey),
            nonce=config.nonce,
            receipt_address=str(receipt_address),
            additional_data={"amount": config.amount, "lockup_duration": config.lockup_duration}
        )

        signature = self.send_transaction(instructions, user)

        log_stake_event(
            "confirmed",
            owner=str(user_pubkey),
            nonce=config.nonce,
            receipt_address=str(receipt_address),
            additional_data={"signature": str(signature)}
        )
        return signature

    # Transactions

    def send_transaction(self, instructions: List[Instruction], signer: Keypair) -> Signature:
        """
        Sign, send and confirm a transaction paid for by ``signer``.

        Raises:
            TransactionFailedError: the cluster rejected the transaction
            ConfirmationTimeoutError: no confirmation within the timeout
        """
        context = {"payer": str(signer.pubkey()), "instruction_count": len(instructions)}
        with log_operation_context(OperationType.TRANSACTION, "send_transaction", context):
            recent_blockhash = self._call("get_latest_blockhash").value.blockhash

            transaction = build_signed_transaction(instructions, signer, recent_blockhash)

            opts = TxOpts(skip_confirmation=True, preflight_commitment=self.commitment)
            try:
                response = self._call("send_transaction", transaction, opts=opts)
            except RPCException as e:
                raise TransactionFailedError(str(e)) from e

            signature = response.value
            self.logger.info("Transaction submitted", signature=str(signature))

            self.wait_for_confirmation(signature)
        return signature

    def _signature_status(self, signature: Signature):
        """Return the status once it reaches the client commitment, else None."""
        response = self._call("get_signature_statuses", [signature])
        status = response.value[0]
        if status is None:
            return None

        if status.err is not None:
            raise TransactionFailedError(f"Transaction {signature} failed: {status.err}")

        accepted = _ACCEPTED_CONFIRMATIONS.get(
            self.settings.commitment, _ACCEPTED_CONFIRMATIONS['confirmed']
        )
        if _confirmation_level(status) in accepted:
            return status
        return None

    def wait_for_confirmation(self, signature: Signature):
        """Poll the signature status until confirmed, failed or timed out."""
        retryer = Retrying(
            stop=stop_after_delay(self.settings.confirm_timeout),
            wait=wait_fixed(self.settings.confirm_poll_interval),
            retry=retry_if_result(lambda status: status is None),
        )

        try:
            return retryer(self._signature_status, signature)
        except RetryError as e:
            raise ConfirmationTimeoutError(str(signature), self.settings.confirm_timeout) from e

    # Health

    @log_staking_operation(OperationType.HEALTH_CHECK, "check_health", level=LogLevel.DEBUG)
    def check_health(self) -> Dict[str, Any]:
        """Probe the endpoint with getHealth and report status and latency."""
        if not self.rpc_url:
            return {"endpoint": self.endpoint_name, "status": "unknown"}

        start_time = time.time()
        try:
            response = httpx.post(
                self.rpc_url,
                json={"jsonrpc": "2.0", "id": 1, "method": "getHealth"},
                headers={"Content-Type": "application/json"},
                timeout=self.settings.timeout,
            )
            response.raise_for_status()
            data = response.json()
        except (httpx.HTTPError, ValueError) as e:
            self.logger.warning("Endpoint health check failed", endpoint=self.endpoint_name, error=str(e))
            return {
                "endpoint": self.endpoint_name,
                "status": "unhealthy",
                "error": str(e),
                "response_time": time.time() - start_time,
            }

        healthy = data.get("result") == "ok"
        return {
            "endpoint": self.endpoint_name,
            "status": "healthy" if healthy else "degraded",
            "error": None if healthy else data.get("error"),
            "response_time": time.time() - start_time,
        }

