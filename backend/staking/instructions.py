"""
Instruction builders for BONK staking operations.
"""

import struct
from dataclasses import dataclass
from typing import List

from solders.compute_budget import set_compute_unit_price
from solders.hash import Hash
from solders.instruction import AccountMeta, Instruction
from solders.keypair import Keypair
from solders.pubkey import Pubkey
from solders.system_program import ID as SYSTEM_PROGRAM_ID
from solders.sysvar import RENT
from solders.transaction import Transaction
from spl.token.constants import TOKEN_PROGRAM_ID
from spl.token.instructions import create_idempotent_associated_token_account

from .accounts import get_user_stake_ata, get_user_token_ata
from .config import (
    BONK_MAINNET,
    DEFAULT_PRIORITY_FEE,
    DURATION_3_MONTHS,
    LOCK_DURATION_DAYS,
    StakingDeployment,
    lock_duration_seconds,
)
from .errors import InvalidAmountError, InvalidDurationError, InvalidNonceError
from .pda import derive_stake_deposit_receipt

# Anchor discriminator of the "deposit" instruction (from the program IDL)
DEPOSIT_DISCRIMINATOR = bytes([242, 35, 198, 137, 82, 225, 242, 182])

# discriminator(8) | nonce u32 | amount u64 | lockup_duration u64
DEPOSIT_DATA_LAYOUT = struct.Struct("<8sIQQ")
DEPOSIT_DATA_SIZE = DEPOSIT_DATA_LAYOUT.size

MAX_NONCE = 0xFFFFFFFF


@dataclass(frozen=True)
class StakeConfig:
    """Parameters of one deposit into the stake pool."""
    amount: int = 10_000_000  # 100 BONK (5 decimals)
    lockup_duration: int = lock_duration_seconds(DURATION_3_MONTHS)
    nonce: int = 0

    @classmethod
    def from_days(cls, amount: int, lock_duration_days: int, nonce: int = 0) -> 'StakeConfig':
        """Build a config from a duration in days, validating amount, duration and nonce."""
        validate_amount(amount)
        return cls(
            amount=amount,
            lockup_duration=validate_lock_duration(lock_duration_days),
            nonce=validate_nonce(nonce),
        )

    @property
    def lock_duration_days(self) -> int:
        return self.lockup_duration // lock_duration_seconds(1)


def validate_amount(amount: int) -> int:
    if amount <= 0:
        raise InvalidAmountError("Amount must be greater than 0")
    return amount


def validate_lock_duration(days: int) -> int:
    """Return the lock duration in seconds for an accepted number of days."""
    if days not in LOCK_DURATION_DAYS:
        raise InvalidDurationError("Duration must be 30, 90, 180, or 365 days")
    return lock_duration_seconds(days)


def validate_nonce(nonce: int) -> int:
    if not 0 <= nonce <= MAX_NONCE:
        raise InvalidNonceError(f"Nonce must be between 0 and {MAX_NONCE}")
    return nonce


def encode_deposit_data(amount: int, lock_duration: int, nonce: int) -> bytes:
    """Encode the 28-byte deposit instruction payload."""
    return DEPOSIT_DATA_LAYOUT.pack(DEPOSIT_DISCRIMINATOR, nonce, amount, lock_duration)


def build_stake_instruction(
    user: Pubkey,
    amount: int,
    lock_duration: int,
    nonce: int,
    deployment: StakingDeployment = BONK_MAINNET,
) -> Instruction:
    """
    Build the deposit (stake) instruction.

    Args:
        user: The user's public key, both payer and owner
        amount: Amount to stake in base units, not UI amount
        lock_duration: Lock duration in seconds
        nonce: Nonce for the stake deposit receipt PDA
        deployment: Addresses of the stake pool deployment

    Returns:
        The deposit instruction
    """
    stake_deposit_receipt, _ = derive_stake_deposit_receipt(
        user, deployment.stake_pool, nonce, deployment.program_id
    )

    accounts = [
        AccountMeta(pubkey=user, is_signer=True, is_writable=True),                         # payer
        AccountMeta(pubkey=user, is_signer=True, is_writable=True),                         # owner
        AccountMeta(pubkey=get_user_token_ata(user, deployment), is_signer=False, is_writable=True),  # from
        AccountMeta(pubkey=deployment.vault, is_signer=False, is_writable=True),
        AccountMeta(pubkey=deployment.stake_mint, is_signer=False, is_writable=True),
        AccountMeta(pubkey=get_user_stake_ata(user, deployment), is_signer=False, is_writable=True),  # destination
        AccountMeta(pubkey=deployment.stake_pool, is_signer=False, is_writable=True),
        AccountMeta(pubkey=stake_deposit_receipt, is_signer=False, is_writable=True),
        AccountMeta(pubkey=TOKEN_PROGRAM_ID, is_signer=False, is_writable=False),
        AccountMeta(pubkey=RENT, is_signer=False, is_writable=False),
        AccountMeta(pubkey=SYSTEM_PROGRAM_ID, is_signer=False, is_writable=False),
    ]

    # Remaining accounts: one vault per reward pool, in StakePool.reward_pools order
    accounts.extend(
        AccountMeta(pubkey=vault, is_signer=False, is_writable=True)
        for vault in deployment.reward_vaults
    )

    return Instruction(
        program_id=deployment.program_id,
        accounts=accounts,
        data=encode_deposit_data(amount, lock_duration, nonce),
    )


def build_compute_budget_price_instruction(micro_lamports: int = DEFAULT_PRIORITY_FEE) -> Instruction:
    """Build a SetComputeUnitPrice instruction (price per CU in micro-lamports)."""
    return set_compute_unit_price(micro_lamports)


def build_deposit_instructions(
    user: Pubkey,
    config: StakeConfig,
    deployment: StakingDeployment = BONK_MAINNET,
    priority_fee: int = DEFAULT_PRIORITY_FEE,
) -> List[Instruction]:
    """
    Build every instruction of a deposit transaction, in submission order:
    compute unit price, idempotent creation of the stake token account,
    and the deposit itself.
    """
    return [
        build_compute_budget_price_instruction(priority_fee),
        create_idempotent_associated_token_account(
            payer=user,
            owner=user,
            mint=deployment.stake_mint,
            token_program_id=TOKEN_PROGRAM_ID,
        ),
        build_stake_instruction(
            user,
            config.amount,
            config.lockup_duration,
            config.nonce,
            deployment,
        ),
    ]


def build_deposit_transaction(
    payer: Keypair,
    config: StakeConfig,
    recent_blockhash: Hash,
    deployment: StakingDeployment = BONK_MAINNET,
    priority_fee: int = DEFAULT_PRIORITY_FEE,
) -> Transaction:
    """Build and sign a deposit transaction paid for and owned by ``payer``."""
    instructions = build_deposit_instructions(
        payer.pubkey(), config, deployment, priority_fee
    )
    return build_signed_transaction(instructions, payer, recent_blockhash)


def build_signed_transaction(
    instructions: List[Instruction],
    payer: Keypair,
    recent_blockhash: Hash,
) -> Transaction:
    """Sign ``instructions`` as a transaction paid for by ``payer``."""
    return Transaction.new_signed_with_payer(
        instructions,
        payer.pubkey(),
        [payer],
        recent_blockhash,
    )
