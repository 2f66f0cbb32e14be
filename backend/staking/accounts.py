"""
Token accounts and on-chain account layouts for the stake program.

Receipt and pool accounts are Anchor accounts: an 8-byte discriminator
followed by the borsh encoded struct.
"""

import hashlib
from dataclasses import dataclass
from typing import Any, Dict, List, Optional

from borsh_construct import CStruct, U8, U64, U128, I64
from construct import ConstructError
from solders.pubkey import Pubkey
from spl.token.instructions import get_associated_token_address

from .config import StakingDeployment, SECONDS_PER_DAY
from .errors import AccountDecodeError

ACCOUNT_DISCRIMINATOR_SIZE = 8
MAX_REWARD_POOLS = 10

PubkeyLayout = U8[32]

RewardPoolLayout = CStruct(
    "reward_vault" / PubkeyLayout,
    "rewards_per_effective_stake" / U128,
    "last_amount" / U64,
    "padding0" / U8[8],
)

StakePoolLayout = CStruct(
    "authority" / PubkeyLayout,
    "total_weighted_stake" / U128,
    "vault" / PubkeyLayout,
    "mint" / PubkeyLayout,
    "stake_mint" / PubkeyLayout,
    "reward_pools" / RewardPoolLayout[MAX_REWARD_POOLS],
    "base_weight" / U64,
    "max_weight" / U64,
    "min_duration" / U64,
    "max_duration" / U64,
    "nonce" / U8,
    "bump_seed" / U8,
    "padding0" / U8[6],
    "reserved0" / U8[8],
)

StakeDepositReceiptLayout = CStruct(
    "owner" / PubkeyLayout,
    "payer" / PubkeyLayout,
    "stake_pool" / PubkeyLayout,
    "lockup_duration" / U64,
    "deposit_timestamp" / I64,
    "deposit_amount" / U64,
    "effective_stake" / U128,
    "claimed_amounts" / U128[MAX_REWARD_POOLS],
)


def get_user_token_ata(user: Pubkey, deployment: StakingDeployment) -> Pubkey:
    """Get the user's staked-token account (e.g. BONK ATA)."""
    return get_associated_token_address(user, deployment.mint)


def get_user_stake_ata(user: Pubkey, deployment: StakingDeployment) -> Pubkey:
    """Get the user's stake token account (ATA) for the stake mint."""
    return get_associated_token_address(user, deployment.stake_mint)


def _to_pubkey(raw) -> Pubkey:
    return Pubkey(bytes(raw))


def account_discriminator(name: str) -> bytes:
    """Anchor account discriminator: sha256("account:<Name>")[:8]."""
    return hashlib.sha256(f"account:{name}".encode()).digest()[:ACCOUNT_DISCRIMINATOR_SIZE]


def _parse(layout, data: bytes, name: str):
    if data is None or len(data) < ACCOUNT_DISCRIMINATOR_SIZE:
        raise AccountDecodeError(f"{name} account data too short")
    if bytes(data[:ACCOUNT_DISCRIMINATOR_SIZE]) != account_discriminator(name):
        raise AccountDecodeError(f"Account is not a {name}")
    try:
        return layout.parse(bytes(data[ACCOUNT_DISCRIMINATOR_SIZE:]))
    except ConstructError as e:
        raise AccountDecodeError(f"Failed to decode {name}: {e}") from e


@dataclass(frozen=True)
class RewardPool:
    reward_vault: Pubkey
    rewards_per_effective_stake: int
    last_amount: int

    @property
    def is_active(self) -> bool:
        return self.reward_vault != Pubkey.default()


@dataclass(frozen=True)
class StakePool:
    """Decoded StakePool account."""
    authority: Pubkey
    total_weighted_stake: int
    vault: Pubkey
    mint: Pubkey
    stake_mint: Pubkey
    reward_pools: List[RewardPool]
    base_weight: int
    max_weight: int
    min_duration: int
    max_duration: int
    nonce: int
    bump_seed: int

    @property
    def active_reward_vaults(self) -> List[Pubkey]:
        """Reward vaults in reward pool order, skipping unused slots."""
        return [pool.reward_vault for pool in self.reward_pools if pool.is_active]


@dataclass(frozen=True)
class StakeDepositReceipt:
    """Decoded StakeDepositReceipt account."""
    owner: Pubkey
    payer: Pubkey
    stake_pool: Pubkey
    lockup_duration: int
    deposit_timestamp: int
    deposit_amount: int
    effective_stake: int
    claimed_amounts: List[int]


def decode_stake_pool(data: bytes) -> StakePool:
    parsed = _parse(StakePoolLayout, data, "StakePool")
    return StakePool(
        authority=_to_pubkey(parsed.authority),
        total_weighted_stake=parsed.total_weighted_stake,
        vault=_to_pubkey(parsed.vault),
        mint=_to_pubkey(parsed.mint),
        stake_mint=_to_pubkey(parsed.stake_mint),
        reward_pools=[
            RewardPool(
                reward_vault=_to_pubkey(pool.reward_vault),
                rewards_per_effective_stake=pool.rewards_per_effective_stake,
                last_amount=pool.last_amount,
            )
            for pool in parsed.reward_pools
        ],
        base_weight=parsed.base_weight,
        max_weight=parsed.max_weight,
        min_duration=parsed.min_duration,
        max_duration=parsed.max_duration,
        nonce=parsed.nonce,
        bump_seed=parsed.bump_seed,
    )


def decode_stake_deposit_receipt(data: bytes) -> StakeDepositReceipt:
    parsed = _parse(StakeDepositReceiptLayout, data, "StakeDepositReceipt")
    return StakeDepositReceipt(
        owner=_to_pubkey(parsed.owner),
        payer=_to_pubkey(parsed.payer),
        stake_pool=_to_pubkey(parsed.stake_pool),
        lockup_duration=parsed.lockup_duration,
        deposit_timestamp=parsed.deposit_timestamp,
        deposit_amount=parsed.deposit_amount,
        effective_stake=parsed.effective_stake,
        claimed_amounts=list(parsed.claimed_amounts),
    )


@dataclass
class StakeInfo:
    """Information about one stake position of a user."""
    receipt_address: Pubkey
    nonce: int
    amount: int = 0
    lock_duration: int = 0
    created_at: int = 0
    unlock_at: int = 0
    effective_stake: int = 0
    decoded: bool = True

    @classmethod
    def from_receipt(
        cls,
        receipt_address: Pubkey,
        nonce: int,
        receipt: StakeDepositReceipt
    ) -> 'StakeInfo':
        return cls(
            receipt_address=receipt_address,
            nonce=nonce,
            amount=receipt.deposit_amount,
            lock_duration=receipt.lockup_duration,
            created_at=receipt.deposit_timestamp,
            unlock_at=receipt.deposit_timestamp + receipt.lockup_duration,
            effective_stake=receipt.effective_stake,
        )

    def is_locked(self, current_time: int) -> bool:
        """Check if the stake is currently locked."""
        return current_time < self.unlock_at

    def remaining_lock_time(self, current_time: int) -> int:
        """Get the remaining lock time in seconds."""
        return max(self.unlock_at - current_time, 0)

    @property
    def lock_duration_days(self) -> int:
        return self.lock_duration // SECONDS_PER_DAY

    @property
    def reward_multiplier(self) -> Optional[float]:
        """Weight multiplier the pool grants for this lock duration."""
        if not self.decoded:
            return None
        if self.lock_duration <= 30 * SECONDS_PER_DAY:
            return 1.0
        if self.lock_duration <= 90 * SECONDS_PER_DAY:
            return 1.5
        if self.lock_duration <= 180 * SECONDS_PER_DAY:
            return 2.25
        return 3.2

    def to_dict(self) -> Dict[str, Any]:
        return {
            'receipt_address': str(self.receipt_address),
            'nonce': self.nonce,
            'amount': self.amount,
            'lock_duration': self.lock_duration,
            'created_at': self.created_at,
            'unlock_at': self.unlock_at,
            'effective_stake': self.effective_stake,
            'decoded': self.decoded,
        }
