"""
Program derived address helpers for the stake program.
"""

import struct
from typing import Tuple

from solders.pubkey import Pubkey

# camelCase, must match the stake program byte for byte
STAKE_DEPOSIT_RECEIPT_SEED = b"stakeDepositReceipt"


def stake_deposit_receipt_seeds(owner: Pubkey, stake_pool: Pubkey, nonce: int) -> list:
    """Seeds for the receipt PDA: owner, pool, nonce (u32 LE), seed literal."""
    return [
        bytes(owner),
        bytes(stake_pool),
        struct.pack("<I", nonce),
        STAKE_DEPOSIT_RECEIPT_SEED,
    ]


def derive_stake_deposit_receipt(
    owner: Pubkey,
    stake_pool: Pubkey,
    nonce: int,
    program_id: Pubkey,
) -> Tuple[Pubkey, int]:
    """
    Derive the stake deposit receipt PDA.

    Args:
        owner: The owner/user public key
        stake_pool: The stake pool public key
        nonce: Nonce of the stake position
        program_id: The stake program id

    Returns:
        Tuple of (PDA address, bump seed)
    """
    seeds = stake_deposit_receipt_seeds(owner, stake_pool, nonce)
    return Pubkey.find_program_address(seeds, program_id)
