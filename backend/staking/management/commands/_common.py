"""
Helpers shared by the staking management commands.
"""

from datetime import datetime, timezone
from typing import Optional

from django.core.management.base import CommandError
from solders.keypair import Keypair

from staking.config import SECONDS_PER_DAY
from staking.errors import KeypairError
from staking.keypair import load_keypair

LAMPORTS_PER_SOL = 1_000_000_000


def add_keypair_argument(parser):
    parser.add_argument(
        '--keypair',
        type=str,
        help='Keypair file or base58 secret (defaults to SOLANA_KEYPAIR_PATH)',
    )


def load_signer(keypair_option: Optional[str]) -> Keypair:
    """Load the --keypair source, else SOLANA_PRIVATE_KEY or SOLANA_KEYPAIR_PATH."""
    try:
        return load_keypair(keypair_option or None)
    except KeypairError as e:
        raise CommandError(f"Failed to load keypair: {e}")


def format_sol(lamports: int) -> str:
    return f"{lamports / LAMPORTS_PER_SOL:.6f} SOL"


def format_duration(seconds: int) -> str:
    days = seconds // SECONDS_PER_DAY
    if days >= 365:
        return f"{days // 365} year(s)"
    if days >= 30:
        return f"{days // 30} month(s)"
    return f"{days} day(s)"


def format_timestamp(timestamp: int) -> str:
    return datetime.fromtimestamp(timestamp, tz=timezone.utc).strftime('%Y-%m-%d %H:%M UTC')
