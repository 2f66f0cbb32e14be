"""
BONK staking client.

Derives stake deposit receipt addresses, builds deposit instructions for the
spl-token-staking program and submits them through a Solana RPC endpoint.

    from staking import BonkStakingClient
    from staking.keypair import load_keypair

    client = BonkStakingClient("https://api.mainnet-beta.solana.com")
    user = load_keypair("~/.config/solana/id.json")

    # Stake 100 BONK (5 decimals) for 180 days
    signature = client.stake(user, 10_000_000, 180)
"""

from .clients.staking_client import BonkStakingClient
from .config import BONK_MAINNET, StakingDeployment, ClientSettings
from .errors import StakingError
from .instructions import StakeConfig, build_stake_instruction, encode_deposit_data
from .pda import derive_stake_deposit_receipt

__all__ = [
    'BonkStakingClient',
    'BONK_MAINNET',
    'StakingDeployment',
    'ClientSettings',
    'StakingError',
    'StakeConfig',
    'build_stake_instruction',
    'encode_deposit_data',
    'derive_stake_deposit_receipt',
]
