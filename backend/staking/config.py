"""
Solana staking configuration for the BONK stake pool client.
"""

import os
from dataclasses import dataclass, field, replace
from typing import List, Dict, Any, Tuple

from solders.pubkey import Pubkey

# Default Solana RPC endpoints for different networks
SOLANA_RPC_ENDPOINTS = {
    'mainnet': [
        {
            'name': 'Solana Mainnet (Official)',
            'url': 'https://api.mainnet-beta.solana.com',
            'priority': 1
        },
    ],
    'devnet': [
        {
            'name': 'Solana Devnet (Official)',
            'url': 'https://api.devnet.solana.com',
            'priority': 1
        },
    ],
}

SECONDS_PER_DAY = 24 * 60 * 60

# Accepted lock durations in days
DURATION_1_MONTH = 30
DURATION_3_MONTHS = 90
DURATION_6_MONTHS = 180
DURATION_12_MONTHS = 365

LOCK_DURATION_DAYS = (
    DURATION_1_MONTH,
    DURATION_3_MONTHS,
    DURATION_6_MONTHS,
    DURATION_12_MONTHS,
)

# Priority fee observed on successful deposits, in micro-lamports per CU
DEFAULT_PRIORITY_FEE = 5045

DEFAULT_NONCE_PROBE_LIMIT = 100


@dataclass(frozen=True)
class StakingDeployment:
    """Fixed addresses of one deployment of the stake program."""
    name: str
    program_id: Pubkey
    stake_pool: Pubkey
    mint: Pubkey
    vault: Pubkey
    stake_mint: Pubkey
    # Must follow the order of StakePool.reward_pools
    reward_vaults: Tuple[Pubkey, ...] = field(default_factory=tuple)
    decimals: int = 5

    def to_base_units(self, ui_amount: float) -> int:
        """Convert a UI amount (e.g. 100.5 BONK) into base units."""
        return int(round(ui_amount * 10 ** self.decimals))

    def to_ui_amount(self, base_units: int) -> float:
        """Convert base units into a UI amount."""
        return base_units / 10 ** self.decimals

    def to_dict(self) -> Dict[str, Any]:
        return {
            'name': self.name,
            'program_id': str(self.program_id),
            'stake_pool': str(self.stake_pool),
            'mint': str(self.mint),
            'vault': str(self.vault),
            'stake_mint': str(self.stake_mint),
            'reward_vaults': [str(v) for v in self.reward_vaults],
            'decimals': self.decimals,
        }


BONK_MAINNET = StakingDeployment(
    name='bonk-mainnet',
    program_id=Pubkey.from_string('STAKEkKzbdeKkqzKpLkNQD3SUuLgshDKCD7U8duxAbB'),
    stake_pool=Pubkey.from_string('9AdEE8AAm1XgJrPEs4zkTPozr3o4U5iGbgvPwkNdLDJ3'),
    mint=Pubkey.from_string('DezXAZ8z7PnrnRJjz3wXBoRgixCa6xjnB7YaB1pPB263'),
    vault=Pubkey.from_string('4XHP9YQeeXPXHAjNXuKio1na1ypcxFSqFYBHtptQticd'),
    stake_mint=Pubkey.from_string('FYUjeMAFjbTzdMG91RSW5P4HT2sT7qzJQgDPiPG9ez9o'),
    reward_vaults=(
        Pubkey.from_string('2PPAJ8P5JgKZjkxq4h3kFSwLcuakFYr4fbV68jGghWxi'),
    ),
    decimals=5,
)

STAKING_DEPLOYMENTS = {
    'mainnet': BONK_MAINNET,
}


@dataclass(frozen=True)
class ClientSettings:
    """Runtime knobs for BonkStakingClient."""
    commitment: str = 'confirmed'
    priority_fee: int = DEFAULT_PRIORITY_FEE
    nonce_probe_limit: int = DEFAULT_NONCE_PROBE_LIMIT
    confirm_timeout: float = 60.0
    confirm_poll_interval: float = 2.0
    timeout: int = 30


def lock_duration_seconds(days: int) -> int:
    """Convert one of the accepted lock durations to seconds."""
    return days * SECONDS_PER_DAY


def _pubkey_override(env_name: str, default: Pubkey) -> Pubkey:
    value = os.getenv(env_name)
    if not value:
        return default
    return Pubkey.from_string(value.strip())


def get_deployment(network: str = None) -> StakingDeployment:
    """
    Get the staking deployment for a network, with environment overrides.

    Any of STAKING_PROGRAM_ID, STAKING_POOL, STAKING_MINT, STAKING_VAULT,
    STAKING_STAKE_MINT and STAKING_REWARD_VAULTS (comma separated) replaces
    the corresponding address of the base deployment.
    """
    if network is None:
        network = os.getenv('SOLANA_NETWORK', 'mainnet').lower()

    base = STAKING_DEPLOYMENTS.get(network, BONK_MAINNET)

    reward_vaults = base.reward_vaults
    custom_vaults = os.getenv('STAKING_REWARD_VAULTS')
    if custom_vaults:
        reward_vaults = tuple(
            Pubkey.from_string(v.strip()) for v in custom_vaults.split(',') if v.strip()
        )

    return replace(
        base,
        program_id=_pubkey_override('STAKING_PROGRAM_ID', base.program_id),
        stake_pool=_pubkey_override('STAKING_POOL', base.stake_pool),
        mint=_pubkey_override('STAKING_MINT', base.mint),
        vault=_pubkey_override('STAKING_VAULT', base.vault),
        stake_mint=_pubkey_override('STAKING_STAKE_MINT', base.stake_mint),
        reward_vaults=reward_vaults,
        decimals=int(os.getenv('STAKING_DECIMALS', str(base.decimals))),
    )


def get_rpc_endpoints(network: str = None) -> List[Dict[str, Any]]:
    """Get RPC endpoints for the specified network."""
    if network is None:
        network = os.getenv('SOLANA_NETWORK', 'mainnet').lower()

    return SOLANA_RPC_ENDPOINTS.get(network, SOLANA_RPC_ENDPOINTS['mainnet'])


def get_staking_config() -> Dict[str, Any]:
    """Get staking configuration from environment variables."""
    network = os.getenv('SOLANA_NETWORK', 'mainnet').lower()

    rpc_endpoints = get_rpc_endpoints(network)

    # Allow custom RPC endpoint override
    custom_rpc = os.getenv('SOLANA_RPC_URL')
    if custom_rpc:
        rpc_endpoints = [
            {
                'name': 'Custom RPC',
                'url': custom_rpc,
                'priority': 0  # Highest priority
            }
        ] + rpc_endpoints

    settings = ClientSettings(
        commitment=os.getenv('SOLANA_COMMITMENT', 'confirmed').lower(),
        priority_fee=int(os.getenv('STAKING_PRIORITY_FEE', str(DEFAULT_PRIORITY_FEE))),
        nonce_probe_limit=int(os.getenv('STAKING_NONCE_PROBE_LIMIT', str(DEFAULT_NONCE_PROBE_LIMIT))),
        confirm_timeout=float(os.getenv('STAKING_CONFIRM_TIMEOUT', '60')),
        confirm_poll_interval=float(os.getenv('STAKING_CONFIRM_POLL_INTERVAL', '2.0')),
        timeout=int(os.getenv('SOLANA_TIMEOUT', '30')),
    )

    return {
        'network': network,
        'rpc_endpoints': rpc_endpoints,
        'rpc_url': rpc_endpoints[0]['url'],
        'deployment': get_deployment(network),
        'settings': settings,
    }
