from .staking_client import BonkStakingClient

__all__ = ['BonkStakingClient']
