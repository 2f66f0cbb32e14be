"""
Django management command to decode the StakePool account.
"""

from django.core.management.base import BaseCommand, CommandError

from staking.config import SECONDS_PER_DAY
from staking.errors import StakingError
from staking.services import get_staking_service


class Command(BaseCommand):
    help = 'Decode the stake pool account and list its reward vaults'

    def handle(self, *args, **options):
        service = get_staking_service()
        client = service.client
        deployment = service.deployment

        self.stdout.write(f"Inspecting StakePool {deployment.stake_pool}...\n")

        try:
            pool = client.get_stake_pool()
        except StakingError as e:
            raise CommandError(f"Failed to load stake pool: {e}")

        self.stdout.write(self.style.SUCCESS("StakePool Details:"))
        self.stdout.write(f"  Authority:            {pool.authority}")
        self.stdout.write(f"  Total Weighted Stake: {pool.total_weighted_stake}")
        self.stdout.write(f"  Vault:                {pool.vault}")
        self.stdout.write(f"  Mint:                 {pool.mint}")
        self.stdout.write(f"  Stake Mint:           {pool.stake_mint}")
        self.stdout.write(f"  Base Weight:          {pool.base_weight}")
        self.stdout.write(f"  Max Weight:           {pool.max_weight}")
        self.stdout.write(
            f"  Min Duration:         {pool.min_duration} seconds "
            f"({pool.min_duration // SECONDS_PER_DAY} days)"
        )
        self.stdout.write(
            f"  Max Duration:         {pool.max_duration} seconds "
            f"({pool.max_duration // SECONDS_PER_DAY} days)"
        )

        self.stdout.write("\nReward Pools:")
        for index, reward_pool in enumerate(pool.reward_pools):
            if not reward_pool.is_active:
                continue
            self.stdout.write(f"  Pool {index}: {reward_pool.reward_vault}")
            self.stdout.write(f"    Rewards per stake: {reward_pool.rewards_per_effective_stake}")
            self.stdout.write(f"    Last amount: {reward_pool.last_amount}")

        active_vaults = pool.active_reward_vaults
        if list(deployment.reward_vaults) != active_vaults:
            self.stdout.write(
                self.style.WARNING(
                    "\n⚠️  Configured reward vaults differ from the on-chain reward pools; "
                    "deposits will be rejected until STAKING_REWARD_VAULTS is updated."
                )
            )

        self.stdout.write("\n--- Configuration ---")
        self.stdout.write(
            "STAKING_REWARD_VAULTS=" + ",".join(str(vault) for vault in active_vaults)
        )
