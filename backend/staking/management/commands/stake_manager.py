"""
Django management command to list a wallet's stake positions.
"""

import json
import time

from django.core.management.base import BaseCommand, CommandError
from solders.pubkey import Pubkey

from staking.services import get_staking_service

from ._common import add_keypair_argument, format_duration, format_timestamp, load_signer


class Command(BaseCommand):
    help = 'Show stake positions, unlock status and totals for a wallet'

    def add_arguments(self, parser):
        parser.add_argument(
            '--owner',
            type=str,
            help='Wallet address to inspect (defaults to the keypair pubkey)',
        )
        parser.add_argument(
            '--max-nonce',
            type=int,
            default=20,
            help='Number of nonces to scan (default: 20)',
        )
        parser.add_argument(
            '--save-result',
            type=str,
            help='Save positions as JSON to the specified file',
        )
        add_keypair_argument(parser)

    def handle(self, *args, **options):
        service = get_staking_service()
        client = service.client
        deployment = service.deployment

        if options['owner']:
            try:
                owner = Pubkey.from_string(options["owner"])
            except ValueError as e:
                raise CommandError(f"Invalid owner address: {e}")
        else:
            owner = load_signer(options['keypair']).pubkey()

        self.stdout.write(self.style.SUCCESS('📊 Stake Manager'))
        self.stdout.write(f"👤 Wallet: {owner}\n")

        stake_balance = client.get_stake_balance(owner)
        self.stdout.write(f"💎 Stake token balance: {deployment.to_ui_amount(stake_balance):.2f}\n")

        max_nonce = options['max_nonce']
        self.stdout.write(f"🔍 Scanning for stake positions (nonces 0-{max_nonce - 1})...")

        stakes = client.get_user_stakes(owner, max_nonce=max_nonce)
        now = int(time.time())
        total_staked = 0

        for stake in stakes:
            self.stdout.write(f"\n📌 Stake Position #{stake.nonce}")
            self.stdout.write(f"   Receipt: {stake.receipt_address}")

            if not stake.decoded:
                self.stdout.write(self.style.WARNING("   ⚠️  Could not decode stake data"))
                continue

            total_staked += stake.amount
            if stake.is_locked(now):
                status = f"🔒 {stake.remaining_lock_time(now) // 86400} days remaining"
            else:
                status = "🔓 Unlocked - Ready to withdraw!"

            self.stdout.write(f"   Amount staked:   {deployment.to_ui_amount(stake.amount):.2f}")
            self.stdout.write(f"   Effective stake: {stake.effective_stake}")
            self.stdout.write(f"   Lock duration:   {format_duration(stake.lock_duration)}")
            self.stdout.write(f"   Staked on:       {format_timestamp(stake.created_at)}")
            self.stdout.write(f"   Status:          {status}")
            self.stdout.write(f"   Multiplier:      {stake.reward_multiplier}x")

        if not stakes:
            self.stdout.write(self.style.WARNING("\n❌ No active stake positions found"))
        else:
            self.stdout.write("\n📈 Summary:")
            self.stdout.write(f"   Active positions: {len(stakes)}")
            self.stdout.write(f"   Total staked:     {deployment.to_ui_amount(total_staked):.2f}")

        if options['save_result']:
            with open(options['save_result'], 'w') as f:
                json.dump([stake.to_dict() for stake in stakes], f, indent=2)
            self.stdout.write(f"Positions saved to {options['save_result']}")
