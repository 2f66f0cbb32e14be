"""
Django management command for staking account diagnostics.
"""

from django.core.management.base import BaseCommand

from staking.accounts import get_user_stake_ata, get_user_token_ata
from staking.services import get_staking_service

from ._common import add_keypair_argument, format_sol, load_signer


class Command(BaseCommand):
    help = 'Check wallet balances, token accounts and stake receipts'

    def add_arguments(self, parser):
        parser.add_argument(
            '--nonces',
            type=int,
            default=3,
            help='Number of receipt nonces to check (default: 3)',
        )
        add_keypair_argument(parser)

    def handle(self, *args, **options):
        service = get_staking_service()
        client = service.client
        deployment = service.deployment

        self.stdout.write(self.style.SUCCESS('🔍 Staking Account Diagnostics'))
        self.stdout.write('=' * 40)

        health = client.check_health()
        self.stdout.write(f"\n🌐 RPC endpoint: {health['endpoint']} ({health['status']})")

        owner = load_signer(options['keypair']).pubkey()
        self.stdout.write(f"👤 Wallet: {owner}\n")

        self.stdout.write("📋 Program Addresses:")
        self.stdout.write(f"   Program ID:   {deployment.program_id}")
        self.stdout.write(f"   Stake Pool:   {deployment.stake_pool}")
        self.stdout.write(f"   Mint:         {deployment.mint}")
        self.stdout.write(f"   Stake Mint:   {deployment.stake_mint}")
        self.stdout.write(f"   Vault:        {deployment.vault}")
        for index, vault in enumerate(deployment.reward_vaults):
            self.stdout.write(f"   Reward Vault {index}: {vault}")

        self.stdout.write(f"\n💰 SOL Balance: {format_sol(client.get_sol_balance(owner))}")

        token_ata = get_user_token_ata(owner, deployment)
        self.stdout.write(f"\n🪙  Token Account: {token_ata}")
        if client.account_exists(token_ata):
            balance = deployment.to_ui_amount(client.get_token_balance(owner))
            self.stdout.write(self.style.SUCCESS("   ✅ Exists"))
            self.stdout.write(f"   Balance: {balance:.2f}")
        else:
            self.stdout.write(self.style.ERROR("   ❌ Does not exist"))
            self.stdout.write("   You need to hold tokens first!")

        stake_ata = get_user_stake_ata(owner, deployment)
        self.stdout.write(f"\n📊 Stake Token Account: {stake_ata}")
        if client.account_exists(stake_ata):
            balance = deployment.to_ui_amount(client.get_stake_balance(owner))
            self.stdout.write(self.style.SUCCESS("   ✅ Exists"))
            self.stdout.write(f"   Balance: {balance:.2f}")
        else:
            self.stdout.write(self.style.WARNING("   ❌ Does not exist"))
            self.stdout.write("   Will be created automatically with the first stake")

        self.stdout.write("\n🎫 Stake Deposit Receipts:")
        for nonce in range(options['nonces']):
            receipt, bump = client.derive_receipt(owner, nonce)
            exists = client.account_exists(receipt)
            marker = "✅ EXISTS" if exists else "❌ Not initialized"
            self.stdout.write(f"   Nonce {nonce}: {receipt} (bump: {bump}) {marker}")

        self.stdout.write("\n🏦 Pool Accounts:")
        pool_accounts = [
            ("Stake Pool", deployment.stake_pool),
            ("Vault", deployment.vault),
            ("Stake Mint", deployment.stake_mint),
        ] + [
            (f"Reward Vault {index}", vault)
            for index, vault in enumerate(deployment.reward_vaults)
        ]
        for label, address in pool_accounts:
            marker = "✅" if client.account_exists(address) else "❌ missing"
            self.stdout.write(f"   {label}: {address} {marker}")
