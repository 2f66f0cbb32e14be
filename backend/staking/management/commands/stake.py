"""
Django management command to stake tokens into the stake pool.
"""

from django.core.management.base import BaseCommand, CommandError

from staking.config import LOCK_DURATION_DAYS
from staking.errors import StakingError, TransactionFailedError
from staking.instructions import validate_nonce
from staking.services import get_staking_service

from ._common import add_keypair_argument, format_sol, load_signer

# Minimum SOL kept for fees and the receipt account rent
MIN_SOL_FOR_FEES = 10_000_000

DURATION_CHOICES = {
    '1': 30,
    '2': 90,
    '3': 180,
    '4': 365,
}


class Command(BaseCommand):
    help = 'Stake tokens into the stake pool for a fixed lock duration'

    def add_arguments(self, parser):
        parser.add_argument(
            '--amount',
            type=float,
            help='Amount to stake in UI units (e.g. 100.5); prompted when omitted',
        )
        parser.add_argument(
            '--days',
            type=int,
            choices=LOCK_DURATION_DAYS,
            help='Lock duration in days; prompted when omitted',
        )
        parser.add_argument(
            '--nonce',
            type=int,
            help='Nonce of the stake position (first free nonce when omitted)',
        )
        parser.add_argument(
            '--yes',
            action='store_true',
            help='Skip the confirmation prompt',
        )
        parser.add_argument(
            '--dry-run',
            action='store_true',
            help='Validate and build the transaction without sending it',
        )
        add_keypair_argument(parser)

    def handle(self, *args, **options):
        if options['nonce'] is not None:
            try:
                validate_nonce(options['nonce'])
            except StakingError as e:
                raise CommandError(str(e))

        service = get_staking_service()
        client = service.client
        deployment = service.deployment

        self.stdout.write(self.style.SUCCESS('\n=== STAKING CLI ===\n'))

        payer = load_signer(options['keypair'])
        owner = payer.pubkey()
        self.stdout.write(f"Wallet: {owner}")

        sol_balance = client.get_sol_balance(owner)
        token_balance = client.get_token_balance(owner)
        ui_balance = deployment.to_ui_amount(token_balance)

        self.stdout.write("\nBalances:")
        self.stdout.write(f"  SOL:   {format_sol(sol_balance)}")
        self.stdout.write(f"  Token: {ui_balance:.2f}")

        if sol_balance < MIN_SOL_FOR_FEES:
            raise CommandError("Insufficient SOL for transaction fees")
        if token_balance == 0:
            raise CommandError("Insufficient token balance")

        amount_ui = options['amount']
        if amount_ui is None:
            amount_ui = self._prompt_amount(ui_balance)
        amount = deployment.to_base_units(amount_ui)
        if amount <= 0 or amount > token_balance:
            raise CommandError("Invalid amount")

        days = options['days']
        if days is None:
            days = self._prompt_duration()

        try:
            nonce = options['nonce']
            if nonce is None:
                nonce = client.find_next_available_nonce(owner)
            receipt, _ = client.derive_receipt(owner, nonce)

            self.stdout.write("\n--- SUMMARY ---")
            self.stdout.write(f"Amount:   {amount_ui:.2f} ({amount} base units)")
            self.stdout.write(f"Duration: {days} days")
            self.stdout.write(f"Nonce:    {nonce}")
            self.stdout.write(f"Receipt:  {receipt}")

            if options['dry_run']:
                _, instructions = client.prepare_stake(owner, amount, days, nonce)
                self.stdout.write(
                    self.style.SUCCESS(
                        f"\nDry run: built {len(instructions)} instructions, "
                        f"deposit data {len(instructions[-1].data)} bytes. Nothing sent."
                    )
                )
                return

            if not options['yes'] and not self._confirm():
                self.stdout.write(self.style.WARNING("Cancelled"))
                return

            self.stdout.write("\nSending transaction...")
            signature = client.stake(payer, amount, days, nonce)

        except TransactionFailedError as e:
            self.stdout.write(self.style.ERROR('\n=== FAILED ==='))
            self.stdout.write(f"Error: {e}")
            message = str(e)
            if '0xbbf' in message or '3007' in message:
                self.stdout.write(
                    "\nThis error indicates an account ownership issue. "
                    f"Check the configured stake pool: {deployment.stake_pool}"
                )
            raise CommandError(f"Staking failed: {e}")
        except StakingError as e:
            raise CommandError(str(e))

        self.stdout.write(self.style.SUCCESS('\n=== SUCCESS ==='))
        self.stdout.write(f"Transaction: {signature}")
        self.stdout.write(f"View: https://solscan.io/tx/{signature}")
        self.stdout.write("\nStake Details:")
        self.stdout.write(f"  Amount: {amount_ui:.2f}")
        self.stdout.write(f"  Unlock: {days} days from now")
        self.stdout.write(f"  Nonce:  {nonce}")

    def _prompt_amount(self, ui_balance: float) -> float:
        raw = input(f"Amount to stake (max {ui_balance:.2f}): ").strip()
        try:
            return float(raw)
        except ValueError:
            raise CommandError("Invalid amount")

    def _prompt_duration(self) -> int:
        self.stdout.write("\nLock Duration:")
        self.stdout.write("  1) 1 month   (30 days)")
        self.stdout.write("  2) 3 months  (90 days)")
        self.stdout.write("  3) 6 months  (180 days)")
        self.stdout.write("  4) 12 months (365 days)")
        choice = input("Choice (1-4): ").strip()
        if choice not in DURATION_CHOICES:
            raise CommandError("Invalid choice")
        return DURATION_CHOICES[choice]

    def _confirm(self) -> bool:
        answer = input("\nProceed? (yes/no): ").strip().lower()
        return answer in ('y', 'yes')
