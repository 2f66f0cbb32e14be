"""
Django management command to verify receipt PDA derivation against
receipts observed on mainnet.
"""

from django.core.management.base import BaseCommand, CommandError
from solders.pubkey import Pubkey

from staking.services import get_staking_service

# Receipts created by successful mainnet deposits
KNOWN_OWNER = "6tBou5MHL5aWpDy6cgf3wiwGGK2mR8qs68ujtpaoWrf2"
KNOWN_RECEIPTS = {
    1: "7ACZ6QNW4sR3v8ooQzvUrr4ZZ13wg4Dj4ouQSdEknWhj",
    2: "Do2sHbcqswaLupdvjGiTZHh4U9GB3xF3HztsZoeLBmHh",
}


def _parse_expected(value: str):
    nonce, _, address = value.partition('=')
    if not address:
        raise ValueError(f"Expected NONCE=ADDRESS, got {value!r}")
    return int(nonce), address


class Command(BaseCommand):
    help = 'Verify stake deposit receipt derivation against known receipts'

    def add_arguments(self, parser):
        parser.add_argument(
            '--owner',
            type=str,
            default=KNOWN_OWNER,
            help='Owner of the known receipts',
        )
        parser.add_argument(
            '--expected',
            type=_parse_expected,
            action='append',
            help='Known receipt as NONCE=ADDRESS (repeatable)',
        )

    def handle(self, *args, **options):
        client = get_staking_service().client

        owner = Pubkey.from_string(options['owner'])
        if options['expected']:
            expected = dict(options['expected'])
        else:
            expected = KNOWN_RECEIPTS

        self.stdout.write("=== Verifying PDA Derivation ===\n")

        mismatches = []
        for nonce, address in sorted(expected.items()):
            derived, bump = client.derive_receipt(owner, nonce)
            matches = str(derived) == address
            self.stdout.write(f"Nonce {nonce}:")
            self.stdout.write(f"  Expected: {address}")
            self.stdout.write(f"  Derived:  {derived}")
            self.stdout.write(f"  Bump:     {bump}")
            self.stdout.write(f"  Match:    {matches}\n")
            if not matches:
                mismatches.append(nonce)

        if mismatches:
            raise CommandError(
                f"PDA derivation does not match for nonces {', '.join(map(str, mismatches))}"
            )

        self.stdout.write(self.style.SUCCESS("SUCCESS! PDA derivation is correct!"))
