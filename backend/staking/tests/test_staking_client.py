"""
Unit Tests for BonkStakingClient

Covers deposit orchestration against a mocked solana-py client:
- Validation ordering
- Nonce probing
- Balance lookups
- Transaction submission and confirmation polling
- Endpoint health checks
"""

from unittest.mock import Mock, patch

import httpx
from django.test import SimpleTestCase
from solana.rpc.core import RPCException
from solders.hash import Hash
from solders.keypair import Keypair
from solders.signature import Signature
from solders.transaction import Transaction
from solders.transaction_status import TransactionConfirmationStatus

from ..clients.staking_client import BonkStakingClient
from ..config import BONK_MAINNET, ClientSettings, SECONDS_PER_DAY
from ..errors import (
    AccountNotFoundError,
    ConfirmationTimeoutError,
    InsufficientBalanceError,
    InvalidAmountError,
    InvalidDurationError,
    InvalidNonceError,
    NonceExhaustedError,
    TransactionFailedError,
)
from ..instructions import build_signed_transaction, encode_deposit_data
from ..pda import derive_stake_deposit_receipt
from .factories import KNOWN_OWNER, accounts_rpc, receipt_data, stake_pool_data

FAST_SETTINGS = ClientSettings(confirm_timeout=0.5, confirm_poll_interval=0.01)


def confirmed_status(status=TransactionConfirmationStatus.Confirmed, err=None):
    return Mock(err=err, confirmation_status=status)


class StakingClientTestCase(SimpleTestCase):
    """Builds a client over a mocked RPC with receipts at ``existing_nonces``."""

    existing_nonces = ()
    token_amount = 0

    def setUp(self):
        self.user = Keypair()
        self.owner = self.user.pubkey()
        self.rpc = self.build_rpc()
        self.client = BonkStakingClient(rpc=self.rpc, deployment=BONK_MAINNET, settings=FAST_SETTINGS)

    def build_rpc(self):
        accounts = {}
        for nonce in self.existing_nonces:
            receipt, _ = derive_stake_deposit_receipt(
                self.owner, BONK_MAINNET.stake_pool, nonce, BONK_MAINNET.program_id
            )
            accounts[receipt] = receipt_data(owner=self.owner)
        return accounts_rpc(accounts, token_amount=self.token_amount, lamports=10 ** 9)

    def expect_submission(self, statuses):
        self.rpc.get_latest_blockhash.return_value = Mock(value=Mock(blockhash=Hash.default()))
        self.rpc.send_transaction.return_value = Mock(value=Signature.default())
        self.rpc.get_signature_statuses.side_effect = [Mock(value=[status]) for status in statuses]


class TestClientConstruction(SimpleTestCase):

    def test_requires_endpoint(self):
        with self.assertRaises(ValueError):
            BonkStakingClient()

    def test_defaults(self):
        client = BonkStakingClient(rpc=Mock())

        self.assertIs(client.deployment, BONK_MAINNET)
        self.assertEqual(client.settings.priority_fee, 5045)
        self.assertEqual(client.settings.nonce_probe_limit, 100)


class TestNonceProbing(StakingClientTestCase):

    existing_nonces = (0, 1, 2, 3)

    def test_first_free_nonce(self):
        self.assertEqual(self.client.find_next_available_nonce(self.owner), 4)
        self.assertEqual(self.rpc.get_account_info.call_count, 5)

    def test_receipt_exists(self):
        self.assertTrue(self.client.receipt_exists(self.owner, 3))
        self.assertFalse(self.client.receipt_exists(self.owner, 4))

    def test_exhausted(self):
        with self.assertRaises(NonceExhaustedError) as cm:
            self.client.find_next_available_nonce(self.owner, limit=4)

        self.assertEqual(cm.exception.limit, 4)
        self.assertIn("0-3", str(cm.exception))

    def test_fresh_wallet_uses_nonce_zero(self):
        other = Keypair().pubkey()
        self.assertEqual(self.client.find_next_available_nonce(other), 0)


class TestBalances(StakingClientTestCase):

    token_amount = 1_500_000

    def test_token_balance(self):
        self.assertEqual(self.client.get_token_balance(self.owner), 1_500_000)

    def test_missing_token_account_is_zero(self):
        self.rpc.get_token_account_balance.side_effect = RPCException("could not find account")

        self.assertEqual(self.client.get_token_balance(self.owner), 0)
        self.assertEqual(self.client.get_stake_balance(self.owner), 0)

    def test_transport_errors_propagate(self):
        self.rpc.get_token_account_balance.side_effect = httpx.ConnectError("connection refused")

        with self.assertRaises(httpx.ConnectError):
            self.client.get_token_balance(self.owner)

    def test_sol_balance(self):
        self.assertEqual(self.client.get_sol_balance(self.owner), 10 ** 9)

    def test_missing_account_data(self):
        with self.assertRaises(AccountNotFoundError):
            self.client.get_account_data(self.owner)


class TestStakeValidation(StakingClientTestCase):

    token_amount = 5_000_000

    def test_zero_amount_makes_no_rpc_call(self):
        with self.assertRaises(InvalidAmountError):
            self.client.stake(self.user, 0, 90)

        self.assertEqual(self.rpc.method_calls, [])

    def test_unsupported_duration_makes_no_rpc_call(self):
        with self.assertRaises(InvalidDurationError):
            self.client.stake(self.user, 1_000, 45)

        self.assertEqual(self.rpc.method_calls, [])

    def test_out_of_range_nonce_makes_no_rpc_call(self):
        for nonce in (-1, 2 ** 32):
            with self.assertRaises(InvalidNonceError):
                self.client.prepare_stake(self.owner, 1_000, 30, nonce=nonce)
            with self.assertRaises(InvalidNonceError):
                self.client.stake(self.user, 1_000, 30, nonce=nonce)

        self.assertEqual(self.rpc.method_calls, [])

    def test_largest_nonce_is_accepted(self):
        config, _ = self.client.prepare_stake(self.owner, 1_000, 30, nonce=2 ** 32 - 1)
        self.assertEqual(config.nonce, 2 ** 32 - 1)

    def test_insufficient_balance(self):
        with self.assertRaises(InsufficientBalanceError) as cm:
            self.client.stake(self.user, 10_000_000, 90)

        self.assertEqual(cm.exception.required, 10_000_000)
        self.assertEqual(cm.exception.available, 5_000_000)
        self.rpc.send_transaction.assert_not_called()


class TestPrepareStake(StakingClientTestCase):

    existing_nonces = (0,)
    token_amount = 50_000_000

    def test_probes_nonce(self):
        config, instructions = self.client.prepare_stake(self.owner, 10_000_000, 180)

        self.assertEqual(config.nonce, 1)
        self.assertEqual(len(instructions), 3)
        self.assertEqual(
            bytes(instructions[-1].data),
            encode_deposit_data(10_000_000, 180 * SECONDS_PER_DAY, 1),
        )

    def test_explicit_nonce_skips_probe(self):
        config, instructions = self.client.prepare_stake(self.owner, 10_000_000, 30, nonce=7)

        self.assertEqual(config.nonce, 7)
        self.rpc.get_account_info.assert_not_called()
        receipt, _ = self.client.derive_receipt(self.owner, 7)
        self.assertEqual(instructions[-1].accounts[7].pubkey, receipt)


class TestStakeSubmission(StakingClientTestCase):

    existing_nonces = (0, 1)
    token_amount = 50_000_000

    def test_stake_confirms(self):
        self.expect_submission([None, confirmed_status()])

        signature = self.client.stake(self.user, 10_000_000, 90)

        self.assertEqual(signature, Signature.default())
        self.assertEqual(self.rpc.get_signature_statuses.call_count, 2)

        transaction = self.rpc.send_transaction.call_args[0][0]
        self.assertIsInstance(transaction, Transaction)
        self.assertEqual(transaction.message.account_keys[0], self.owner)
        deposit = transaction.message.instructions[-1]
        self.assertEqual(bytes(deposit.data), encode_deposit_data(10_000_000, 90 * SECONDS_PER_DAY, 2))

    def test_processed_is_not_enough_for_confirmed(self):
        self.expect_submission([
            confirmed_status(TransactionConfirmationStatus.Processed),
            confirmed_status(TransactionConfirmationStatus.Finalized),
        ])

        self.client.stake(self.user, 10_000_000, 90)
        self.assertEqual(self.rpc.get_signature_statuses.call_count, 2)

    def test_rejected_submission(self):
        self.expect_submission([])
        self.rpc.send_transaction.side_effect = RPCException("custom program error: 0xbbf")

        with self.assertRaises(TransactionFailedError) as cm:
            self.client.stake(self.user, 10_000_000, 90)
        self.assertIn("0xbbf", str(cm.exception))

    def test_failed_on_chain(self):
        self.expect_submission([confirmed_status(err="InstructionError(2, Custom(3007))")])

        with self.assertRaises(TransactionFailedError) as cm:
            self.client.stake(self.user, 10_000_000, 90)
        self.assertIn("3007", str(cm.exception))

    def test_confirmation_timeout(self):
        self.expect_submission([])
        self.rpc.get_signature_statuses.side_effect = None
        self.rpc.get_signature_statuses.return_value = Mock(value=[None])

        with self.assertRaises(ConfirmationTimeoutError) as cm:
            self.client.stake(self.user, 10_000_000, 90)
        self.assertEqual(cm.exception.timeout, FAST_SETTINGS.confirm_timeout)


    def test_signs_with_shared_transaction_builder(self):
        self.expect_submission([confirmed_status()])

        with patch('staking.clients.staking_client.build_signed_transaction',
                   wraps=build_signed_transaction) as build:
            self.client.stake(self.user, 10_000_000, 90)

        build.assert_called_once()
        self.assertIs(build.call_args[0][1], self.user)

    def test_status_without_confirmation_level_when_rooted(self):
        rooted = Mock(err=None, confirmation_status=None, confirmations=None)
        self.expect_submission([rooted])

        self.client.stake(self.user, 10_000_000, 90)
        self.assertEqual(self.rpc.get_signature_statuses.call_count, 1)

    def test_status_without_confirmation_level_uses_confirmations(self):
        self.expect_submission([
            Mock(err=None, confirmation_status=None, confirmations=0),
            Mock(err=None, confirmation_status=None, confirmations=3),
        ])

        self.client.stake(self.user, 10_000_000, 90)
        self.assertEqual(self.rpc.get_signature_statuses.call_count, 2)

class TestPositions(StakingClientTestCase):

    existing_nonces = (0, 2)

    def test_user_stakes(self):
        stakes = self.client.get_user_stakes(self.owner, max_nonce=5)

        self.assertEqual([stake.nonce for stake in stakes], [0, 2])
        self.assertTrue(all(stake.decoded for stake in stakes))
        self.assertEqual(stakes[0].amount, 10_000_000)

    def test_undecodable_receipt_is_reported(self):
        receipt, _ = self.client.derive_receipt(self.owner, 0)
        self.rpc.get_account_info.side_effect = lambda pubkey, *args, **kwargs: Mock(
            value=Mock(data=b"\x00" * 12) if pubkey == receipt else None
        )

        stakes = self.client.get_user_stakes(self.owner, max_nonce=3)

        self.assertEqual(len(stakes), 1)
        self.assertFalse(stakes[0].decoded)
        self.assertEqual(stakes[0].receipt_address, receipt)

    def test_stake_pool(self):
        self.rpc.get_account_info.side_effect = None
        self.rpc.get_account_info.return_value = Mock(value=Mock(data=stake_pool_data()))

        pool = self.client.get_stake_pool()

        self.assertEqual(pool.active_reward_vaults, list(BONK_MAINNET.reward_vaults))
        self.rpc.get_account_info.assert_called_once_with(BONK_MAINNET.stake_pool)


class TestHealthCheck(SimpleTestCase):

    def setUp(self):
        self.client = BonkStakingClient(
            rpc_url="https://rpc.example.com", rpc=Mock(), endpoint_name="Example"
        )

    @patch('staking.clients.staking_client.httpx.post')
    def test_healthy(self, mock_post):
        mock_post.return_value = Mock(json=Mock(return_value={"jsonrpc": "2.0", "result": "ok", "id": 1}))

        health = self.client.check_health()

        self.assertEqual(health["status"], "healthy")
        self.assertEqual(health["endpoint"], "Example")
        self.assertEqual(mock_post.call_args[1]["json"]["method"], "getHealth")

    @patch('staking.clients.staking_client.httpx.post')
    def test_degraded(self, mock_post):
        mock_post.return_value = Mock(json=Mock(return_value={
            "jsonrpc": "2.0", "error": {"code": -32005, "message": "Node is behind"}, "id": 1
        }))

        health = self.client.check_health()

        self.assertEqual(health["status"], "degraded")
        self.assertEqual(health["error"]["code"], -32005)

    @patch('staking.clients.staking_client.httpx.post')
    def test_unreachable(self, mock_post):
        mock_post.side_effect = httpx.ConnectError("connection refused")

        health = self.client.check_health()

        self.assertEqual(health["status"], "unhealthy")
        self.assertIn("connection refused", health["error"])

    def test_injected_rpc_without_url(self):
        client = BonkStakingClient(rpc=Mock())
        self.assertEqual(client.check_health()["status"], "unknown")
