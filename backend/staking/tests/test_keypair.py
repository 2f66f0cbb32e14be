"""
Unit tests for keypair loading.
"""

import json
import os
import tempfile
from unittest.mock import patch

import base58
from django.test import SimpleTestCase
from solders.keypair import Keypair

from ..errors import KeypairError
from ..keypair import keypair_from_secret, load_keypair, load_keypair_file


class TestKeypairLoading(SimpleTestCase):

    def setUp(self):
        self.keypair = Keypair()
        self.tmpdir = tempfile.TemporaryDirectory()
        self.path = os.path.join(self.tmpdir.name, "id.json")
        with open(self.path, "w") as f:
            json.dump(list(bytes(self.keypair)), f)

    def tearDown(self):
        self.tmpdir.cleanup()

    def test_cli_keypair_file(self):
        self.assertEqual(load_keypair(self.path).pubkey(), self.keypair.pubkey())

    def test_base58_secret(self):
        secret = base58.b58encode(bytes(self.keypair)).decode()
        self.assertEqual(load_keypair(secret).pubkey(), self.keypair.pubkey())

    def test_byte_array(self):
        self.assertEqual(load_keypair(list(bytes(self.keypair))).pubkey(), self.keypair.pubkey())

    def test_seed(self):
        seed = bytes(range(32))
        self.assertEqual(keypair_from_secret(seed).pubkey(), Keypair.from_seed(seed).pubkey())

    def test_environment_secret_first(self):
        secret = base58.b58encode(bytes(self.keypair)).decode()
        with patch.dict(os.environ, {"SOLANA_PRIVATE_KEY": secret, "SOLANA_KEYPAIR_PATH": "/missing.json"}):
            self.assertEqual(load_keypair().pubkey(), self.keypair.pubkey())

    def test_environment_path(self):
        env = {"SOLANA_KEYPAIR_PATH": self.path}
        with patch.dict(os.environ, env, clear=True):
            self.assertEqual(load_keypair().pubkey(), self.keypair.pubkey())

    def test_missing_file(self):
        with self.assertRaises(KeypairError):
            load_keypair_file(os.path.join(self.tmpdir.name, "missing.json"))

    def test_not_an_array(self):
        with open(self.path, "w") as f:
            json.dump({"secret": "nope"}, f)
        with self.assertRaises(KeypairError):
            load_keypair(self.path)

    def test_wrong_length(self):
        with self.assertRaises(KeypairError):
            keypair_from_secret(b"\x01" * 10)

    def test_invalid_base58(self):
        with self.assertRaises(KeypairError):
            load_keypair("not-base58-0OIl")
