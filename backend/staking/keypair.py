"""
Keypair loading for signing staking transactions.
"""

import json
import os
from pathlib import Path
from typing import List, Optional, Union

import base58
import structlog
from solders.keypair import Keypair

from .errors import KeypairError

logger = structlog.get_logger(__name__)


def keypair_from_secret(secret_bytes: bytes) -> Keypair:
    """Build a keypair from a 32-byte seed or a 64-byte secret key."""
    try:
        if len(secret_bytes) == 32:
            return Keypair.from_seed(secret_bytes)
        if len(secret_bytes) == 64:
            return Keypair.from_bytes(secret_bytes)
    except ValueError as e:
        raise KeypairError(f"Invalid secret key: {e}") from e
    raise KeypairError(f"Invalid secret key length: {len(secret_bytes)}")


def load_keypair_file(path: Union[str, Path]) -> Keypair:
    """Load a Solana CLI keypair file (JSON array of 64 bytes)."""
    keypair_path = Path(os.path.expanduser(str(path)))
    if not keypair_path.exists():
        raise KeypairError(f"Keypair file not found: {keypair_path}")

    try:
        with open(keypair_path, 'r') as f:
            keypair_data = json.load(f)
    except (OSError, ValueError) as e:
        raise KeypairError(f"Failed to read keypair file {keypair_path}: {e}") from e

    if not isinstance(keypair_data, list):
        raise KeypairError(f"Keypair file {keypair_path} is not a JSON byte array")

    return keypair_from_secret(bytes(keypair_data))


def load_keypair_base58(secret: str) -> Keypair:
    """Load a keypair from a base58 encoded secret."""
    try:
        secret_bytes = base58.b58decode(secret.strip())
    except ValueError as e:
        raise KeypairError(f"Secret is not valid base58: {e}") from e
    return keypair_from_secret(secret_bytes)


def load_keypair(source: Optional[Union[str, Path, List[int]]] = None) -> Keypair:
    """
    Load the signing keypair.

    Args:
        source: A keypair file path, a base58 secret, or a byte array.
            When omitted, SOLANA_PRIVATE_KEY (base58) is tried first and
            then SOLANA_KEYPAIR_PATH (default ~/.config/solana/id.json).

    Returns:
        The loaded keypair
    """
    if source is None:
        secret_key_env = os.getenv('SOLANA_PRIVATE_KEY')
        if secret_key_env:
            keypair = load_keypair_base58(secret_key_env)
            logger.info("Using environment keypair", pubkey=str(keypair.pubkey()))
            return keypair
        source = os.getenv('SOLANA_KEYPAIR_PATH', '~/.config/solana/id.json')

    if isinstance(source, list):
        keypair = keypair_from_secret(bytes(source))
    elif isinstance(source, Path) or source.endswith('.json') or '/' in source:
        keypair = load_keypair_file(source)
    else:
        keypair = load_keypair_base58(source)

    logger.info("Loaded keypair", pubkey=str(keypair.pubkey()))
    return keypair
