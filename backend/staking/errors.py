"""
Exceptions raised by the staking client.
"""


class StakingError(Exception):
    """Base exception for staking operations."""
    pass


class InvalidAmountError(StakingError):
    """Exception raised for a zero or otherwise unusable stake amount."""
    pass


class InvalidDurationError(StakingError):
    """Exception raised for a lock duration the stake pool does not accept."""
    pass


class InvalidNonceError(StakingError):
    """Exception raised for nonce selection errors."""
    pass


class NonceExhaustedError(InvalidNonceError):
    """Exception raised when every probed nonce already has a receipt."""

    def __init__(self, limit: int):
        self.limit = limit
        super().__init__(f"No available nonce found (0-{limit - 1} all in use)")


class InsufficientBalanceError(StakingError):
    """Exception raised when the token account cannot cover the stake."""

    def __init__(self, required: int, available: int):
        self.required = required
        self.available = available
        super().__init__(
            f"Insufficient balance: required {required}, available {available}"
        )


class TransactionFailedError(StakingError):
    """Exception raised when the cluster rejects a submitted transaction."""
    pass


class ConfirmationTimeoutError(TransactionFailedError):
    """Exception raised when a signature is not confirmed in time."""

    def __init__(self, signature: str, timeout: float):
        self.signature = signature
        self.timeout = timeout
        super().__init__(f"Transaction {signature} not confirmed after {timeout}s")


class AccountNotFoundError(StakingError):
    """Exception raised when a required on-chain account does not exist."""
    pass


class AccountDecodeError(StakingError):
    """Exception raised when account data does not match the expected layout."""
    pass


class KeypairError(StakingError):
    """Exception raised when a signing keypair cannot be loaded."""
    pass
