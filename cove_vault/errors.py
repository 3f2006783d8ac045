from typing import Any, Optional, Sequence


class CoveError(Exception):
    """Base class for errors raised by the vault client."""


class ConfigError(CoveError):
    pass


class EncodingError(CoveError):
    """Instruction data could not be encoded or decoded."""


class MissingFieldError(EncodingError):
    def __init__(self, operation: str, field: str):
        self.operation = operation
        self.field = field
        super().__init__(f"{operation} is missing layout field {field!r}")


class InvalidFieldError(EncodingError):
    def __init__(self, operation: str, field: str, value: Any, reason: str):
        self.operation = operation
        self.field = field
        self.value = value
        super().__init__(f"{operation} field {field!r}={value!r} is invalid: {reason}")


class DerivationError(CoveError):
    pass


class NoValidAddressError(DerivationError):
    def __init__(self, seeds: Sequence[bytes], program_id: Any):
        self.seeds = list(seeds)
        self.program_id = program_id
        super().__init__(f"No viable bump seed for seeds={self.seeds!r} program={program_id}")


class FundingTimeoutError(CoveError):
    def __init__(self, account: Any, requested: int, balance: int):
        self.account = account
        self.requested = requested
        self.balance = balance
        super().__init__(
            f"Account {account} still holds {balance} lamports after requesting {requested}"
        )


class SubmissionError(CoveError):
    """A transaction was confirmed with an error status."""

    def __init__(self, operation: str, addresses: Sequence[str], signature: Optional[str], err: Any):
        self.operation = operation
        self.addresses = list(addresses)
        self.signature = signature
        self.err = err
        super().__init__(f"{operation} failed (sig={signature}): {err}")


class BalanceMismatchError(AssertionError):
    def __init__(self, account: Any, expected: str, actual: str):
        self.account = account
        self.expected = expected
        self.actual = actual
        super().__init__(f"Token account {account} holds {actual}, expected {expected}")
