"""Error taxonomy shared by the transfer pipeline.

Every failure carries the name of the step that raised it so the CLI can tell
operators whether the run ever reached the chain.
"""

from __future__ import annotations

from typing import TYPE_CHECKING

if TYPE_CHECKING:  # pragma: no cover - typing only
    from .model import TransactionOutcome

EXIT_USAGE = 2
EXIT_VALIDATION = 3
EXIT_CREDENTIAL = 4
EXIT_CONNECTIVITY = 5
EXIT_QUERY = 6
EXIT_BROADCAST = 7
EXIT_LOGICAL = 8
EXIT_CONFIGURATION = 9
EXIT_INTERRUPTED = 130


class TransferError(RuntimeError):
    """Base class for failures raised while preparing or sending a transfer."""

    step = "transfer"
    exit_code = 1

    def __init__(self, message: str, *, hint: str | None = None) -> None:
        super().__init__(message)
        self.message = message
        self.hint = hint

    def describe(self) -> str:
        text = f"[{self.step}] {self.message}"
        if self.hint:
            text = f"{text}\nHint: {self.hint}"
        return text


class ValidationError(TransferError):
    """Raised when the amount/token or address argument is malformed."""

    step = "validation"
    exit_code = EXIT_VALIDATION

    def __init__(self, field: str, message: str) -> None:
        super().__init__(f"{field}: {message}")
        self.field = field
        self.reason = message


class CredentialError(TransferError):
    """Raised when the wallet secret is missing, unreadable, or malformed."""

    step = "credential"
    exit_code = EXIT_CREDENTIAL


class ConnectivityError(TransferError):
    """Raised when the network cannot be reached."""

    step = "connect"
    exit_code = EXIT_CONNECTIVITY


class QueryError(TransferError):
    """Raised when the diagnostic balance lookup fails."""

    step = "balance-query"
    exit_code = EXIT_QUERY


class BroadcastError(TransferError):
    """Raised when submission fails before the chain returns a result code."""

    step = "broadcast"
    exit_code = EXIT_BROADCAST

    def __init__(
        self, message: str, *, hint: str | None = None, tx_hash: str | None = None
    ) -> None:
        super().__init__(message, hint=hint)
        self.tx_hash = tx_hash


class BroadcastInterruptedError(BroadcastError):
    """Raised when the process is interrupted after the broadcast started."""

    exit_code = EXIT_INTERRUPTED


class TransactionFailedError(TransferError):
    """Raised when the chain accepted the transaction but reported a nonzero code."""

    step = "outcome"
    exit_code = EXIT_LOGICAL

    def __init__(self, outcome: "TransactionOutcome", *, hint: str | None = None) -> None:
        receipt = outcome.receipt
        message = f"transaction {receipt.tx_hash} finalized with code {receipt.code}"
        if receipt.raw_log:
            message = f"{message}: {receipt.raw_log}"
        super().__init__(message, hint=hint)
        self.outcome = outcome
