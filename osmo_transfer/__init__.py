"""Single-shot Cosmos token transfer tool."""

from .errors import (
    BroadcastError,
    ConnectivityError,
    CredentialError,
    QueryError,
    TransactionFailedError,
    TransferError,
    ValidationError,
)
from .model import Balance, Coin, Receipt, TransactionOutcome, TransactionRequest, request_to_coin
from .orchestrator import TransferOrchestrator, execute_transfer
from .validation import parse_amount_token, validate_parts, validate_request

__version__ = "0.1.0"

__all__ = [
    "Balance",
    "BroadcastError",
    "Coin",
    "ConnectivityError",
    "CredentialError",
    "QueryError",
    "Receipt",
    "TransactionFailedError",
    "TransactionOutcome",
    "TransactionRequest",
    "TransferError",
    "TransferOrchestrator",
    "ValidationError",
    "execute_transfer",
    "parse_amount_token",
    "request_to_coin",
    "validate_parts",
    "validate_request",
]
