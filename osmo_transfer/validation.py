"""Input validation for transfer arguments.

Validation runs before any wallet or network work and never performs I/O, so
a bad argument fails fast with a message naming the offending field.
"""

from __future__ import annotations

import re

from .errors import ValidationError
from .model import TransactionRequest

AMOUNT_TOKEN_PATTERN = re.compile(r"(\d+)([A-Za-z]+(?:-\d+)*)", re.ASCII)
SAFE_CHARSET_PATTERN = re.compile(r"[A-Za-z0-9_-]+")

AMOUNT_FIELD = "amount"
TOKEN_FIELD = "token"
ADDRESS_FIELD = "address"


def parse_amount_token(raw: str) -> tuple[int, str]:
    """Split a combined value such as ``100uosmo`` into ``(100, "uosmo")``."""

    match = AMOUNT_TOKEN_PATTERN.fullmatch(raw) if isinstance(raw, str) else None
    if match is None:
        raise ValidationError(
            AMOUNT_FIELD,
            f"malformed amount/token {raw!r}; expected digits followed by a token, e.g. 100uosmo",
        )
    digits, token = match.groups()
    return _parse_amount(digits), token


def _parse_amount(value: str | int) -> int:
    if isinstance(value, bool):
        raise ValidationError(AMOUNT_FIELD, f"invalid amount {value!r}")
    if isinstance(value, int):
        amount = value
    else:
        text = str(value).strip()
        if not (text.isascii() and text.isdigit()):
            raise ValidationError(AMOUNT_FIELD, f"invalid amount {value!r}; expected an unsigned integer")
        amount = int(text)
    if amount < 0:
        raise ValidationError(AMOUNT_FIELD, f"invalid amount {value!r}; expected an unsigned integer")
    if amount == 0:
        raise ValidationError(AMOUNT_FIELD, "amount must be greater than zero")
    return amount


def _check_token(token: str) -> str:
    if not isinstance(token, str) or not SAFE_CHARSET_PATTERN.fullmatch(token):
        raise ValidationError(
            TOKEN_FIELD,
            f"invalid token {token!r}; only letters, digits, '-' and '_' are allowed",
        )
    return token


def _check_address(address: str, address_prefix: str | None) -> str:
    if not isinstance(address, str) or not SAFE_CHARSET_PATTERN.fullmatch(address):
        raise ValidationError(
            ADDRESS_FIELD,
            f"invalid address format {address!r}; only letters, digits, '-' and '_' are allowed",
        )
    if address_prefix:
        check_address_prefix(address, address_prefix)
    return address


def check_address_prefix(address: str, address_prefix: str) -> str:
    """Reject addresses whose human-readable part is not ``address_prefix``."""

    if not address.startswith(f"{address_prefix}1"):
        raise ValidationError(
            ADDRESS_FIELD,
            f"address {address!r} does not belong to this network (expected prefix {address_prefix}1)",
        )
    return address


def validate_request(
    amount_token: str, address: str, *, address_prefix: str | None = None
) -> TransactionRequest:
    """Validate the two positional arguments and build a request."""

    amount, token = parse_amount_token(amount_token)
    return TransactionRequest(
        amount=amount,
        denomination=_check_token(token),
        destination=_check_address(address, address_prefix),
    )


def validate_parts(
    amount: str | int,
    token: str,
    address: str,
    *,
    address_prefix: str | None = None,
) -> TransactionRequest:
    """Validate an amount and token that were supplied as separate fields."""

    return TransactionRequest(
        amount=_parse_amount(amount),
        denomination=_check_token(token),
        destination=_check_address(address, address_prefix),
    )
