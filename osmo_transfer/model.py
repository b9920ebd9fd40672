"""Value types passed between the validator, orchestrator, and chain client.

These records carry no behavior beyond simple conversions; the chain client is
free to map them onto whatever wire types its library expects.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Iterable, List

@dataclass(frozen=True)
class Coin:
    denom: str
    amount: str


@dataclass(frozen=True)
class Balance:
    denom: str
    amount: str


@dataclass(frozen=True)
class TransactionRequest:
    """A validated transfer of ``amount`` units of ``denomination`` to ``destination``.

    Instances are produced by :mod:`osmo_transfer.validation`; constructing one
    by hand skips those checks.
    """

    amount: int
    denomination: str
    destination: str

    def coin(self) -> Coin:
        return request_to_coin(self)


def request_to_coin(request: TransactionRequest) -> Coin:
    """Convert a parsed request into the coin shape handed to the chain client."""

    return Coin(denom=request.denomination, amount=str(request.amount))


@dataclass(frozen=True)
class Receipt:
    code: int
    height: int
    tx_hash: str
    raw_log: str = ""


@dataclass(frozen=True)
class TransactionOutcome:
    """Result of a broadcast, reported whether or not the chain accepted it."""

    receipt: Receipt
    sender: str
    destination: str
    coin: Coin

    @property
    def succeeded(self) -> bool:
        return self.receipt.code == 0

    def to_report(self) -> dict[str, Any]:
        return {
            "code": self.receipt.code,
            "height": self.receipt.height,
            "tx_hash": self.receipt.tx_hash,
        }


def factory_denoms_for(balances: Iterable[Balance], address: str) -> List[Balance]:
    """Return balances whose denom names ``address`` as its creator.

    Creator-scoped denoms look like ``<module>/<creator>/<subdenom>``, for
    example ``factory/osmo1.../mytoken``. Only the creator segment is checked.
    """

    matches: List[Balance] = []
    for balance in balances:
        parts = balance.denom.split("/")
        if len(parts) > 2 and parts[1] == address:
            matches.append(balance)
    return matches
