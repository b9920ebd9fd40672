"""Drive one validated transfer through the chain client.

Steps run strictly in order and each one gates the next:

1. read the wallet credential (before any network call, so a missing key
   file costs nothing),
2. connect to the configured network,
3. list the destination balances for the log,
4. derive the signing wallet,
5. broadcast the transfer once,
6. classify the receipt.

Nothing is retried. A nonzero receipt code raises
:class:`~osmo_transfer.errors.TransactionFailedError` even though the
broadcast itself went through.
"""

from __future__ import annotations

import logging
from typing import List

from .chain_client import ChainClient, ChainHandle, SigningWallet, format_chain_hint
from .config import BALANCE_CHECK_POLICIES, NetworkConfig
from .credentials import CredentialSource, SecretPhrase
from .errors import BroadcastInterruptedError, QueryError, TransactionFailedError
from .model import Balance, TransactionOutcome, TransactionRequest, factory_denoms_for, request_to_coin

module_logger = logging.getLogger(__name__)


class TransferOrchestrator:
    """Run a single transfer and report its outcome."""

    def __init__(
        self,
        client: ChainClient,
        network: NetworkConfig,
        credential_source: CredentialSource,
        *,
        logger: logging.Logger | None = None,
        balance_check: str = "required",
    ) -> None:
        if balance_check not in BALANCE_CHECK_POLICIES:
            raise ValueError(f"Unknown balance check policy: {balance_check}")
        self.client = client
        self.network = network
        self.credential_source = credential_source
        self.logger = logger or module_logger
        self.balance_check = balance_check

    def execute(self, request: TransactionRequest) -> TransactionOutcome:
        phrase = self._resolve_credential()

        self.logger.info("Connecting to %s (%s)...", self.network.name, self.network.chain_id)
        handle = self.client.connect(self.network)
        self.logger.info("Connection successful.")

        self._log_balances(handle, request.destination)

        wallet = self._derive_wallet(phrase)
        del phrase
        self.logger.info("Sender wallet address: %s", wallet.address)
        self.logger.info("Destination wallet address: %s", request.destination)

        outcome = self._broadcast(handle, wallet, request)
        return self._classify(outcome)

    def _resolve_credential(self) -> SecretPhrase:
        self.logger.info("Loading wallet credential from %s", self.credential_source.describe())
        return self.credential_source.read()

    def _log_balances(self, handle: ChainHandle, address: str) -> List[Balance]:
        if self.balance_check == "skip":
            self.logger.debug("Balance lookup disabled")
            return []
        self.logger.info("Getting balance for wallet %s", address)
        try:
            balances = self.client.all_balances(handle, address)
        except QueryError as exc:
            if self.balance_check == "required":
                raise
            self.logger.warning("Balance lookup failed, continuing: %s", exc)
            return []

        for balance in balances:
            self.logger.debug("Balance row: %s %s", balance.amount, balance.denom)
        for balance in factory_denoms_for(balances, address):
            self.logger.info("Balance: %s %s", balance.amount, balance.denom)
        if not balances:
            self.logger.info("Wallet %s holds no balances", address)
        return balances

    def _derive_wallet(self, phrase: SecretPhrase) -> SigningWallet:
        return self.client.derive_wallet(phrase, self.network.address_prefix)

    def _broadcast(
        self, handle: ChainHandle, wallet: SigningWallet, request: TransactionRequest
    ) -> TransactionOutcome:
        coin = request_to_coin(request)
        self.logger.info(
            "Executing transaction: %s%s to %s", coin.amount, coin.denom, request.destination
        )
        try:
            receipt = self.client.send_coins(handle, wallet, request.destination, [coin])
        except KeyboardInterrupt as exc:
            self.logger.warning(
                "Interrupted after the broadcast started; the transfer may already be on chain"
            )
            raise BroadcastInterruptedError(
                "interrupted while broadcasting; the transaction may already be final",
                hint=f"Check the history of {wallet.address} before re-running so the transfer is not sent twice.",
            ) from exc
        return TransactionOutcome(
            receipt=receipt,
            sender=wallet.address,
            destination=request.destination,
            coin=coin,
        )

    def _classify(self, outcome: TransactionOutcome) -> TransactionOutcome:
        report = outcome.to_report()
        if outcome.succeeded:
            self.logger.info("Transaction completed successfully: %s", report)
            return outcome
        self.logger.error("Transaction finalized with errors: %s", report)
        raise TransactionFailedError(outcome, hint=format_chain_hint(outcome.receipt.raw_log))


def execute_transfer(
    client: ChainClient,
    network: NetworkConfig,
    credential_source: CredentialSource,
    request: TransactionRequest,
    *,
    logger: logging.Logger | None = None,
    balance_check: str = "required",
) -> TransactionOutcome:
    """Convenience wrapper that builds an orchestrator and runs ``request``."""

    orchestrator = TransferOrchestrator(
        client,
        network,
        credential_source,
        logger=logger,
        balance_check=balance_check,
    )
    return orchestrator.execute(request)
