"""Chain client used by the transfer orchestrator.

The orchestrator talks to the network only through the :class:`ChainClient`
protocol. :class:`CosmosChainClient` is the production implementation: read
paths (node check and balance listing) go through the Cosmos REST API with an
explicit timeout, while signing and broadcasting are delegated to ``cosmpy``.
No consensus or signing logic lives here; the client forwards typed requests
and turns library failures into the pipeline's error taxonomy.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from datetime import timedelta
from typing import Any, Callable, Dict, List, Optional, Protocol, Sequence

import requests
from cosmpy.aerial.client import LedgerClient
from cosmpy.aerial.config import NetworkConfig as LedgerNetworkConfig
from cosmpy.aerial.client.utils import prepare_basic_transaction
from cosmpy.aerial.exceptions import BroadcastError as LedgerBroadcastError
from cosmpy.aerial.exceptions import QueryTimeoutError
from cosmpy.aerial.tx import Transaction
from cosmpy.aerial.tx_helpers import SubmittedTx
from cosmpy.aerial.wallet import LocalWallet
from cosmpy.protos.cosmos.bank.v1beta1.tx_pb2 import MsgSend
from cosmpy.protos.cosmos.base.v1beta1.coin_pb2 import Coin as ProtoCoin
from cosmpy.protos.cosmos.tx.v1beta1.service_pb2 import BroadcastMode, BroadcastTxRequest
from requests import RequestException, Response

from .config import DEFAULT_BROADCAST_TIMEOUT, DEFAULT_POLL_PERIOD, DEFAULT_REQUEST_TIMEOUT, NetworkConfig
from .credentials import SecretPhrase
from .errors import BroadcastError, ConnectivityError, CredentialError, QueryError, TransferError
from .model import Balance, Coin, Receipt

logger = logging.getLogger(__name__)

NODE_INFO_PATH = "/cosmos/base/tendermint/v1beta1/node_info"
BALANCES_PATH = "/cosmos/bank/v1beta1/balances/{address}"
MAX_BALANCE_PAGES = 50


def format_chain_hint(message: str | None) -> str | None:
    """Return a remediation hint for common node rejections, if one applies."""

    if not message:
        return None
    lowered = message.lower()
    if "insufficient funds" in lowered or "insufficient fee" in lowered:
        return (
            "The sender wallet cannot cover the amount plus fees. Fund the sender address "
            "(testnet faucets work for osmo-test-5) and retry."
        )
    if "invalid coins" in lowered or "invalid denom" in lowered:
        return "The chain rejected the denomination. Check the token symbol, e.g. uosmo rather than OSMO."
    if "account sequence mismatch" in lowered:
        return (
            "Another transaction from this wallet was processed concurrently. Check the wallet history "
            "before re-running so the transfer is not sent twice."
        )
    if ("account" in lowered and "not found" in lowered) or "does not exist on chain" in lowered:
        return "The sender account has never received funds on this network. Fund it before sending."
    if "decoding bech32" in lowered or "invalid address" in lowered:
        return "The destination is not a valid bech32 address for this network."
    return None


@dataclass
class ChainHandle:
    """Connection to one network, owned by a single orchestrator run."""

    network: NetworkConfig
    ledger: Any = field(repr=False)
    node_version: str | None = None


@dataclass
class SigningWallet:
    address: str
    signer: Any = field(repr=False)

    def __str__(self) -> str:
        return self.address


class ChainClient(Protocol):
    def connect(self, network: NetworkConfig) -> ChainHandle:
        ...

    def all_balances(self, handle: ChainHandle, address: str) -> List[Balance]:
        ...

    def derive_wallet(self, phrase: SecretPhrase, address_prefix: str) -> SigningWallet:
        ...

    def send_coins(
        self,
        handle: ChainHandle,
        wallet: SigningWallet,
        destination: str,
        coins: Sequence[Coin],
    ) -> Receipt:
        ...


def _ledger_config(network: NetworkConfig) -> LedgerNetworkConfig:
    return LedgerNetworkConfig(
        chain_id=network.chain_id,
        url=network.ledger_url,
        fee_minimum_gas_price=network.gas_price,
        fee_denomination=network.fee_denom,
        staking_denomination=network.fee_denom,
    )


def build_send_transaction(sender: str, destination: str, coins: Sequence[Coin]) -> Transaction:
    """Wrap a single bank ``MsgSend`` in an unsigned transaction."""

    message = MsgSend(
        from_address=sender,
        to_address=destination,
        amount=[ProtoCoin(denom=coin.denom, amount=coin.amount) for coin in coins],
    )
    tx = Transaction()
    tx.add_message(message)
    return tx


def broadcast_sync(ledger: Any, tx: Transaction) -> Any:
    """Submit a signed transaction and return the node's check-time ``tx_response``.

    Unlike ``LedgerClient.broadcast_tx`` this does not raise on a nonzero code.
    """

    request = BroadcastTxRequest(
        tx_bytes=tx.tx.SerializeToString(), mode=BroadcastMode.BROADCAST_MODE_SYNC
    )
    return ledger.txs.BroadcastTx(request).tx_response


class CosmosChainClient:
    """Cosmos SDK client backed by the REST API and ``cosmpy``.

    Collaborators are injectable so tests can substitute the HTTP session,
    the ledger factory, the wallet factory, the transaction preparer, the
    submitter, or the inclusion tracker.
    """

    def __init__(
        self,
        *,
        session: requests.Session | None = None,
        request_timeout: float = DEFAULT_REQUEST_TIMEOUT,
        broadcast_timeout: float = DEFAULT_BROADCAST_TIMEOUT,
        poll_period: float = DEFAULT_POLL_PERIOD,
        ledger_factory: Callable[[LedgerNetworkConfig], Any] = LedgerClient,
        wallet_factory: Callable[..., Any] = LocalWallet.from_mnemonic,
        preparer: Callable[..., Any] = prepare_basic_transaction,
        submitter: Callable[[Any, Any], Any] | None = None,
        tracker_factory: Callable[[Any, str], Any] = SubmittedTx,
    ) -> None:
        self._session = session or requests.Session()
        self.request_timeout = request_timeout
        self.broadcast_timeout = broadcast_timeout
        self.poll_period = poll_period
        self._ledger_factory = ledger_factory
        self._wallet_factory = wallet_factory
        self._preparer = preparer
        self._submitter = submitter or broadcast_sync
        self._tracker_factory = tracker_factory

    # REST helpers ---------------------------------------------------------

    def _get_json(
        self,
        url: str,
        *,
        params: Optional[Dict[str, Any]] = None,
        error_cls: type[TransferError],
        action: str,
    ) -> Dict[str, Any]:
        logger.debug("GET %s params=%s", url, params)
        try:
            response = self._session.get(url, params=params, timeout=self.request_timeout)
        except RequestException as exc:
            logger.error(
                "%s failed: %s", action, exc, exc_info=logger.isEnabledFor(logging.DEBUG)
            )
            raise error_cls(f"{action} failed: {exc}") from exc
        if not response.ok:
            node_message = self._error_message(response)
            logger.error("%s: HTTP %s from %s", action, response.status_code, response.url)
            logger.error("Node error body: %s", node_message)
            raise error_cls(
                f"{action} failed with HTTP {response.status_code}: {node_message}",
                hint=format_chain_hint(node_message),
            )
        try:
            payload = response.json()
        except ValueError as exc:
            logger.debug("Malformed JSON from %s: %s", url, response.text, exc_info=True)
            raise error_cls(f"{action} failed: node returned malformed JSON") from exc
        if not isinstance(payload, dict):
            raise error_cls(f"{action} failed: expected a JSON object from {url}")
        return payload

    @staticmethod
    def _error_message(response: Response) -> str:
        try:
            body = response.json()
        except ValueError:
            return response.text.strip() or response.reason or "no response body"
        if isinstance(body, dict) and body.get("message"):
            return str(body["message"])
        return str(body)

    # ChainClient ----------------------------------------------------------

    def connect(self, network: NetworkConfig) -> ChainHandle:
        """Query the node, check it serves the configured chain, and open a ledger client."""

        payload = self._get_json(
            f"{network.rest_url}{NODE_INFO_PATH}",
            error_cls=ConnectivityError,
            action=f"Connecting to {network.name}",
        )
        node_info = payload.get("default_node_info") or {}
        reported_chain = node_info.get("network")
        if reported_chain and reported_chain != network.chain_id:
            raise ConnectivityError(
                f"node at {network.rest_url} serves chain {reported_chain}, expected {network.chain_id}",
                hint="Check --network or the rest_url configured for this network.",
            )
        version = (payload.get("application_version") or {}).get("version")

        try:
            ledger = self._ledger_factory(_ledger_config(network))
        except Exception as exc:
            raise ConnectivityError(f"could not open a client for {network.ledger_url}: {exc}") from exc
        return ChainHandle(network=network, ledger=ledger, node_version=version)

    def all_balances(self, handle: ChainHandle, address: str) -> List[Balance]:
        url = f"{handle.network.rest_url}{BALANCES_PATH.format(address=address)}"
        balances: List[Balance] = []
        params: Dict[str, Any] | None = None
        for _ in range(MAX_BALANCE_PAGES):
            payload = self._get_json(
                url,
                params=params,
                error_cls=QueryError,
                action=f"Retrieving balances for {address}",
            )
            for row in payload.get("balances") or []:
                try:
                    balances.append(Balance(denom=str(row["denom"]), amount=str(row["amount"])))
                except (KeyError, TypeError) as exc:
                    raise QueryError(f"malformed balance entry for {address}: {row!r}") from exc
            next_key = (payload.get("pagination") or {}).get("next_key")
            if not next_key:
                return balances
            params = {"pagination.key": next_key}
        raise QueryError(f"balance listing for {address} exceeded {MAX_BALANCE_PAGES} pages")

    def derive_wallet(self, phrase: SecretPhrase, address_prefix: str) -> SigningWallet:
        try:
            signer = self._wallet_factory(phrase.value, prefix=address_prefix)
            address = str(signer.address())
        except Exception as exc:
            # The library message may quote words from the phrase; report only the type.
            raise CredentialError(
                f"failed to derive a wallet from the recovery phrase ({type(exc).__name__}, "
                f"{phrase.word_count} words)",
                hint="Check that the key file holds a valid 12 or 24 word BIP-39 phrase.",
            ) from None
        return SigningWallet(address=address, signer=signer)

    def send_coins(
        self,
        handle: ChainHandle,
        wallet: SigningWallet,
        destination: str,
        coins: Sequence[Coin],
    ) -> Receipt:
        """Sign, broadcast, and wait for inclusion. The submission is never retried.

        A nonzero code from the node, at check time or after inclusion, is
        returned as a receipt; only failures that prevent the chain from
        answering become :class:`~osmo_transfer.errors.BroadcastError`.
        """

        tx = build_send_transaction(wallet.address, destination, coins)
        try:
            signed = self._preparer(handle.ledger, tx, wallet.signer)
        except Exception as exc:
            message = str(exc)
            raise BroadcastError(
                f"error preparing the transaction to {destination}: {message}",
                hint=format_chain_hint(message),
            ) from exc

        try:
            check = self._submitter(handle.ledger, signed)
        except Exception as exc:
            message = str(exc)
            raise BroadcastError(
                f"error submitting the transaction to {destination}: {message}",
                hint=format_chain_hint(message),
            ) from exc

        tx_hash = str(check.txhash)
        if int(check.code) != 0:
            logger.warning("Node rejected transaction %s with code %s", tx_hash, check.code)
            return Receipt(
                code=int(check.code),
                height=int(check.height or 0),
                tx_hash=tx_hash,
                raw_log=str(check.raw_log or ""),
            )

        logger.info("Transaction %s submitted; waiting up to %ss for inclusion", tx_hash, self.broadcast_timeout)
        submitted = self._tracker_factory(handle.ledger, tx_hash)
        try:
            submitted.wait_to_complete(
                timeout=timedelta(seconds=self.broadcast_timeout),
                poll_period=timedelta(seconds=self.poll_period),
            )
        except LedgerBroadcastError:
            # Included with a nonzero code; the receipt below carries it.
            logger.debug("Transaction %s included with a failure code", tx_hash)
        except QueryTimeoutError as exc:
            raise BroadcastError(
                f"transaction {tx_hash} was submitted but not confirmed within {self.broadcast_timeout}s",
                hint="Look up the hash in an explorer before re-running; it may still be included.",
                tx_hash=tx_hash,
            ) from exc

        response = submitted.response
        if response is None:
            raise BroadcastError(f"no receipt returned for transaction {tx_hash}", tx_hash=tx_hash)
        return Receipt(
            code=int(response.code),
            height=int(response.height),
            tx_hash=str(response.hash),
            raw_log=str(response.raw_log or ""),
        )
