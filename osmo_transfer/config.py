"""Shared configuration loader for osmo-transfer."""

from __future__ import annotations

import os
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Mapping
from urllib.parse import urlparse

import yaml


class ConfigurationError(RuntimeError):
    """Raised when configuration is invalid."""


DEFAULT_CONFIG_PATH = Path.home() / ".osmo-transfer.yaml"
DEFAULT_WALLET_FILE = Path("wallet") / "wallet.key"
DEFAULT_LOG_DIR = "logs"
DEFAULT_NETWORK = "osmosis-testnet"
DEFAULT_REQUEST_TIMEOUT = 30.0
DEFAULT_BROADCAST_TIMEOUT = 60.0
DEFAULT_POLL_PERIOD = 2.0

BALANCE_CHECK_POLICIES = ("required", "best-effort", "skip")

ENV_PREFIX = "OSMO_TRANSFER_"


@dataclass(frozen=True)
class NetworkConfig:
    """Connection details for one Cosmos SDK network."""

    name: str
    chain_id: str
    rest_url: str
    grpc_url: str
    address_prefix: str
    fee_denom: str
    gas_price: float

    @property
    def ledger_url(self) -> str:
        return self.grpc_url or f"rest+{self.rest_url}"


NETWORK_PRESETS: dict[str, NetworkConfig] = {
    "osmosis-testnet": NetworkConfig(
        name="osmosis-testnet",
        chain_id="osmo-test-5",
        rest_url="https://lcd.osmotest5.osmosis.zone",
        grpc_url="grpc+https://grpc.osmotest5.osmosis.zone:443",
        address_prefix="osmo",
        fee_denom="uosmo",
        gas_price=0.025,
    ),
    "osmosis-mainnet": NetworkConfig(
        name="osmosis-mainnet",
        chain_id="osmosis-1",
        rest_url="https://lcd.osmosis.zone",
        grpc_url="grpc+https://grpc.osmosis.zone:443",
        address_prefix="osmo",
        fee_denom="uosmo",
        gas_price=0.025,
    ),
    "osmosis-local": NetworkConfig(
        name="osmosis-local",
        chain_id="localosmosis",
        rest_url="http://127.0.0.1:1317",
        grpc_url="grpc+http://127.0.0.1:9090",
        address_prefix="osmo",
        fee_denom="uosmo",
        gas_price=0.0025,
    ),
}


@dataclass
class TransferConfig:
    """Resolved settings for a single transfer run."""

    network: NetworkConfig
    wallet_file: Path | None = DEFAULT_WALLET_FILE
    mnemonic_env: str | None = None
    log_dir: str | None = DEFAULT_LOG_DIR
    balance_check: str = "required"
    request_timeout: float = DEFAULT_REQUEST_TIMEOUT
    broadcast_timeout: float = DEFAULT_BROADCAST_TIMEOUT
    poll_period: float = DEFAULT_POLL_PERIOD
    enforce_address_prefix: bool = True

    @property
    def address_prefix(self) -> str:
        return self.network.address_prefix


def _load_config_file(path: Path, *, required: bool) -> dict[str, Any]:
    if not path.exists():
        if required:
            raise ConfigurationError(f"Config file not found: {path}")
        return {}

    try:
        loaded = yaml.safe_load(path.read_text()) or {}
    except yaml.YAMLError as exc:  # pragma: no cover - delegated to PyYAML
        raise ConfigurationError(f"Invalid YAML in config file {path}: {exc}") from exc

    if not isinstance(loaded, dict):
        raise ConfigurationError(f"Expected {path} to contain a YAML object with a 'transfer' section")
    return loaded


def _coerce_bool(value: Any) -> bool | None:
    if isinstance(value, bool):
        return value
    if isinstance(value, str):
        normalized = value.strip().lower()
        if normalized in {"1", "true", "yes", "y", "on"}:
            return True
        if normalized in {"0", "false", "no", "n", "off"}:
            return False
    return None


def _coerce_positive_float(raw: Any, *, source: str) -> float | None:
    if raw is None:
        return None
    try:
        value = float(raw)
    except (TypeError, ValueError) as exc:
        raise ConfigurationError(f"Invalid number in {source}: {raw}") from exc
    if value <= 0:
        raise ConfigurationError(f"Expected a positive number in {source}, got {raw}")
    return value


def _first_value(*values: Any, default: Any = None) -> Any:
    for value in values:
        if value is not None:
            return value
    return default


def _validate_url(raw: str | None, *, label: str) -> str | None:
    if not raw:
        return None
    parsed = urlparse(raw)
    if not parsed.scheme or not parsed.hostname:
        raise ConfigurationError(f"Invalid {label} URL: {raw}")
    return raw.rstrip("/")


def _env(env_map: Mapping[str, str], key: str) -> str | None:
    value = env_map.get(f"{ENV_PREFIX}{key}")
    return value if value else None


def _resolve_network(
    name: str,
    override_map: Mapping[str, Any],
    env_map: Mapping[str, str],
    section: Mapping[str, Any],
) -> NetworkConfig:
    networks_section = section.get("networks", {}) or {}
    if not isinstance(networks_section, dict):
        raise ConfigurationError("Expected 'transfer.networks' to be a mapping")
    custom = networks_section.get(name) or {}
    if not isinstance(custom, dict):
        raise ConfigurationError(f"Expected 'transfer.networks.{name}' to be a mapping")

    preset = NETWORK_PRESETS.get(name)
    if preset is None and not custom:
        known = ", ".join(sorted(NETWORK_PRESETS))
        raise ConfigurationError(f"Unknown network {name!r}; choose one of {known} or define it in the config file")

    def pick(key: str, env_key: str) -> Any:
        return _first_value(
            override_map.get(key),
            _env(env_map, env_key),
            custom.get(key),
            getattr(preset, key) if preset is not None else None,
        )

    chain_id = pick("chain_id", "CHAIN_ID")
    rest_url = _validate_url(pick("rest_url", "REST_URL"), label="REST")
    grpc_url = _validate_url(pick("grpc_url", "GRPC_URL"), label="gRPC") or ""
    address_prefix = pick("address_prefix", "ADDRESS_PREFIX")
    fee_denom = pick("fee_denom", "FEE_DENOM")
    gas_price = _coerce_positive_float(pick("gas_price", "GAS_PRICE"), source=f"network {name} gas_price")

    missing = [
        key
        for key, value in (
            ("chain_id", chain_id),
            ("rest_url", rest_url),
            ("address_prefix", address_prefix),
            ("fee_denom", fee_denom),
            ("gas_price", gas_price),
        )
        if not value
    ]
    if missing:
        raise ConfigurationError(f"Network {name} is missing: {', '.join(missing)}")

    return NetworkConfig(
        name=name,
        chain_id=str(chain_id),
        rest_url=str(rest_url),
        grpc_url=str(grpc_url),
        address_prefix=str(address_prefix),
        fee_denom=str(fee_denom),
        gas_price=float(gas_price),
    )


def load_transfer_config(
    *,
    config_path: str | Path | None = None,
    env: Mapping[str, str] | None = None,
    overrides: Mapping[str, Any] | None = None,
) -> TransferConfig:
    """Load transfer settings from CLI overrides, environment variables, and optional YAML.

    Precedence is overrides, then ``OSMO_TRANSFER_*`` variables, then the
    ``transfer`` section of the YAML file, then the built-in network presets.
    The credential source is exclusive: a mnemonic environment variable, when
    configured, replaces the default wallet file.
    """

    env_map = os.environ if env is None else env
    explicit_path = config_path is not None
    path = Path(config_path).expanduser() if config_path is not None else DEFAULT_CONFIG_PATH

    file_config = _load_config_file(path, required=explicit_path)
    section = file_config.get("transfer", {}) if isinstance(file_config, dict) else {}
    if section and not isinstance(section, dict):
        raise ConfigurationError(f"Expected 'transfer' to be a mapping in {path}")

    override_map = dict(overrides or {})

    network_name = _first_value(
        override_map.get("network"), _env(env_map, "NETWORK"), section.get("network"), DEFAULT_NETWORK
    )
    network = _resolve_network(str(network_name), override_map, env_map, section)

    wallet_file = _first_value(
        override_map.get("wallet_file"), _env(env_map, "WALLET_FILE"), section.get("wallet_file")
    )
    mnemonic_env = _first_value(
        override_map.get("mnemonic_env"), _env(env_map, "MNEMONIC_ENV"), section.get("mnemonic_env")
    )
    if wallet_file and mnemonic_env:
        raise ConfigurationError(
            "Configure exactly one credential source: either a wallet file or a mnemonic environment variable"
        )
    resolved_wallet_file: Path | None
    if mnemonic_env:
        resolved_wallet_file = None
    else:
        resolved_wallet_file = Path(wallet_file).expanduser() if wallet_file else DEFAULT_WALLET_FILE

    log_dir = _first_value(
        override_map.get("log_dir"), _env(env_map, "LOG_DIR"), section.get("log_dir"), DEFAULT_LOG_DIR
    )

    balance_check = str(
        _first_value(
            override_map.get("balance_check"),
            _env(env_map, "BALANCE_CHECK"),
            section.get("balance_check"),
            "required",
        )
    ).lower()
    if balance_check not in BALANCE_CHECK_POLICIES:
        raise ConfigurationError(
            f"Invalid balance_check policy {balance_check!r}; choose one of {', '.join(BALANCE_CHECK_POLICIES)}"
        )

    request_timeout = _first_value(
        _coerce_positive_float(override_map.get("request_timeout"), source="overrides"),
        _coerce_positive_float(_env(env_map, "REQUEST_TIMEOUT"), source="environment"),
        _coerce_positive_float(section.get("request_timeout"), source=f"{path} transfer.request_timeout"),
        DEFAULT_REQUEST_TIMEOUT,
    )
    broadcast_timeout = _first_value(
        _coerce_positive_float(override_map.get("broadcast_timeout"), source="overrides"),
        _coerce_positive_float(_env(env_map, "BROADCAST_TIMEOUT"), source="environment"),
        _coerce_positive_float(section.get("broadcast_timeout"), source=f"{path} transfer.broadcast_timeout"),
        DEFAULT_BROADCAST_TIMEOUT,
    )
    poll_period = _first_value(
        _coerce_positive_float(section.get("poll_period"), source=f"{path} transfer.poll_period"),
        DEFAULT_POLL_PERIOD,
    )
    enforce_prefix = _first_value(
        _coerce_bool(override_map.get("enforce_address_prefix")),
        _coerce_bool(_env(env_map, "ENFORCE_ADDRESS_PREFIX")),
        _coerce_bool(section.get("enforce_address_prefix")),
        True,
    )

    return TransferConfig(
        network=network,
        wallet_file=resolved_wallet_file,
        mnemonic_env=str(mnemonic_env) if mnemonic_env else None,
        log_dir=str(log_dir) if log_dir else None,
        balance_check=balance_check,
        request_timeout=float(request_timeout),
        broadcast_timeout=float(broadcast_timeout),
        poll_period=float(poll_period),
        enforce_address_prefix=bool(enforce_prefix),
    )
