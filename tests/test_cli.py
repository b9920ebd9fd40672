from __future__ import annotations

import json
from pathlib import Path

import pytest

from osmo_transfer import cli
from osmo_transfer.chain_client import ChainHandle, SigningWallet
from osmo_transfer.errors import ConnectivityError
from osmo_transfer.model import Receipt

PHRASE = "abandon " * 11 + "about"


class StubChainClient:
    def __init__(self, receipt: Receipt | None = None, connect_error: BaseException | None = None) -> None:
        self.receipt = receipt or Receipt(code=0, height=42, tx_hash="ABCDEF")
        self.connect_error = connect_error
        self.calls: list[str] = []

    def connect(self, network):
        self.calls.append("connect")
        if self.connect_error:
            raise self.connect_error
        return ChainHandle(network=network, ledger=object())

    def all_balances(self, handle, address):
        self.calls.append("all_balances")
        return []

    def derive_wallet(self, phrase, address_prefix):
        self.calls.append("derive_wallet")
        return SigningWallet(address="osmo1sender", signer=object())

    def send_coins(self, handle, wallet, destination, coins):
        self.calls.append("send_coins")
        return self.receipt


@pytest.fixture
def cli_env(tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> dict[str, object]:
    monkeypatch.setattr("osmo_transfer.config.DEFAULT_CONFIG_PATH", tmp_path / "missing.yaml")
    for key in ("NETWORK", "WALLET_FILE", "MNEMONIC_ENV", "LOG_DIR", "BALANCE_CHECK"):
        monkeypatch.delenv(f"OSMO_TRANSFER_{key}", raising=False)
    monkeypatch.setenv("TEST_SEED", PHRASE)
    client = StubChainClient()
    monkeypatch.setattr(cli, "build_client", lambda config: client)
    return {"client": client, "log_dir": tmp_path / "logs", "monkeypatch": monkeypatch}


def _argv(cli_env, *extra: str) -> list[str]:
    return ["--mnemonic-env", "TEST_SEED", "--log-dir", str(cli_env["log_dir"]), *extra]


def test_successful_transfer_prints_report(cli_env, capsys) -> None:
    cli.main(_argv(cli_env, "--json", "110uosmo", "osmo1destination"))

    out = capsys.readouterr().out.strip()
    assert json.loads(out) == {"code": 0, "height": 42, "tx_hash": "ABCDEF"}
    assert cli_env["client"].calls == ["connect", "all_balances", "derive_wallet", "send_coins"]
    log_files = list(Path(cli_env["log_dir"]).glob("cli-tool_*.log"))
    assert len(log_files) == 1
    assert "Transaction completed successfully" in log_files[0].read_text()
    assert "abandon" not in log_files[0].read_text()


def test_wrong_argument_count_is_a_usage_error(cli_env) -> None:
    with pytest.raises(SystemExit) as excinfo:
        cli.main(["110uosmo"])

    assert excinfo.value.code == 2
    assert cli_env["client"].calls == []


def test_validation_error_exits_before_network(cli_env, capsys) -> None:
    def fail_build(_config):
        raise AssertionError("client must not be built for invalid input")

    cli_env["monkeypatch"].setattr(cli, "build_client", fail_build)

    with pytest.raises(SystemExit) as excinfo:
        cli.main(_argv(cli_env, "239btc!", "osmo1destination"))

    assert excinfo.value.code == 3
    assert "malformed amount/token" in capsys.readouterr().err


def test_foreign_address_prefix_can_be_allowed(cli_env, capsys) -> None:
    with pytest.raises(SystemExit) as excinfo:
        cli.main(_argv(cli_env, "10uosmo", "cosmos1destination"))
    assert excinfo.value.code == 3

    cli.main(_argv(cli_env, "--no-prefix-check", "--json", "10uosmo", "cosmos1destination"))
    assert json.loads(capsys.readouterr().out.strip().splitlines()[-1])["code"] == 0


def test_missing_wallet_file_exits_with_credential_status(cli_env, tmp_path: Path, capsys) -> None:
    argv = ["--wallet-file", str(tmp_path / "wallet.key"), "--log-dir", "", "5uosmo", "osmo1destination"]

    with pytest.raises(SystemExit) as excinfo:
        cli.main(argv)

    assert excinfo.value.code == 4
    err = capsys.readouterr().err
    assert "[credential]" in err
    assert "Hint:" in err
    assert cli_env["client"].calls == []


def test_connectivity_error_names_the_step(cli_env, capsys) -> None:
    client = StubChainClient(connect_error=ConnectivityError("node unreachable"))
    cli_env["monkeypatch"].setattr(cli, "build_client", lambda config: client)

    with pytest.raises(SystemExit) as excinfo:
        cli.main(_argv(cli_env, "5uosmo", "osmo1destination"))

    assert excinfo.value.code == 5
    assert "[connect] node unreachable" in capsys.readouterr().err


def test_logical_failure_prints_report_and_fails(cli_env, capsys) -> None:
    client = StubChainClient(receipt=Receipt(code=13, height=50, tx_hash="FEE", raw_log="insufficient fee"))
    cli_env["monkeypatch"].setattr(cli, "build_client", lambda config: client)

    with pytest.raises(SystemExit) as excinfo:
        cli.main(_argv(cli_env, "--json", "5uosmo", "osmo1destination"))

    captured = capsys.readouterr()
    assert excinfo.value.code == 8
    assert json.loads(captured.out.strip()) == {"code": 13, "height": 50, "tx_hash": "FEE"}
    assert "[outcome]" in captured.err


def test_both_credential_flags_are_rejected_by_parser(cli_env) -> None:
    with pytest.raises(SystemExit) as excinfo:
        cli.main(["--wallet-file", "k", "--mnemonic-env", "S", "5uosmo", "osmo1destination"])

    assert excinfo.value.code == 2


def test_unknown_network_is_a_configuration_error(cli_env, capsys) -> None:
    with pytest.raises(SystemExit) as excinfo:
        cli.main(_argv(cli_env, "--network", "nowhere", "5uosmo", "osmo1destination"))

    assert excinfo.value.code == 9
    assert "[configuration]" in capsys.readouterr().err


def test_default_output_is_a_readable_summary(cli_env, capsys) -> None:
    cli.main(_argv(cli_env, "110uosmo", "osmo1destination"))

    out = capsys.readouterr().out
    assert "Transfer of 110uosmo to osmo1destination succeeded" in out
    assert "height:  42" in out
    assert "tx_hash: ABCDEF" in out


def test_check_time_rejection_prints_report_with_zero_height(cli_env, capsys) -> None:
    client = StubChainClient(receipt=Receipt(code=13, height=0, tx_hash="HASH13", raw_log="insufficient fees"))
    cli_env["monkeypatch"].setattr(cli, "build_client", lambda config: client)

    with pytest.raises(SystemExit) as excinfo:
        cli.main(_argv(cli_env, "--json", "5uosmo", "osmo1destination"))

    captured = capsys.readouterr()
    assert excinfo.value.code == 8
    assert json.loads(captured.out.strip()) == {"code": 13, "height": 0, "tx_hash": "HASH13"}
    assert "HASH13" in captured.err


def test_interrupt_before_broadcast_sends_nothing(cli_env, capsys) -> None:
    client = StubChainClient(connect_error=KeyboardInterrupt())
    cli_env["monkeypatch"].setattr(cli, "build_client", lambda config: client)

    with pytest.raises(SystemExit) as excinfo:
        cli.main(_argv(cli_env, "5uosmo", "osmo1destination"))

    assert excinfo.value.code == 130
    assert "nothing was sent" in capsys.readouterr().err
    assert client.calls == ["connect"]
    assert "send_coins" not in client.calls


def test_malformed_input_is_rejected_before_config_and_logging(cli_env, tmp_path: Path, capsys) -> None:
    broken = tmp_path / "broken.yaml"
    broken.write_text("- just\n- a list\n")

    with pytest.raises(SystemExit) as excinfo:
        cli.main(_argv(cli_env, "--config", str(broken), "0uosmo", "osmo1destination"))

    assert excinfo.value.code == 3
    assert "[validation]" in capsys.readouterr().err
    assert not Path(cli_env["log_dir"]).exists()
