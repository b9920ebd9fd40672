import pytest

from osmo_transfer.errors import ValidationError
from osmo_transfer.model import Coin, TransactionRequest
from osmo_transfer.validation import parse_amount_token, validate_parts, validate_request


def test_validate_request_splits_amount_and_token() -> None:
    request = validate_request("1000BTC", "1A1zP1eP5QGefi2DMPTfTL5SLmv7DivfNa")

    assert request == TransactionRequest(
        amount=1000, denomination="BTC", destination="1A1zP1eP5QGefi2DMPTfTL5SLmv7DivfNa"
    )


def test_validate_request_accepts_dashed_numeric_suffix() -> None:
    request = validate_request("1000ERC-20", "ethA1zP1eP5QGefi2DMPTfTL5SLmv7DivfNa")

    assert (request.amount, request.denomination, request.destination) == (
        1000,
        "ERC-20",
        "ethA1zP1eP5QGefi2DMPTfTL5SLmv7DivfNa",
    )


@pytest.mark.parametrize("raw", ["1000234", "239btc!", "btc100", "", "100 btc", "100btc-", "100btc-x", "100btc\n"])
def test_parse_amount_token_rejects_malformed_values(raw: str) -> None:
    with pytest.raises(ValidationError) as excinfo:
        parse_amount_token(raw)

    assert excinfo.value.field == "amount"
    assert "malformed amount/token" in str(excinfo.value)


def test_invalid_address_is_reported_on_address_field() -> None:
    with pytest.raises(ValidationError) as excinfo:
        validate_request("239btc", "1A1zP1eP5Qef!i2DMPTfTL5SLmv7DivfNa")

    assert excinfo.value.field == "address"
    assert "invalid address format" in str(excinfo.value)


def test_malformed_amount_is_reported_before_address() -> None:
    with pytest.raises(ValidationError) as excinfo:
        validate_request("239btc!", "bad address!")

    assert excinfo.value.field == "amount"


def test_zero_amount_is_rejected() -> None:
    with pytest.raises(ValidationError, match="greater than zero"):
        validate_request("0uosmo", "osmo1destination")

    with pytest.raises(ValidationError, match="greater than zero"):
        validate_parts(0, "uosmo", "osmo1destination")


def test_address_prefix_is_enforced_when_requested() -> None:
    request = validate_request("5uosmo", "osmo1abcdef", address_prefix="osmo")
    assert request.destination == "osmo1abcdef"

    with pytest.raises(ValidationError) as excinfo:
        validate_request("5uosmo", "cosmos1abcdef", address_prefix="osmo")
    assert excinfo.value.field == "address"


def test_validate_parts_uses_typed_fields_as_is() -> None:
    request = validate_parts("110", "uosmo", "osmo1dest")

    assert request.coin() == Coin(denom="uosmo", amount="110")


@pytest.mark.parametrize(
    "amount, token, address, field",
    [
        ("-1", "uosmo", "osmo1dest", "amount"),
        ("1.5", "uosmo", "osmo1dest", "amount"),
        (True, "uosmo", "osmo1dest", "amount"),
        (5, "u osmo", "osmo1dest", "token"),
        (5, "uosmo", "osmo1/dest", "address"),
    ],
)
def test_validate_parts_rejects_each_field(amount, token, address, field) -> None:
    with pytest.raises(ValidationError) as excinfo:
        validate_parts(amount, token, address)

    assert excinfo.value.field == field


def test_validation_is_deterministic() -> None:
    first = validate_request("42uion", "osmo1dest")
    second = validate_request("42uion", "osmo1dest")

    assert first == second
