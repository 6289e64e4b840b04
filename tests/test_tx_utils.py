import pytest

from chain.provider import StaticChainConfig
from chain.tx_utils import (
    TxUtils,
    add_gas_buffer,
    build_transaction,
    exceeds_block_limit,
    max_transaction_cost,
    sufficient_balance,
)
from core.base_types import CanonicalTransaction, TransactionParams
from core.errors import (
    InsufficientBalanceError,
    InvalidParameterError,
    OversizedEstimateError,
    ParseError,
)
from core.hex_utils import hex_to_int, int_to_hex

TX_PARAMS = {
    "to": "0x70ad465e0bab6504002ad58c744ed89c7da38524",
    "from": "0x69ad465e0bab6504002ad58c744ed89c7da38525",
    "value": "0x0",
    "gas": "0x7b0c",
    "gasPrice": "0x199c82cc00",
    "data": "0x",
    "nonce": "0x3",
    "chainId": 42,
}


class _StubProvider:
    def __init__(self, block_gas_limit="0x1c9c380", chain_id=None):
        self._block_gas_limit = block_gas_limit
        self._chain_id = chain_id

    def get_chain_id(self):
        return self._chain_id

    def get_block_gas_limit(self):
        return self._block_gas_limit


# ── sufficient_balance ───────────────────────────────────────


def test_sufficient_balance_when_cost_equals_balance():
    tx = {"value": "0x1", "gas": "0x2", "gasPrice": "0x3"}
    assert sufficient_balance(tx, "0x7") is True


def test_sufficient_balance_when_cost_below_balance():
    tx = {"value": "0x1", "gas": "0x2", "gasPrice": "0x3"}
    assert sufficient_balance(tx, "0x9") is True


def test_insufficient_balance_when_cost_above_balance():
    tx = {"value": "0x1", "gas": "0x2", "gasPrice": "0x3"}
    assert sufficient_balance(tx, "0x6") is False


def test_sufficient_balance_missing_value_is_zero():
    tx = {"gas": "0x2", "gasPrice": "0x3"}
    assert max_transaction_cost(tx) == 6
    assert sufficient_balance(tx, "0x6") is True
    assert sufficient_balance(tx, "0x5") is False


def test_sufficient_balance_beyond_64_bits():
    tx = {
        "value": int_to_hex(2**256),
        "gas": int_to_hex(2**70),
        "gasPrice": int_to_hex(2**70),
    }
    cost = 2**256 + 2**140
    assert max_transaction_cost(tx) == cost
    assert sufficient_balance(tx, int_to_hex(cost)) is True
    assert sufficient_balance(tx, int_to_hex(cost - 1)) is False


def test_sufficient_balance_accepts_transaction_objects():
    params = TransactionParams(to=TX_PARAMS["to"], value="0x1", gas="0x2", gas_price="0x3")
    assert sufficient_balance(params, "0x7") is True
    assert sufficient_balance(build_transaction(params), "0x6") is False


def test_sufficient_balance_malformed_field_raises():
    tx = {"value": "0x1", "gas": "0xgg", "gasPrice": "0x3"}
    with pytest.raises(ParseError, match="gas"):
        sufficient_balance(tx, "0x100")


def test_sufficient_balance_malformed_balance_raises():
    tx = {"value": "0x1", "gas": "0x2", "gasPrice": "0x3"}
    with pytest.raises(ParseError, match="balance"):
        sufficient_balance(tx, "lots")


# ── build_transaction ────────────────────────────────────────


def test_build_transaction_embeds_chain_id():
    tx = build_transaction(TX_PARAMS)
    assert tx.get_chain_id() == 42


def test_build_transaction_copies_hex_verbatim():
    params = dict(TX_PARAMS, value="0x00ff")
    tx = build_transaction(params)
    assert tx.value == "0x00ff"
    assert tx.gas_price == "0x199c82cc00"
    assert tx.sender == TX_PARAMS["from"]
    assert tx.to_dict() == params


def test_build_transaction_without_chain_id_is_network_agnostic():
    params = {k: v for k, v in TX_PARAMS.items() if k != "chainId"}
    tx = build_transaction(params)
    assert tx.get_chain_id() is None
    assert "chainId" not in tx.to_dict()


def test_build_transaction_accepts_decimal_string_chain_id():
    tx = build_transaction(dict(TX_PARAMS, chainId="42"))
    assert tx.chain_id == 42


def test_build_transaction_rejects_bad_chain_id():
    with pytest.raises(ParseError, match="chainId"):
        build_transaction(dict(TX_PARAMS, chainId="0x2a"))


def test_build_transaction_is_idempotent():
    once = build_transaction(TX_PARAMS)
    twice = build_transaction(once)
    assert twice == once
    assert build_transaction(twice.to_dict()) == once


def test_build_transaction_does_not_mutate_input():
    params = dict(TX_PARAMS)
    tx = build_transaction(params)
    assert params == TX_PARAMS
    assert isinstance(tx, CanonicalTransaction)


def test_build_transaction_encodes_int_quantities():
    tx = build_transaction(dict(TX_PARAMS, value=10**18, nonce=0))
    assert tx.value == "0xde0b6b3a7640000"
    assert tx.nonce == "0x0"


def test_build_transaction_contract_creation_without_to():
    params = {"data": "0x6080604052", "gas": "0x5208", "nonce": "0x0"}
    tx = build_transaction(params)
    assert tx.is_contract_creation
    assert tx.value is None


def test_build_transaction_requires_to_or_data():
    with pytest.raises(InvalidParameterError, match="'to'"):
        build_transaction({"value": "0x1", "gas": "0x5208"})
    with pytest.raises(InvalidParameterError):
        build_transaction({"to": "0x", "data": "0x"})


def test_build_transaction_rejects_non_mapping():
    with pytest.raises(InvalidParameterError):
        build_transaction("0x70ad465e0bab6504002ad58c744ed89c7da38524")


def test_build_transaction_rejects_non_string_address():
    with pytest.raises(InvalidParameterError, match="to must be"):
        build_transaction(dict(TX_PARAMS, to=1234))


# ── add_gas_buffer ───────────────────────────────────────────


def test_add_gas_buffer_multiplies_when_within_block_limit():
    # 1.5M estimate, ~4M block limit
    output = add_gas_buffer("0x16e360", "0x3d4c52")
    assert hex_to_int(output) == 2_250_000
    assert output == "0x225510"


def test_add_gas_buffer_uses_estimate_when_above_block_limit():
    # 1.5M estimate, 1M block limit
    assert add_gas_buffer("0x16e360", "0x0f4240") == "0x16e360"


def test_add_gas_buffer_caps_at_ceiling():
    # 1.5M estimate, 2M block limit -> 90% of 2M
    assert add_gas_buffer("0x16e360", "0x1e8480") == "0x1b7740"


def test_add_gas_buffer_tie_returns_ceiling():
    # buffered = 6, ceiling = floor(7 * 0.9) = 6
    assert add_gas_buffer("0x4", "0x7") == "0x6"


def test_add_gas_buffer_truncates_fractional_gas():
    assert add_gas_buffer("0x3", "0x64") == "0x4"


def test_add_gas_buffer_estimate_equal_to_block_limit_is_capped():
    assert add_gas_buffer("0x64", "0x64") == "0x5a"


def test_add_gas_buffer_normalizes_output():
    assert add_gas_buffer("0x00016e360", "0x00f4240") == "0x16e360"
    assert add_gas_buffer("0x0", "0x1e8480") == "0x0"


def test_add_gas_buffer_keeps_precision_for_large_values():
    estimate = 10**21
    output = add_gas_buffer(int_to_hex(estimate), int_to_hex(10**23), 1.1)
    assert hex_to_int(output) == 11 * 10**20

    estimate = 2**80 + 1
    output = add_gas_buffer(int_to_hex(estimate), int_to_hex(2**90))
    assert hex_to_int(output) == 3 * 2**79 + 1


@pytest.mark.parametrize("multiplier", [0, -1.5, float("nan"), float("inf")])
def test_add_gas_buffer_rejects_bad_multiplier(multiplier):
    with pytest.raises(InvalidParameterError, match="multiplier"):
        add_gas_buffer("0x16e360", "0x3d4c52", multiplier)


def test_add_gas_buffer_accepts_huge_int_multiplier():
    # no float conversion, so no overflow; the result is capped at the ceiling
    assert add_gas_buffer("0x1", "0x10", 10**400) == "0xe"
    assert add_gas_buffer("0x1", "0x10", 10**5000) == "0xe"


def test_add_gas_buffer_malformed_hex_raises():
    with pytest.raises(ParseError, match="estimatedGas"):
        add_gas_buffer("0xnothex", "0x3d4c52")
    with pytest.raises(ParseError, match="blockGasLimit"):
        add_gas_buffer("0x16e360", None)


def test_exceeds_block_limit():
    assert exceeds_block_limit("0x16e360", "0x0f4240") is True
    assert exceeds_block_limit("0x0f4240", "0x0f4240") is False


# ── TxUtils ──────────────────────────────────────────────────


def test_tx_utils_with_stub_provider_delegates():
    utils = TxUtils(_StubProvider(block_gas_limit="0x1e8480"))
    assert utils.sufficient_balance({"value": "0x1", "gas": "0x2", "gasPrice": "0x3"}, "0x7")
    assert utils.build_transaction(TX_PARAMS).get_chain_id() == 42
    assert utils.add_gas_buffer("0x16e360") == "0x1b7740"
    assert utils.add_gas_buffer("0x16e360", "0x3d4c52") == "0x225510"
    assert utils.add_gas_buffer("0x16e360", "0x3d4c52", 2) == "0x2dc6c0"


def test_tx_utils_rejects_bad_default_multiplier():
    with pytest.raises(InvalidParameterError):
        TxUtils(_StubProvider(), buffer_multiplier=0)


def test_prepare_transaction_attaches_buffered_gas():
    utils = TxUtils(StaticChainConfig(block_gas_limit="0x1c9c380", chain_id=5))
    params = {
        "to": TX_PARAMS["to"],
        "value": "0x0",
        "gasPrice": "0x1",
        "data": "0x",
        "nonce": "0x3",
    }
    tx = utils.prepare_transaction(params, balance="0x7b0c", estimated_gas="0x5208")
    assert tx.gas == "0x7b0c"
    assert tx.chain_id == 5


def test_prepare_transaction_keeps_explicit_chain_id():
    utils = TxUtils(_StubProvider(chain_id=1))
    tx = utils.prepare_transaction(TX_PARAMS, balance="0x" + "f" * 20, estimated_gas="0x5208")
    assert tx.chain_id == 42


def test_prepare_transaction_insufficient_after_buffer():
    utils = TxUtils(_StubProvider())
    params = {"to": TX_PARAMS["to"], "value": "0x0", "gasPrice": "0x1"}
    with pytest.raises(InsufficientBalanceError) as exc:
        utils.prepare_transaction(params, balance="0x7b0b", estimated_gas="0x5208")
    assert exc.value.required == 31_500
    assert exc.value.available == 31_499


def test_prepare_transaction_insufficient_before_estimate():
    utils = TxUtils(_StubProvider())
    params = {"to": TX_PARAMS["to"], "value": "0x10"}
    with pytest.raises(InsufficientBalanceError):
        utils.prepare_transaction(params, balance="0xf", estimated_gas="0x5208")


def test_prepare_transaction_oversized_estimate():
    utils = TxUtils(_StubProvider(block_gas_limit="0x0f4240"))
    with pytest.raises(OversizedEstimateError) as exc:
        utils.prepare_transaction(TX_PARAMS, balance="0x" + "f" * 20, estimated_gas="0x16e360")
    assert exc.value.estimated_gas == 1_500_000
    assert exc.value.block_gas_limit == 1_000_000
