from unittest.mock import MagicMock, patch

import pytest
from web3.exceptions import ContractLogicError

from storage_mocker.ethereum.token_reader import TokenReader
from storage_mocker.exceptions import StorageReadError

from .conftest import HOLDER, SPENDER, USDC_BASE

USDC_CHECKSUM = "0x833589fCD6eDb6E08f4c7C32D4f71b54bdA02913"


@pytest.fixture
def mock_web3():
    return MagicMock()


def test_get_storage_at_pads_and_pins_block(mock_web3):
    mock_web3.eth.get_storage_at.return_value = b"\x05"
    reader = TokenReader(mock_web3, block_identifier=123)

    word = reader.get_storage_at(USDC_BASE, b"\x00" * 31 + b"\x07")

    assert word == b"\x00" * 31 + b"\x05"
    mock_web3.eth.get_storage_at.assert_called_once_with(USDC_CHECKSUM, 7, block_identifier=123)


def test_get_storage_at_wraps_node_errors(mock_web3):
    mock_web3.eth.get_storage_at.side_effect = ValueError({"code": -32000, "message": "header not found"})

    with pytest.raises(StorageReadError) as excinfo:
        TokenReader(mock_web3).get_storage_at(USDC_BASE, b"\x00" * 32)

    assert isinstance(excinfo.value.__cause__, ValueError)


def test_balance_of_calls_contract(mock_web3):
    contract = mock_web3.eth.contract.return_value
    contract.functions.balanceOf.return_value.call.return_value = 8_600_000

    assert TokenReader(mock_web3).balance_of(USDC_BASE, HOLDER) == 8_600_000

    assert mock_web3.eth.contract.call_args.kwargs["address"] == USDC_CHECKSUM
    contract.functions.balanceOf.return_value.call.assert_called_once_with(block_identifier="latest")


def test_allowance_reverts_become_storage_read_errors(mock_web3):
    contract = mock_web3.eth.contract.return_value
    contract.functions.allowance.return_value.call.side_effect = ContractLogicError("execution reverted")

    with pytest.raises(StorageReadError):
        TokenReader(mock_web3).allowance(USDC_BASE, HOLDER, SPENDER)


def test_permit2_allowance_returns_amount(mock_web3):
    contract = mock_web3.eth.contract.return_value
    contract.functions.allowance.return_value.call.return_value = (42, 1_700_000_000, 3)

    assert TokenReader(mock_web3).permit2_allowance(SPENDER, HOLDER, USDC_BASE, SPENDER) == 42


@patch("storage_mocker.ethereum.token_reader.Web3")
def test_from_url_requires_connection(MockWeb3):
    MockWeb3.return_value.is_connected.return_value = False

    with pytest.raises(ConnectionError):
        TokenReader.from_url("http://mock-provider:8545")

    MockWeb3.HTTPProvider.assert_called_once_with("http://mock-provider:8545")


def test_pinned_resolves_latest_to_block_number(mock_web3):
    mock_web3.eth.get_block_number.return_value = 19_000_000
    mock_web3.eth.get_storage_at.return_value = b"\x00" * 32

    pinned = TokenReader(mock_web3).pinned()
    pinned.get_storage_at(USDC_BASE, b"\x00" * 32)

    assert pinned.block_identifier == 19_000_000
    mock_web3.eth.get_storage_at.assert_called_once_with(USDC_CHECKSUM, 0, block_identifier=19_000_000)


def test_pinned_keeps_explicit_block(mock_web3):
    reader = TokenReader(mock_web3, block_identifier=123)

    assert reader.pinned() is reader
    mock_web3.eth.get_block_number.assert_not_called()


def test_pinned_wraps_node_errors(mock_web3):
    mock_web3.eth.get_block_number.side_effect = OSError("connection reset")

    with pytest.raises(StorageReadError):
        TokenReader(mock_web3).pinned()
