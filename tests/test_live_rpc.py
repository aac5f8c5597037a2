"""Scenarios against real nodes; skipped unless BASE_RPC_URL / ETH_RPC_URL are set."""

import os

import pytest

from storage_mocker.core.layout import LayoutConvention
from storage_mocker.ethereum.token_reader import TokenReader
from storage_mocker.mock_data import MockDataGenerator
from storage_mocker.resolvers.approval import ApprovalSlotResolver
from storage_mocker.resolvers.balance import BalanceSlotResolver
from storage_mocker.resolvers.permit2 import PERMIT2_ADDRESS, generate_mock_permit2_allowance
from storage_mocker.simulation import (
    read_allowance_with_override,
    read_balance_with_override,
    read_permit2_allowance_with_override,
)

from .conftest import CRV, HOLDER, MOCK_ADDRESS, SPENDER, USDC_BASE

_BASE_RPC_URL = os.getenv("BASE_RPC_URL")
_ETH_RPC_URL = os.getenv("ETH_RPC_URL")

needs_base = pytest.mark.skipif(
    _BASE_RPC_URL is None, reason="Base RPC access required. Please set `BASE_RPC_URL`."
)
needs_eth = pytest.mark.skipif(
    _ETH_RPC_URL is None, reason="Mainnet RPC access required. Please set `ETH_RPC_URL`."
)

APPROVAL_AMOUNT = 1461501637330902918203684832716283019655932142975


@needs_base
def test_usdc_base_slots():
    reader = TokenReader.from_url(_BASE_RPC_URL)

    balance = BalanceSlotResolver(reader).resolve(USDC_BASE, HOLDER, 30)
    approval = ApprovalSlotResolver(reader).resolve(USDC_BASE, HOLDER, SPENDER, 30)

    assert (balance.slot_index, balance.convention) == (9, LayoutConvention.STANDARD)
    assert (approval.slot_index, approval.convention) == (10, LayoutConvention.STANDARD)


@needs_eth
def test_crv_mainnet_slots():
    reader = TokenReader.from_url(_ETH_RPC_URL)

    balance = BalanceSlotResolver(reader).resolve(CRV, HOLDER, 30)
    approval = ApprovalSlotResolver(reader).resolve(CRV, HOLDER, SPENDER, 30)

    assert (balance.slot_index, balance.convention) == (3, LayoutConvention.REVERSED)
    assert (approval.slot_index, approval.convention) == (4, LayoutConvention.REVERSED)


@needs_base
def test_usdc_base_overrides_round_trip():
    reader = TokenReader.from_url(_BASE_RPC_URL)
    generator = MockDataGenerator(reader)

    balance = generator.generate_mock_balance(USDC_BASE, HOLDER, MOCK_ADDRESS, 9_600_000)
    approval = generator.generate_mock_approval(
        USDC_BASE, HOLDER, SPENDER, MOCK_ADDRESS, APPROVAL_AMOUNT, 100
    )

    assert read_balance_with_override(reader.web3, USDC_BASE, MOCK_ADDRESS, balance.to_override()) == 9_600_000
    assert read_allowance_with_override(
        reader.web3, USDC_BASE, MOCK_ADDRESS, SPENDER, approval.to_override()
    ) == APPROVAL_AMOUNT


@needs_base
def test_permit2_override_round_trip():
    reader = TokenReader.from_url(_BASE_RPC_URL)
    spender = "0xd8da6bf26964af9d7eed9e03e53415d37aa96045"
    mock = generate_mock_permit2_allowance(MOCK_ADDRESS, USDC_BASE, spender, APPROVAL_AMOUNT)

    assert read_permit2_allowance_with_override(
        reader.web3, PERMIT2_ADDRESS, MOCK_ADDRESS, USDC_BASE, spender, mock.to_override()
    ) == APPROVAL_AMOUNT
