import json
from unittest.mock import patch

import yaml

from storage_mocker import cli
from storage_mocker.core.layout import word_to_hex
from storage_mocker.resolvers.permit2 import PERMIT2_ADDRESS, pack_permit2_allowance

from .conftest import CRV, HOLDER, MOCK_ADDRESS, SPENDER, USDC_BASE


@patch("storage_mocker.cli.TokenReader.from_url")
def test_balance_command_prints_override(mock_from_url, chain, capsys):
    mock_from_url.return_value = chain

    exit_code = cli.main(
        ["balance", "--token", CRV, "--holder", HOLDER, "--mock-address", MOCK_ADDRESS, "--amount", "5"]
    )

    assert exit_code == 0
    payload = json.loads(capsys.readouterr().out)
    assert payload["mock"]["isVyper"] is True
    assert chain.with_overrides(payload["stateOverride"]).balance_of(CRV, MOCK_ADDRESS) == 5


@patch("storage_mocker.cli.TokenReader.from_url")
def test_approval_command_yaml_output(mock_from_url, chain, capsys):
    mock_from_url.return_value = chain

    exit_code = cli.main(
        [
            "--format",
            "yaml",
            "approval",
            "--token",
            USDC_BASE,
            "--owner",
            HOLDER,
            "--spender",
            SPENDER,
            "--mock-address",
            MOCK_ADDRESS,
            "--amount",
            "1000",
        ]
    )

    assert exit_code == 0
    payload = yaml.safe_load(capsys.readouterr().out)
    assert chain.with_overrides(payload["stateOverride"]).allowance(USDC_BASE, MOCK_ADDRESS, SPENDER) == 1000


@patch("storage_mocker.cli.TokenReader.from_url")
def test_resolution_failure_returns_error_code(mock_from_url, chain, capsys):
    mock_from_url.return_value = chain

    exit_code = cli.main(
        ["balance", "--token", USDC_BASE, "--holder", MOCK_ADDRESS, "--mock-address", HOLDER]
    )

    assert exit_code == 1
    assert capsys.readouterr().out == ""


@patch("storage_mocker.cli.TokenReader.from_url")
def test_permit2_command_is_offline(mock_from_url, capsys):
    exit_code = cli.main(
        ["permit2", "--owner", MOCK_ADDRESS, "--token", USDC_BASE, "--spender", SPENDER, "--amount", "1"]
    )

    assert exit_code == 0
    mock_from_url.assert_not_called()
    payload = json.loads(capsys.readouterr().out)
    assert list(payload["stateOverride"]) == [PERMIT2_ADDRESS]


def test_parser_defaults_come_from_settings():
    settings = cli.Settings(web3_provider_url="http://node:8545", max_slots=55)
    args = cli.build_parser(settings).parse_args(
        ["balance", "--token", CRV, "--holder", HOLDER, "--mock-address", MOCK_ADDRESS]
    )
    assert args.rpc_url == "http://node:8545"
    assert args.max_slots == 55
    assert args.amount is None


def test_permit2_command_packs_expiration_and_nonce(capsys):
    exit_code = cli.main(
        [
            "permit2",
            "--owner",
            MOCK_ADDRESS,
            "--token",
            USDC_BASE,
            "--spender",
            SPENDER,
            "--amount",
            "1000",
            "--expiration",
            "1700000000",
            "--nonce",
            "3",
        ]
    )

    assert exit_code == 0
    payload = json.loads(capsys.readouterr().out)
    assert payload["mock"]["value"] == word_to_hex(pack_permit2_allowance(1000, 1_700_000_000, 3))


@patch("storage_mocker.cli.TokenReader.from_url")
def test_block_option_reaches_reader(mock_from_url, chain):
    mock_from_url.return_value = chain

    cli.main(
        ["--block", "19000000", "balance", "--token", CRV, "--holder", HOLDER, "--mock-address", MOCK_ADDRESS]
    )

    assert mock_from_url.call_args.args[1] == 19_000_000


def test_block_option_accepts_tags():
    settings = cli.Settings()
    args = cli.build_parser(settings).parse_args(
        ["--block", "finalized", "balance", "--token", CRV, "--holder", HOLDER, "--mock-address", MOCK_ADDRESS]
    )
    assert args.block == "finalized"
