# simulation.py
"""
Round-trip verification of generated overrides through ``eth_call``.

Nothing here commits state: the override map is passed as the third
``eth_call`` parameter and only affects the simulated call.
"""

from typing import Any, Dict, Optional

import structlog
from eth_abi import decode, encode
from eth_utils import function_signature_to_4byte_selector, to_hex
from web3 import Web3

from .exceptions import StorageReadError
from .overrides import OverrideMap

logger = structlog.get_logger()


def _calldata(signature: str, arg_types, args) -> str:
    return to_hex(function_signature_to_4byte_selector(signature) + encode(arg_types, args))


def simulate_call(
    web3: Web3,
    to: str,
    data: str,
    overrides: Optional[OverrideMap] = None,
    block_identifier: str = "latest",
) -> bytes:
    """Execute ``eth_call`` with an optional state-override map and return raw output."""
    params: list = [{"to": Web3.to_checksum_address(to), "data": data}, block_identifier]
    if overrides:
        params.append(overrides)
    logger.debug("Simulating call", to=to, overrides=bool(overrides))
    response: Dict[str, Any] = web3.provider.make_request("eth_call", params)
    if "error" in response:
        logger.error("eth_call with overrides failed", to=to, error=response["error"])
        raise StorageReadError(f"eth_call to {to} failed: {response['error']}")
    result = response.get("result") or "0x"
    return bytes.fromhex(result[2:] if result.startswith("0x") else result)


def read_balance_with_override(
    web3: Web3, token: str, account: str, overrides: Optional[OverrideMap] = None
) -> int:
    data = _calldata(
        "balanceOf(address)", ["address"], [Web3.to_checksum_address(account)]
    )
    (balance,) = decode(["uint256"], simulate_call(web3, token, data, overrides))
    return balance


def read_allowance_with_override(
    web3: Web3,
    token: str,
    owner: str,
    spender: str,
    overrides: Optional[OverrideMap] = None,
) -> int:
    data = _calldata(
        "allowance(address,address)",
        ["address", "address"],
        [Web3.to_checksum_address(owner), Web3.to_checksum_address(spender)],
    )
    (allowance,) = decode(["uint256"], simulate_call(web3, token, data, overrides))
    return allowance


def read_permit2_allowance_with_override(
    web3: Web3,
    permit2: str,
    owner: str,
    token: str,
    spender: str,
    overrides: Optional[OverrideMap] = None,
) -> int:
    data = _calldata(
        "allowance(address,address,address)",
        ["address", "address", "address"],
        [
            Web3.to_checksum_address(owner),
            Web3.to_checksum_address(token),
            Web3.to_checksum_address(spender),
        ],
    )
    amount, _expiration, _nonce = decode(
        ["uint160", "uint48", "uint48"], simulate_call(web3, permit2, data, overrides)
    )
    return amount
