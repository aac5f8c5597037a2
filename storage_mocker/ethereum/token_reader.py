# ethereum/token_reader.py
from typing import Any, Dict, List, Union

import structlog
from web3 import Web3
from web3.exceptions import ContractLogicError, Web3Exception

from ..exceptions import StorageReadError

logger = structlog.get_logger()

BlockIdentifier = Union[str, int]

# Tags whose block changes between calls
MOVING_BLOCK_TAGS = ("latest", "pending", "safe", "finalized")

# Standard ERC20 ABI subset needed for balance and allowance reads
ERC20_ABI_MINIMAL = [
    {
        "constant": True,
        "inputs": [{"name": "_owner", "type": "address"}],
        "name": "balanceOf",
        "outputs": [{"name": "balance", "type": "uint256"}],
        "type": "function",
    },
    {
        "constant": True,
        "inputs": [
            {"name": "_owner", "type": "address"},
            {"name": "_spender", "type": "address"},
        ],
        "name": "allowance",
        "outputs": [{"name": "", "type": "uint256"}],
        "type": "function",
    },
]

PERMIT2_ABI_MINIMAL = [
    {
        "inputs": [
            {"name": "owner", "type": "address"},
            {"name": "token", "type": "address"},
            {"name": "spender", "type": "address"},
        ],
        "name": "allowance",
        "outputs": [
            {"name": "amount", "type": "uint160"},
            {"name": "expiration", "type": "uint48"},
            {"name": "nonce", "type": "uint48"},
        ],
        "stateMutability": "view",
        "type": "function",
    },
]


class TokenReader:
    """
    Read-only view of token state over a Web3 connection.

    Every read uses ``block_identifier``. A tag such as ``"latest"`` moves with
    the chain, so resolvers call ``pinned()`` at the start of a search to read
    the oracle value and all storage probes at one block number. Node failures
    are raised as StorageReadError and never retried here.
    """

    def __init__(self, web3: Web3, block_identifier: BlockIdentifier = "latest"):
        self.web3 = web3
        self.block_identifier = block_identifier

    @classmethod
    def from_url(cls, web3_provider_url: str, block_identifier: BlockIdentifier = "latest") -> "TokenReader":
        web3 = Web3(Web3.HTTPProvider(web3_provider_url))
        if not web3.is_connected():
            raise ConnectionError(
                f"Failed to connect to Web3 provider at {web3_provider_url}"
            )
        logger.info("Connected to Web3 provider", url=web3_provider_url)
        return cls(web3, block_identifier)

    def pinned(self) -> "TokenReader":
        """Reader fixed to the current block number when this one follows a block tag."""
        if self.block_identifier not in MOVING_BLOCK_TAGS:
            return self
        try:
            block_number = self.web3.eth.get_block_number()
        except (Web3Exception, ValueError, OSError) as e:
            raise StorageReadError(f"Failed to resolve {self.block_identifier} block: {e}") from e
        logger.debug("Pinned reads to block", tag=self.block_identifier, block=block_number)
        return TokenReader(self.web3, block_number)

    def get_storage_at(self, address: str, key: bytes) -> bytes:
        """Raw 32-byte storage word of ``address`` at ``key``."""
        try:
            value = self.web3.eth.get_storage_at(
                Web3.to_checksum_address(address),
                int.from_bytes(key, "big"),
                block_identifier=self.block_identifier,
            )
        except (Web3Exception, ValueError, OSError) as e:
            logger.warning(
                "Storage read failed", address=address, key="0x" + key.hex(), error=str(e)
            )
            raise StorageReadError(f"Failed to read storage of {address}: {e}") from e
        return bytes(value).rjust(32, b"\x00")

    def balance_of(self, token: str, account: str) -> int:
        logger.debug("Fetching token balance", token=token, user=account)
        contract = self._contract(token, ERC20_ABI_MINIMAL)
        return self._call(
            contract.functions.balanceOf(Web3.to_checksum_address(account)),
            token=token,
            function="balanceOf",
        )

    def allowance(self, token: str, owner: str, spender: str) -> int:
        logger.debug("Fetching token allowance", token=token, owner=owner, spender=spender)
        contract = self._contract(token, ERC20_ABI_MINIMAL)
        return self._call(
            contract.functions.allowance(
                Web3.to_checksum_address(owner), Web3.to_checksum_address(spender)
            ),
            token=token,
            function="allowance",
        )

    def permit2_allowance(self, registry: str, owner: str, token: str, spender: str) -> int:
        """Amount field of the Permit2 ``allowance(owner, token, spender)`` tuple."""
        contract = self._contract(registry, PERMIT2_ABI_MINIMAL)
        amount, _expiration, _nonce = self._call(
            contract.functions.allowance(
                Web3.to_checksum_address(owner),
                Web3.to_checksum_address(token),
                Web3.to_checksum_address(spender),
            ),
            token=token,
            function="allowance",
        )
        return amount

    def _contract(self, address: str, abi: List[Dict[str, Any]]):
        return self.web3.eth.contract(address=Web3.to_checksum_address(address), abi=abi)

    def _call(self, fn, token: str, function: str) -> Any:
        try:
            return fn.call(block_identifier=self.block_identifier)
        except ContractLogicError as cle:
            # Reverts usually mean the contract does not implement the call
            logger.warning(
                "Contract logic error", token=token, function=function, error=str(cle)
            )
            raise StorageReadError(f"{function} reverted on {token}: {cle}") from cle
        except (Web3Exception, ValueError, OSError) as e:
            logger.exception(
                "Error calling token contract", token=token, function=function, error=str(e)
            )
            raise StorageReadError(f"{function} failed on {token}: {e}") from e
