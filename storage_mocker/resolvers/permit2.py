# resolvers/permit2.py
"""
Storage keys for the Permit2 allowance registry.

Unlike arbitrary tokens the layout is known: ``allowance`` is declared at slot 1
as ``mapping(owner => mapping(token => mapping(spender => PackedAllowance)))``,
so no search is needed.
"""

from typing import Optional

from ..core.layout import nested_storage_key
from ..exceptions import InvalidAmountError
from ..overrides import Amount, MockData, parse_amount

PERMIT2_ADDRESS = "0x000000000022D473030F116dDEE9F6B43aC78BA3"
PERMIT2_ALLOWANCE_SLOT = 1

_UINT48_MAX = 2**48 - 1
_UINT160_MAX = 2**160 - 1


def compute_permit2_allowance_storage_slot(owner: str, token: str, spender: str) -> bytes:
    """Storage key of ``allowance[owner][token][spender]`` in Permit2."""
    return nested_storage_key([owner, token, spender], PERMIT2_ALLOWANCE_SLOT)


def pack_permit2_allowance(amount: int, expiration: int = 0, nonce: int = 0) -> int:
    """
    Pack a PackedAllowance word: amount (uint160) in the low bits, then
    expiration (uint48), then nonce (uint48).

    Raises:
        InvalidAmountError: A field does not fit its width
    """
    if not 0 <= amount <= _UINT160_MAX:
        raise InvalidAmountError(f"Permit2 amount {amount} does not fit in uint160")
    if not 0 <= expiration <= _UINT48_MAX or not 0 <= nonce <= _UINT48_MAX:
        raise InvalidAmountError("Permit2 expiration and nonce must fit in uint48")
    return amount | (expiration << 160) | (nonce << 208)


def generate_mock_permit2_allowance(
    owner: str,
    token: str,
    spender: str,
    value: Amount,
    permit2: str = PERMIT2_ADDRESS,
    expiration: Optional[int] = None,
    nonce: Optional[int] = None,
) -> MockData:
    """
    Override for the allowance word of ``(owner, token, spender)``.

    Without ``expiration`` and ``nonce`` the word is ``value`` written verbatim.
    With either of them, ``value`` is the uint160 amount and the word is packed
    (a missing field counts as 0).
    """
    word = parse_amount(value)
    if expiration is not None or nonce is not None:
        word = pack_permit2_allowance(word, expiration or 0, nonce or 0)
    return MockData(permit2, compute_permit2_allowance_storage_slot(owner, token, spender), word)
