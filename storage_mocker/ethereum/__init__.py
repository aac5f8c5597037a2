from .token_reader import ERC20_ABI_MINIMAL, PERMIT2_ABI_MINIMAL, TokenReader

__all__ = ["ERC20_ABI_MINIMAL", "PERMIT2_ABI_MINIMAL", "TokenReader"]
