# rpc/server.py
from typing import Optional

import structlog
from jsonrpcserver import Error, Result, Success, method, serve

from ..config import Settings
from ..core.cache import SlotCache
from ..ethereum.token_reader import TokenReader
from ..exceptions import (
    AllowanceNotFoundError,
    InvalidAmountError,
    NoBalanceError,
    SlotNotFoundError,
    StorageMockerError,
    StorageReadError,
)
from ..mock_data import MockDataGenerator
from ..overrides import MockData
from ..resolvers.approval import ApprovalSlotResolver
from ..resolvers.balance import BalanceSlotResolver
from ..resolvers.permit2 import PERMIT2_ADDRESS, generate_mock_permit2_allowance

logger = structlog.get_logger()

NOT_INITIALIZED = -32001
NO_BALANCE = -32010
SLOT_NOT_FOUND = -32011
ALLOWANCE_NOT_FOUND = -32012
STORAGE_READ_FAILED = -32013
INVALID_PARAMS = -32602

_ERROR_CODES = (
    (NoBalanceError, NO_BALANCE),
    (SlotNotFoundError, SLOT_NOT_FOUND),
    (AllowanceNotFoundError, ALLOWANCE_NOT_FOUND),
    (StorageReadError, STORAGE_READ_FAILED),
    (InvalidAmountError, INVALID_PARAMS),
)

# Service instance shared by all RPC methods; set by init_generator
generator: Optional[MockDataGenerator] = None
settings: Settings = Settings()


def build_generator(reader, service_settings: Settings) -> MockDataGenerator:
    """Generator whose resolvers carry the configured cache TTL, workers and fallback slot."""
    return MockDataGenerator(
        reader,
        balance_resolver=BalanceSlotResolver(
            reader,
            SlotCache(ttl=service_settings.cache_ttl),
            max_workers=service_settings.max_workers,
        ),
        approval_resolver=ApprovalSlotResolver(
            reader,
            SlotCache(ttl=service_settings.cache_ttl),
            max_workers=service_settings.max_workers,
            fallback_slot=service_settings.fallback_slot,
        ),
    )


def init_generator(service_settings: Settings, reader=None) -> None:
    """Initializes the global MockDataGenerator instance."""
    global generator, settings
    settings = service_settings
    if reader is None:
        try:
            reader = TokenReader.from_url(service_settings.web3_provider_url)
        except ConnectionError as e:
            logger.exception("Failed to initialize token reader", error=str(e))
            raise RuntimeError(f"Failed to initialize MockDataGenerator: {e}") from e
    generator = build_generator(reader, service_settings)
    logger.info(
        "MockDataGenerator initialized",
        provider=service_settings.web3_provider_url,
        max_slots=service_settings.max_slots,
    )


def _error_for(e: StorageMockerError) -> Result:
    for error_type, code in _ERROR_CODES:
        if isinstance(e, error_type):
            return Error(code=code, message=str(e))
    return Error(code=-32000, message=str(e))


def _success(mock: MockData) -> Result:
    return Success({"mock": mock.to_dict(), "stateOverride": mock.to_override()})


def _max_slots(requested: Optional[int]) -> int:
    return settings.max_slots if requested is None else requested


@method
def mock_balance(
    token: str,
    holder: str,
    mock_address: str,
    value: Optional[str] = None,
    max_slots: Optional[int] = None,
) -> Result:
    """Override giving mock_address a balance, resolved through holder."""
    logger.info("RPC call received: mock_balance", token=token, holder=holder)
    if generator is None:
        return Error(code=NOT_INITIALIZED, message="Mock data service not initialized")
    try:
        mock = generator.generate_mock_balance(
            token, holder, mock_address, value, _max_slots(max_slots)
        )
    except StorageMockerError as e:
        logger.warning("mock_balance failed", token=token, error=str(e))
        return _error_for(e)
    return _success(mock)


@method
def mock_approval(
    token: str,
    owner: str,
    spender: str,
    mock_address: str,
    value: str,
    max_slots: Optional[int] = None,
    use_fallback: bool = False,
) -> Result:
    """Override making mock_address approve spender, resolved through owner."""
    logger.info(
        "RPC call received: mock_approval", token=token, owner=owner, spender=spender
    )
    if generator is None:
        return Error(code=NOT_INITIALIZED, message="Mock data service not initialized")
    try:
        mock = generator.generate_mock_approval(
            token,
            owner,
            spender,
            mock_address,
            value,
            _max_slots(max_slots),
            use_fallback,
        )
    except StorageMockerError as e:
        logger.warning("mock_approval failed", token=token, error=str(e))
        return _error_for(e)
    return _success(mock)


@method
def permit2_allowance_slot(
    owner: str,
    token: str,
    spender: str,
    value: str = "0",
    permit2: str = PERMIT2_ADDRESS,
    expiration: Optional[int] = None,
    nonce: Optional[int] = None,
) -> Result:
    """Permit2 allowance override; needs no node access."""
    try:
        mock = generate_mock_permit2_allowance(
            owner, token, spender, value, permit2, expiration, nonce
        )
    except StorageMockerError as e:
        return _error_for(e)
    return _success(mock)


def start_rpc_server(service_settings: Settings) -> None:
    """Initializes the generator and starts the JSON-RPC server."""
    try:
        init_generator(service_settings)
    except RuntimeError as init_error:
        logger.critical(
            "Failed to start RPC server due to initialization error.", error=str(init_error)
        )
        raise
    logger.info("Starting JSON-RPC server", host=service_settings.host, port=service_settings.port)
    serve(service_settings.host, service_settings.port)
