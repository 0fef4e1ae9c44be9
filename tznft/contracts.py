"""Contract origination and the high-level NFT operations.

Every public coroutine takes the configuration store explicitly, resolves
aliases through :mod:`tznft.aliases` and talks to the network only through an
:class:`~tznft.toolkit.ExecutionHandle`.
"""

from __future__ import annotations

import logging
from pathlib import Path
from typing import Any, List, Optional, Sequence, Tuple

from . import fa2
from .aliases import resolve_address
from .batch import resolve_operators, resolve_transfer_addresses
from .config import ConfigReader, ConfigurationError, inspector_key
from .fa2 import (
    METADATA_KEY_TYPE,
    BalanceOfRequest,
    BalanceOfResponse,
    TokenMetadata,
    Transfer,
    decode_inspector_storage,
    decode_nft_storage,
    decode_token_metadata,
)
from .micheline import MichelsonSyntaxError, SchemaMismatchError, integer
from .rpc_client import RPCError, RPCTransportError
from .storage import NftStorage, encode_nft_storage
from .tasks import gather_all_or_nothing
from .toolkit import ExecutionHandle, OperationFailedError, create_toolkit

logger = logging.getLogger(__name__)

MICHELSON_DIR = Path(__file__).resolve().parent / "michelson"
INSPECTOR_CODE_PATH = MICHELSON_DIR / "inspector.tz"
NFT_CODE_PATH = MICHELSON_DIR / "fa2_fixed_collection_token.tz"
INSPECTOR_INITIAL_STORAGE = "(Left Unit)"


class OriginationError(RuntimeError):
    """Raised when a contract origination is rejected or fails to confirm."""

    def __init__(self, label: str, cause: BaseException) -> None:
        super().__init__(f"{label} origination failed: {cause}")
        self.label = label
        self.cause = cause


class InspectorNotDeployedError(ConfigurationError):
    """Raised when no balance inspector address is stored for the active network."""

    def __init__(self) -> None:
        super().__init__(
            "Cannot find a deployed balance inspector contract; run 'tznft bootstrap' first"
        )


def load_code(path: Path) -> str:
    return Path(path).read_text()


async def originate_contract(
    handle: ExecutionHandle,
    code: str,
    storage: str | NftStorage | Any,
    label: str,
) -> str:
    """Originate ``code`` and return the new contract address.

    A ``str`` storage is a Michelson literal sent as ``init``; anything else is
    structured storage. Failures are not retried.
    """

    params = {"code": code, "init": storage} if isinstance(storage, str) else {"code": code, "storage": storage}
    try:
        operation = await handle.originate(**params)
        address = await operation.contract_address()
    except (
        RPCError,
        RPCTransportError,
        OperationFailedError,
        MichelsonSyntaxError,
        SchemaMismatchError,
        ValueError,
    ) as exc:
        logger.error("%s origination error: %s", label, exc)
        raise OriginationError(label, exc) from exc
    logger.info("Originated %s contract %s", label, address)
    return address


async def originate_inspector(handle: ExecutionHandle) -> str:
    code = load_code(INSPECTOR_CODE_PATH)
    return await originate_contract(handle, code, INSPECTOR_INITIAL_STORAGE, "inspector")


async def mint_nfts(config: ConfigReader, owner: str, tokens: Sequence[TokenMetadata]) -> str:
    """Originate a new fixed collection with every token owned by ``owner``."""

    if not tokens:
        raise ValueError("there are no token definitions provided")

    handle = create_toolkit(config, owner)
    owner_address = await handle.public_key_hash()
    storage = encode_nft_storage(tokens, owner_address)

    logger.info("Originating new NFT contract with %d tokens...", len(storage.ledger))
    nft_address = await originate_contract(handle, load_code(NFT_CODE_PATH), storage, "nft")
    logger.info("Originated NFT collection %s", nft_address)
    return nft_address


def inspector_address(config: ConfigReader) -> str:
    address = config.get(inspector_key(config))
    if not address or not isinstance(address, str):
        raise InspectorNotDeployedError()
    return address


async def query_balances(
    handle: ExecutionHandle,
    inspector: str,
    nft_address: str,
    requests: Sequence[BalanceOfRequest],
) -> List[BalanceOfResponse]:
    """Ask the inspector to query ``nft_address`` and read back the balances."""

    logger.info("Querying NFT contract %s using balance inspector %s", nft_address, inspector)
    operation = await handle.call(inspector, "query", fa2.balance_query_param(nft_address, requests))
    await operation.confirmation()
    return decode_inspector_storage(await handle.storage(inspector))


async def show_balances(
    config: ConfigReader,
    signer: str,
    nft: str,
    owner: str,
    token_ids: Sequence[int | str],
) -> List[BalanceOfResponse]:
    handle = create_toolkit(config, signer)
    owner_address = resolve_address(config, owner)
    nft_address = resolve_address(config, nft)
    requests = [BalanceOfRequest(owner=owner_address, token_id=int(t)) for t in token_ids]
    return await query_balances(handle, inspector_address(config), nft_address, requests)


async def query_metadata(
    handle: ExecutionHandle,
    nft_address: str,
    token_ids: Sequence[int],
) -> List[Tuple[int, Optional[TokenMetadata]]]:
    """Look up metadata for each token; absent tokens are paired with ``None``."""

    refs = decode_nft_storage(await handle.storage(nft_address))

    async def fetch(token_id: int) -> Tuple[int, Optional[TokenMetadata]]:
        value = await handle.big_map_get(refs.token_metadata, integer(token_id), METADATA_KEY_TYPE)
        if value is None:
            logger.warning("token %s is missing", token_id)
            return token_id, None
        return token_id, decode_token_metadata(value)

    return await gather_all_or_nothing(fetch(int(t)) for t in token_ids)


async def show_metadata(
    config: ConfigReader, signer: str, nft: str, token_ids: Sequence[int | str]
) -> List[Tuple[int, Optional[TokenMetadata]]]:
    handle = create_toolkit(config, signer)
    nft_address = resolve_address(config, nft)
    return await query_metadata(handle, nft_address, [int(t) for t in token_ids])


async def transfer(config: ConfigReader, signer: str, nft: str, batch: Sequence[Transfer]) -> str:
    txs = await resolve_transfer_addresses(config, batch)
    nft_address = resolve_address(config, nft)
    handle = create_toolkit(config, signer)
    return await fa2.transfer(nft_address, handle, txs)


async def update_operators(
    config: ConfigReader,
    owner: str,
    nft: str,
    add_operators: Sequence[str],
    remove_operators: Sequence[str],
) -> str:
    handle = create_toolkit(config, owner)
    owner_address = await handle.public_key_hash()
    resolved_add = await resolve_operators(config, owner_address, add_operators)
    resolved_remove = await resolve_operators(config, owner_address, remove_operators)
    nft_address = resolve_address(config, nft)
    return await fa2.update_operators(nft_address, handle, resolved_add, resolved_remove)
