"""FA2 data model and entrypoint helpers.

Dataclasses in this module mirror the FA2 (TZIP-12) parameter and storage
types used by the fixed-collection NFT contract and the balance inspector.
Each type knows its Micheline form; values read back from the node go
through the ``decode_*`` functions so unexpected shapes fail loudly.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Dict, List, Sequence

from . import micheline as m
from .micheline import Micheline, SchemaMismatchError
from .toolkit import ExecutionHandle

logger = logging.getLogger(__name__)


@dataclass
class TokenMetadata:
    token_id: int
    symbol: str
    name: str
    decimals: int = 0
    extras: Dict[str, str] = field(default_factory=dict)

    def to_micheline(self) -> Micheline:
        extras = [m.elt(m.string(k), m.string(v)) for k, v in sorted(self.extras.items())]
        return m.pair(
            m.integer(self.token_id),
            m.string(self.symbol),
            m.string(self.name),
            m.integer(self.decimals),
            extras,
        )


@dataclass
class TransferDestination:
    to_: str
    token_id: int
    amount: int = 1

    def to_micheline(self) -> Micheline:
        return m.pair(m.string(self.to_), m.integer(self.token_id), m.integer(self.amount))


@dataclass
class Transfer:
    from_: str
    txs: List[TransferDestination] = field(default_factory=list)

    def to_micheline(self) -> Micheline:
        return m.pair(m.string(self.from_), [tx.to_micheline() for tx in self.txs])


@dataclass(frozen=True)
class OperatorParam:
    owner: str
    operator: str
    token_id: int

    def to_micheline(self) -> Micheline:
        return m.pair(m.string(self.owner), m.string(self.operator), m.integer(self.token_id))


@dataclass(frozen=True)
class BalanceOfRequest:
    owner: str
    token_id: int

    def to_micheline(self) -> Micheline:
        return m.pair(m.string(self.owner), m.integer(self.token_id))


@dataclass(frozen=True)
class BalanceOfResponse:
    request: BalanceOfRequest
    balance: int


@dataclass(frozen=True)
class NftStorageRefs:
    """Big-map identifiers of an originated fixed-collection contract."""

    ledger: int
    operators: int
    token_metadata: int


METADATA_KEY_TYPE: Micheline = m.prim("nat")


def decode_token_metadata(node: Micheline) -> TokenMetadata:
    token_id, symbol, name, decimals, extras = m.unpair(node, 5)
    return TokenMetadata(
        token_id=m.expect_int(token_id),
        symbol=m.expect_string(symbol),
        name=m.expect_string(name),
        decimals=m.expect_int(decimals),
        extras={m.expect_string(k): m.expect_string(v) for k, v in m.expect_map(extras)},
    )


def decode_nft_storage(node: Micheline) -> NftStorageRefs:
    ledger, operators, token_metadata = m.unpair(node, 3)
    return NftStorageRefs(
        ledger=m.expect_int(ledger),
        operators=m.expect_int(operators),
        token_metadata=m.expect_int(token_metadata),
    )


def decode_inspector_storage(node: Micheline) -> List[BalanceOfResponse]:
    """Return the balances stored by the inspector after a ``query`` call.

    The inspector keeps ``Left Unit`` until its first query; that state, or any
    other shape, is reported as a schema mismatch.
    """

    side, value = m.expect_or(node)
    if side != "Right":
        raise SchemaMismatchError("Inspector storage holds no balance state")
    responses: List[BalanceOfResponse] = []
    for item in m.expect_sequence(value):
        request, balance = m.unpair(item, 2)
        owner, token_id = m.unpair(request, 2)
        responses.append(
            BalanceOfResponse(
                request=BalanceOfRequest(owner=m.expect_string(owner), token_id=m.expect_int(token_id)),
                balance=m.expect_int(balance),
            )
        )
    return responses


def balance_query_param(nft_address: str, requests: Sequence[BalanceOfRequest]) -> Micheline:
    return m.pair(m.string(nft_address), [r.to_micheline() for r in requests])


def update_operators_param(
    add: Sequence[OperatorParam], remove: Sequence[OperatorParam]
) -> Micheline:
    return [m.left(op.to_micheline()) for op in add] + [m.right(op.to_micheline()) for op in remove]


async def transfer(nft_address: str, handle: ExecutionHandle, transfers: Sequence[Transfer]) -> str:
    """Call the FA2 ``transfer`` entrypoint and wait for confirmation."""

    logger.info("Transferring %d batch entries on %s", len(transfers), nft_address)
    op = await handle.call(nft_address, "transfer", [t.to_micheline() for t in transfers])
    await op.confirmation()
    logger.info("Tokens transferred in %s", op.hash)
    return op.hash


async def update_operators(
    nft_address: str,
    handle: ExecutionHandle,
    add: Sequence[OperatorParam],
    remove: Sequence[OperatorParam],
) -> str:
    logger.info(
        "Updating operators on %s (add=%d, remove=%d)", nft_address, len(add), len(remove)
    )
    op = await handle.call(nft_address, "update_operators", update_operators_param(add, remove))
    await op.confirmation()
    logger.info("Updated operators in %s", op.hash)
    return op.hash
