"""Compile CLI descriptors into FA2 instructions.

Descriptors are short comma-separated strings typed by users:

* tokens: ``"token_id, symbol, name[, ipfs_cid]"``
* transfers: ``"from, to, token_id"``
* operators: ``"operator_alias_or_address, token_id"``

Addresses inside descriptors may be aliases; they are resolved against the
active network configuration only when the batch is about to be sent.
"""

from __future__ import annotations

import logging
import re
from typing import List, Sequence

from .aliases import UnknownAliasError, resolve_address
from .config import ConfigReader
from .fa2 import OperatorParam, TokenMetadata, Transfer, TransferDestination
from .tasks import gather_all_or_nothing

logger = logging.getLogger(__name__)

OPERATOR_FORMAT = "operator_alias_or_address, token_id"
TRANSFER_FORMAT = "from, to, token_id"
TOKEN_FORMAT = "token_id, symbol, name[, ipfs_cid]"


class DescriptorFormatError(ValueError):
    """Raised when a descriptor string cannot be parsed."""

    expected_format = ""

    def __init__(self, descriptor: str, reason: str) -> None:
        super().__init__(
            f"cannot parse {descriptor!r}: {reason}; expected format is '{self.expected_format}'"
        )
        self.descriptor = descriptor


class TransferFormatError(DescriptorFormatError):
    expected_format = TRANSFER_FORMAT


class OperatorFormatError(DescriptorFormatError):
    expected_format = OPERATOR_FORMAT


class TokenFormatError(DescriptorFormatError):
    expected_format = TOKEN_FORMAT


def _split(descriptor: str) -> List[str]:
    return [part.strip() for part in descriptor.split(",")]


_TOKEN_ID_RE = re.compile(r"[0-9]+")


def _token_id(raw: str) -> int:
    if not _TOKEN_ID_RE.fullmatch(raw):
        raise ValueError(f"token_id must be a non-negative decimal integer, got {raw!r}")
    return int(raw)


def parse_token(descriptor: str, tokens: Sequence[TokenMetadata]) -> List[TokenMetadata]:
    """Return ``tokens`` extended with the token described by ``descriptor``."""

    parts = _split(descriptor)
    if len(parts) not in (3, 4) or not all(parts[:3]):
        raise TokenFormatError(descriptor, "expected 3 or 4 fields")
    try:
        token_id = _token_id(parts[0])
    except ValueError as exc:
        raise TokenFormatError(descriptor, str(exc)) from exc
    token = TokenMetadata(token_id=token_id, symbol=parts[1], name=parts[2], decimals=0)
    if len(parts) == 4 and parts[3]:
        token.extras["ipfs_cid"] = parts[3]
    return [*tokens, token]


def parse_transfer(descriptor: str, batch: Sequence[Transfer]) -> List[Transfer]:
    """Add one single-token transfer to ``batch``.

    When the most recently added entry has the same ``from_`` the destination
    joins that entry; otherwise a new entry is appended. Only the last entry
    is considered, so interleaved senders produce several entries.
    """

    parts = _split(descriptor)
    if len(parts) != 3 or not all(parts):
        raise TransferFormatError(descriptor, "expected 3 fields")
    from_, to_, raw_token_id = parts
    try:
        token_id = _token_id(raw_token_id)
    except ValueError as exc:
        raise TransferFormatError(descriptor, str(exc)) from exc

    destination = TransferDestination(to_=to_, token_id=token_id, amount=1)
    if batch and batch[-1].from_ == from_:
        last = batch[-1]
        merged = Transfer(from_=last.from_, txs=[*last.txs, destination])
        return [*batch[:-1], merged]
    return [*batch, Transfer(from_=from_, txs=[destination])]


def parse_transfers(descriptors: Sequence[str]) -> List[Transfer]:
    batch: List[Transfer] = []
    for descriptor in descriptors:
        batch = parse_transfer(descriptor, batch)
    return batch


def parse_tokens(descriptors: Sequence[str]) -> List[TokenMetadata]:
    tokens: List[TokenMetadata] = []
    for descriptor in descriptors:
        tokens = parse_token(descriptor, tokens)
    return tokens


async def _resolve_operator(config: ConfigReader, owner: str, descriptor: str) -> OperatorParam:
    try:
        parts = _split(descriptor)
        if len(parts) != 2 or not all(parts):
            raise OperatorFormatError(descriptor, "expected 2 fields")
        raw_operator, raw_token_id = parts
        operator = resolve_address(config, raw_operator)
        return OperatorParam(owner=owner, operator=operator, token_id=_token_id(raw_token_id))
    except OperatorFormatError:
        logger.error("cannot parse operator definition %s", descriptor)
        raise
    except (UnknownAliasError, ValueError) as exc:
        logger.error("cannot parse operator definition %s", descriptor)
        raise OperatorFormatError(descriptor, str(exc)) from exc


async def resolve_operators(
    config: ConfigReader, owner: str, descriptors: Sequence[str]
) -> List[OperatorParam]:
    """Resolve every operator descriptor for ``owner``; any failure fails the list."""

    return await gather_all_or_nothing(
        _resolve_operator(config, owner, descriptor) for descriptor in descriptors
    )


async def _resolve_destination(config: ConfigReader, tx: TransferDestination) -> TransferDestination:
    return TransferDestination(
        to_=resolve_address(config, tx.to_), token_id=tx.token_id, amount=tx.amount
    )


async def _resolve_transfer(config: ConfigReader, transfer: Transfer) -> Transfer:
    txs = await gather_all_or_nothing(_resolve_destination(config, tx) for tx in transfer.txs)
    return Transfer(from_=resolve_address(config, transfer.from_), txs=txs)


async def resolve_transfer_addresses(
    config: ConfigReader, batch: Sequence[Transfer]
) -> List[Transfer]:
    """Replace every alias in ``batch`` with its address, all-or-nothing."""

    return await gather_all_or_nothing(_resolve_transfer(config, t) for t in batch)
