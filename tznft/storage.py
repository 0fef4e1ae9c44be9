"""Initial storage for the fixed-collection NFT contract."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Dict, Iterable, Tuple

from . import micheline as m
from .fa2 import TokenMetadata
from .micheline import Micheline


@dataclass
class NftStorage:
    """Ledger, operator and metadata maps of a freshly minted collection."""

    ledger: Dict[int, str] = field(default_factory=dict)
    operators: Dict[Tuple[str, str, int], None] = field(default_factory=dict)
    token_metadata: Dict[int, TokenMetadata] = field(default_factory=dict)

    def to_micheline(self) -> Micheline:
        # Michelson map literals must list keys in ascending order.
        ledger = [
            m.elt(m.integer(token_id), m.string(owner))
            for token_id, owner in sorted(self.ledger.items())
        ]
        operators = [
            m.elt(m.pair(m.string(owner), m.string(operator), m.integer(token_id)), m.unit())
            for owner, operator, token_id in sorted(self.operators)
        ]
        metadata = [
            m.elt(m.integer(token_id), meta.to_micheline())
            for token_id, meta in sorted(self.token_metadata.items())
        ]
        return m.pair(ledger, operators, metadata)


def encode_nft_storage(tokens: Iterable[TokenMetadata], owner: str) -> NftStorage:
    """Give every token to ``owner``; a repeated token_id overwrites the earlier one."""

    storage = NftStorage()
    for meta in tokens:
        storage.ledger[meta.token_id] = owner
        storage.token_metadata[meta.token_id] = meta
    return storage
