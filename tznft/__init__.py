"""Tezos FA2 NFT origination, transfer and query tooling."""

from .aliases import UnknownAliasError, resolve_address, resolve_signer
from .batch import (
    OperatorFormatError,
    TransferFormatError,
    parse_token,
    parse_transfer,
    resolve_operators,
)
from .bootstrap import NetworkUnreachableError, SandboxStartError, bootstrap, kill
from .config import ConfigStore, ConfigurationError, load_user_config
from .contracts import (
    InspectorNotDeployedError,
    OriginationError,
    mint_nfts,
    originate_contract,
    query_balances,
    query_metadata,
)
from .fa2 import OperatorParam, TokenMetadata, Transfer, TransferDestination
from .micheline import SchemaMismatchError
from .storage import NftStorage, encode_nft_storage
from .toolkit import NetworkNotConfiguredError, Toolkit, create_toolkit

__all__ = [
    "ConfigStore",
    "ConfigurationError",
    "InspectorNotDeployedError",
    "NetworkNotConfiguredError",
    "NetworkUnreachableError",
    "NftStorage",
    "OperatorFormatError",
    "OperatorParam",
    "OriginationError",
    "SandboxStartError",
    "SchemaMismatchError",
    "TokenMetadata",
    "Toolkit",
    "Transfer",
    "TransferDestination",
    "TransferFormatError",
    "UnknownAliasError",
    "bootstrap",
    "create_toolkit",
    "encode_nft_storage",
    "kill",
    "load_user_config",
    "mint_nfts",
    "originate_contract",
    "parse_token",
    "parse_transfer",
    "query_balances",
    "query_metadata",
    "resolve_address",
    "resolve_operators",
    "resolve_signer",
]
