"""Command line interface for tznft.

The CLI is a thin façade over :mod:`tznft.contracts` and
:mod:`tznft.bootstrap`: it loads the user configuration, feeds repeated
descriptor flags through the batch compiler and prints plain results.
"""

from __future__ import annotations

import argparse
import asyncio
import json
import logging
import sys
from typing import Any, Sequence

from .bootstrap import NetworkUnreachableError, SandboxStartError, SandboxStopError, bootstrap, kill
from . import contracts
from .aliases import AliasFormatError, UnknownAliasError, add_alias, list_aliases, remove_alias
from .batch import DescriptorFormatError, parse_tokens, parse_transfers
from .config import (
    ConfigurationError,
    ConfigStore,
    active_network,
    list_networks,
    load_user_config,
    set_default_config_path,
    set_network,
)
from .fa2 import TokenMetadata
from .micheline import MichelsonSyntaxError, SchemaMismatchError
from .retry import RetryExhaustedError
from .rpc_client import RPCError, RPCTransportError
from .signer import SignerKeyError
from .toolkit import OperationFailedError

logging.basicConfig(level=logging.INFO)
logger = logging.getLogger(__name__)


class CLIError(RuntimeError):
    """Raised when CLI arguments are invalid."""


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(prog="tznft", description="Tezos FA2 NFT tool")
    parser.add_argument("--config", default=None, help="Path to the YAML config file")
    parser.add_argument("-v", "--verbose", action="store_true", help="Enable debug logging")
    subparsers = parser.add_subparsers(dest="command", required=True)

    show_network = subparsers.add_parser("show-network", help="show the active network")
    show_network.add_argument(
        "-a", "--all", action="store_true", help="list every configured network"
    )

    set_network_parser = subparsers.add_parser("set-network", help="select the active network")
    set_network_parser.add_argument("network", help="Configured network name")

    subparsers.add_parser(
        "bootstrap", help="start the sandbox (if active) and originate the balance inspector"
    )
    subparsers.add_parser("kill-sandbox", help="stop the running sandbox")

    show_alias = subparsers.add_parser("show-alias", help="show one or all aliases")
    show_alias.add_argument("alias", nargs="?", default=None)

    add_alias_parser = subparsers.add_parser("add-alias", help="add an alias for the active network")
    add_alias_parser.add_argument("alias")
    add_alias_parser.add_argument("key_or_address", help="edsk secret key or address")

    remove_alias_parser = subparsers.add_parser("remove-alias", help="remove an alias")
    remove_alias_parser.add_argument("alias")

    mint_parser = subparsers.add_parser("mint", help="originate a new NFT collection")
    mint_parser.add_argument("owner", help="Alias or secret key of the collection owner")
    mint_parser.add_argument(
        "-t",
        "--tokens",
        action="append",
        default=[],
        metavar="DESCRIPTOR",
        help="'token_id, symbol, name[, ipfs_cid]' (repeatable)",
    )

    balance_parser = subparsers.add_parser("show-balance", help="show NFT balances")
    balance_parser.add_argument("-s", "--signer", required=True, help="Alias that pays for the query")
    balance_parser.add_argument("-n", "--nft", required=True, help="NFT contract address or alias")
    balance_parser.add_argument("-o", "--owner", required=True, help="Token owner address or alias")
    balance_parser.add_argument("-t", "--tokens", nargs="+", required=True, help="Token ids")

    meta_parser = subparsers.add_parser("show-meta", help="show token metadata")
    meta_parser.add_argument("-s", "--signer", required=True)
    meta_parser.add_argument("-n", "--nft", required=True)
    meta_parser.add_argument("-t", "--tokens", nargs="+", required=True, help="Token ids")

    transfer_parser = subparsers.add_parser("transfer", help="transfer NFTs in one batch")
    transfer_parser.add_argument("-s", "--signer", required=True)
    transfer_parser.add_argument("-n", "--nft", required=True)
    transfer_parser.add_argument(
        "-b",
        "--batch",
        action="append",
        default=[],
        metavar="DESCRIPTOR",
        help="'from, to, token_id' (repeatable)",
    )

    ops_parser = subparsers.add_parser("update-ops", help="add or remove token operators")
    ops_parser.add_argument("owner", help="Alias or secret key of the token owner")
    ops_parser.add_argument("-n", "--nft", required=True)
    ops_parser.add_argument(
        "-a", "--add", action="append", default=[], metavar="DESCRIPTOR",
        help="'operator_alias_or_address, token_id' (repeatable)",
    )
    ops_parser.add_argument(
        "-r", "--remove", action="append", default=[], metavar="DESCRIPTOR",
        help="'operator_alias_or_address, token_id' (repeatable)",
    )
    return parser


def _format_metadata(meta: TokenMetadata) -> str:
    extras = " ".join(f"{k}={v}" for k, v in meta.extras.items())
    return (
        f"token_id: {meta.token_id}\tsymbol: {meta.symbol}\tname: {meta.name}\textras: {{ {extras} }}"
    )


def cmd_show_network(config: ConfigStore, args: argparse.Namespace) -> None:
    current = active_network(config)
    if not args.all:
        print(f"active network: {current}")
        return
    for network in list_networks(config):
        marker = "*" if network == current else " "
        url = config.get(f"availableNetworks.{network}.providerUrl", "(no providerUrl)")
        print(f"{marker} {network}\t{url}")


def cmd_show_alias(config: ConfigStore, args: argparse.Namespace) -> None:
    aliases = list_aliases(config)
    if args.alias is not None:
        if args.alias not in aliases:
            raise UnknownAliasError(args.alias)
        aliases = {args.alias: aliases[args.alias]}
    if not aliases:
        print("No aliases configured.")
        return
    for name, entry in aliases.items():
        signing = "signer" if entry.get("secret") else "address"
        print(f"{name}\t{entry.get('address', '')}\t{signing}")


def cmd_mint(config: ConfigStore, args: argparse.Namespace) -> None:
    tokens = parse_tokens(args.tokens)
    address = asyncio.run(contracts.mint_nfts(config, args.owner, tokens))
    print(json.dumps({"nft": address}))


def cmd_show_balance(config: ConfigStore, args: argparse.Namespace) -> None:
    balances = asyncio.run(
        contracts.show_balances(config, args.signer, args.nft, args.owner, args.tokens)
    )
    print("requested NFT balances:")
    for b in balances:
        print(f"owner: {b.request.owner}\ttoken: {b.request.token_id}\tbalance: {b.balance}")


def cmd_show_meta(config: ConfigStore, args: argparse.Namespace) -> None:
    results = asyncio.run(contracts.show_metadata(config, args.signer, args.nft, args.tokens))
    for token_id, meta in results:
        if meta is None:
            print(f"token {token_id} is missing")
        else:
            print(_format_metadata(meta))


def cmd_transfer(config: ConfigStore, args: argparse.Namespace) -> None:
    if not args.batch:
        raise CLIError("at least one --batch descriptor is required")
    batch = parse_transfers(args.batch)
    op_hash = asyncio.run(contracts.transfer(config, args.signer, args.nft, batch))
    print(json.dumps({"operation": op_hash}))


def cmd_update_ops(config: ConfigStore, args: argparse.Namespace) -> None:
    if not args.add and not args.remove:
        raise CLIError("provide at least one --add or --remove descriptor")
    op_hash = asyncio.run(
        contracts.update_operators(config, args.owner, args.nft, args.add, args.remove)
    )
    print(json.dumps({"operation": op_hash}))


def dispatch(config: ConfigStore, args: argparse.Namespace) -> Any:
    if args.command == "show-network":
        cmd_show_network(config, args)
    elif args.command == "set-network":
        set_network(config, args.network)
        print(f"active network: {args.network}")
    elif args.command == "bootstrap":
        address = asyncio.run(bootstrap(config))
        print(json.dumps({"inspector": address}))
    elif args.command == "kill-sandbox":
        asyncio.run(kill(config))
    elif args.command == "show-alias":
        cmd_show_alias(config, args)
    elif args.command == "add-alias":
        entry = add_alias(config, args.alias, args.key_or_address)
        print(f"{args.alias}\t{entry['address']}")
    elif args.command == "remove-alias":
        remove_alias(config, args.alias)
    elif args.command == "mint":
        cmd_mint(config, args)
    elif args.command == "show-balance":
        cmd_show_balance(config, args)
    elif args.command == "show-meta":
        cmd_show_meta(config, args)
    elif args.command == "transfer":
        cmd_transfer(config, args)
    elif args.command == "update-ops":
        cmd_update_ops(config, args)
    else:  # pragma: no cover - argparse enforces choices
        raise CLIError(f"Unknown command: {args.command}")


def main(argv: Sequence[str] | None = None) -> None:
    parser = build_parser()
    args = parser.parse_args(argv)
    if args.verbose:
        logging.getLogger().setLevel(logging.DEBUG)
    if args.config:
        set_default_config_path(args.config)
    try:
        config = load_user_config()
        dispatch(config, args)
    except KeyboardInterrupt:  # pragma: no cover - interactive use
        logger.info("Interrupted by user")
    except (
        CLIError,
        ConfigurationError,
        UnknownAliasError,
        AliasFormatError,
        SignerKeyError,
        DescriptorFormatError,
        MichelsonSyntaxError,
        SchemaMismatchError,
        RPCError,
        RPCTransportError,
        OperationFailedError,
        contracts.OriginationError,
        SandboxStartError,
        SandboxStopError,
        NetworkUnreachableError,
        RetryExhaustedError,
        ValueError,
    ) as exc:
        parser.exit(1, f"error: {exc}\n")


if __name__ == "__main__":
    main(sys.argv[1:])
