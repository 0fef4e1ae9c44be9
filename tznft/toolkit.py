"""Network-bound execution handle used by every tznft operation.

A :class:`Toolkit` binds a signer to a node endpoint. It builds, signs and
injects manager operations (reveal, origination, transaction) and waits for
their inclusion by polling the node at a fixed interval. Blocking HTTP calls
run in a worker thread so callers can join several reads on one event loop.
"""

from __future__ import annotations

import asyncio
import logging
from dataclasses import dataclass
from typing import Any, Dict, List, Protocol

from .aliases import resolve_signer
from .base58 import b58check_encode, blake2b_digest
from .config import ConfigReader, ConfigurationError, provider_url_key
from .micheline import Micheline, parse_expression, parse_script
from .rpc_client import TezosRPCClient
from .signer import InMemorySigner

logger = logging.getLogger(__name__)

CONFIRMATION_POLLING_INTERVAL_SECONDS = 5
_MANAGER_PASS = 3
_WATERMARK_GENERIC_OPERATION = b"\x03"


class NetworkNotConfiguredError(ConfigurationError):
    """Raised when the active network has no provider URL."""


class OperationFailedError(RuntimeError):
    """Raised when the node reports a failed or backtracked operation."""

    def __init__(self, message: str, errors: Any = None) -> None:
        super().__init__(message)
        self.errors = errors or []


@dataclass(frozen=True)
class OperationLimits:
    """Fee and resource limits attached to each manager operation (mutez/units)."""

    fee: int = 100_000
    gas_limit: int = 100_000
    storage_limit: int = 60_000
    reveal_fee: int = 1_000
    reveal_gas_limit: int = 1_000


class ExecutionHandle(Protocol):
    """What orchestration code needs from a network-bound toolkit."""

    async def public_key_hash(self) -> str: ...

    async def originate(
        self, code: str, init: str | None = None, storage: Any = None
    ) -> "OriginationOperation": ...

    async def call(self, contract: str, entrypoint: str, value: Micheline) -> "Operation": ...

    async def storage(self, contract: str) -> Micheline: ...

    async def big_map_get(self, big_map_id: int, key: Micheline, key_type: Micheline) -> Micheline | None: ...

    async def get_block_header(self, block: str = "head") -> Dict[str, Any]: ...


class Operation:
    """An injected operation that can be awaited until it is included."""

    def __init__(self, toolkit: "Toolkit", op_hash: str, injected_level: int) -> None:
        self.toolkit = toolkit
        self.hash = op_hash
        self.injected_level = injected_level
        self._results: List[Dict[str, Any]] | None = None

    async def confirmation(self) -> List[Dict[str, Any]]:
        """Block until the operation is in a block and return its operation results."""

        if self._results is None:
            self._results = await self.toolkit.wait_for_inclusion(self.hash, self.injected_level)
        return self._results

    def __repr__(self) -> str:
        return f"{type(self).__name__}({self.hash})"


class OriginationOperation(Operation):
    async def contract_address(self) -> str:
        results = await self.confirmation()
        for result in results:
            originated = result.get("originated_contracts") or []
            if originated:
                return originated[0]
        raise OperationFailedError(f"Operation {self.hash} did not originate a contract")


def _check_applied(contents: List[Dict[str, Any]], op_hash: str | None = None) -> List[Dict[str, Any]]:
    results: List[Dict[str, Any]] = []
    for content in contents:
        result = content.get("metadata", {}).get("operation_result", {})
        status = result.get("status")
        if status != "applied":
            label = op_hash or content.get("kind", "operation")
            raise OperationFailedError(
                f"{label} {content.get('kind')} status is {status}", result.get("errors")
            )
        results.append(result)
    return results


class Toolkit:
    """Signer plus RPC endpoint plus confirmation policy."""

    def __init__(
        self,
        rpc: TezosRPCClient,
        signer: InMemorySigner,
        *,
        confirmation_polling_interval: float = CONFIRMATION_POLLING_INTERVAL_SECONDS,
        limits: OperationLimits | None = None,
    ) -> None:
        self.rpc = rpc
        self.signer = signer
        self.confirmation_polling_interval = confirmation_polling_interval
        self.limits = limits or OperationLimits()

    async def public_key_hash(self) -> str:
        return self.signer.public_key_hash()

    async def get_block_header(self, block: str = "head") -> Dict[str, Any]:
        return await asyncio.to_thread(self.rpc.get_block_header, block)

    async def storage(self, contract: str) -> Micheline:
        return await asyncio.to_thread(self.rpc.get_contract_storage, contract)

    async def big_map_get(self, big_map_id: int, key: Micheline, key_type: Micheline) -> Micheline | None:
        packed = await asyncio.to_thread(self.rpc.pack_data, key, key_type)
        script_expr = b58check_encode("expr", blake2b_digest(bytes.fromhex(packed)))
        return await asyncio.to_thread(self.rpc.get_big_map_value, big_map_id, script_expr)

    async def originate(
        self, code: str, init: str | None = None, storage: Any = None
    ) -> OriginationOperation:
        """Submit an origination of ``code`` with either ``init`` or ``storage``.

        ``init`` is a Michelson literal such as ``(Left Unit)``; ``storage`` is a
        value with a ``to_micheline()`` method or raw Micheline.
        """

        if (init is None) == (storage is None):
            raise ValueError("originate requires exactly one of init or storage")
        if init is not None:
            storage_micheline = parse_expression(init)
        elif hasattr(storage, "to_micheline"):
            storage_micheline = storage.to_micheline()
        else:
            storage_micheline = storage
        content = {
            "kind": "origination",
            "balance": "0",
            "script": {"code": parse_script(code), "storage": storage_micheline},
        }
        op_hash, level = await asyncio.to_thread(self._submit, content)
        return OriginationOperation(self, op_hash, level)

    async def call(self, contract: str, entrypoint: str, value: Micheline) -> Operation:
        content = {
            "kind": "transaction",
            "amount": "0",
            "destination": contract,
            "parameters": {"entrypoint": entrypoint, "value": value},
        }
        op_hash, level = await asyncio.to_thread(self._submit, content)
        return Operation(self, op_hash, level)

    def _submit(self, content: Dict[str, Any]) -> tuple[str, int]:
        source = self.signer.public_key_hash()
        header = self.rpc.get_block_header("head")
        counter = self.rpc.get_counter(source) + 1
        contents: List[Dict[str, Any]] = []
        if self.rpc.get_manager_key(source) is None:
            logger.info("Revealing public key for %s", source)
            contents.append(
                {
                    "kind": "reveal",
                    "source": source,
                    "fee": str(self.limits.reveal_fee),
                    "counter": str(counter),
                    "gas_limit": str(self.limits.reveal_gas_limit),
                    "storage_limit": "0",
                    "public_key": self.signer.public_key(),
                }
            )
            counter += 1
        contents.append(
            {
                **content,
                "source": source,
                "fee": str(self.limits.fee),
                "counter": str(counter),
                "gas_limit": str(self.limits.gas_limit),
                "storage_limit": str(self.limits.storage_limit),
            }
        )

        branch = header["hash"]
        forged = self.rpc.forge_operations(branch, contents)
        signed_bytes = _WATERMARK_GENERIC_OPERATION + bytes.fromhex(forged)
        signature = self.signer.sign(signed_bytes)
        preapplied = self.rpc.preapply_operations(
            [
                {
                    "protocol": header["protocol"],
                    "branch": branch,
                    "contents": contents,
                    "signature": b58check_encode("edsig", signature),
                }
            ]
        )
        _check_applied(preapplied[0].get("contents", []))
        op_hash = self.rpc.inject_operation(forged + signature.hex())
        logger.info("Injected %s operation %s", content["kind"], op_hash)
        return op_hash, int(header["level"])

    async def wait_for_inclusion(self, op_hash: str, from_level: int) -> List[Dict[str, Any]]:
        """Poll block by block from ``from_level`` until ``op_hash`` is included."""

        next_level = from_level + 1
        while True:
            head = await self.get_block_header("head")
            head_level = int(head["level"])
            while next_level <= head_level:
                block = str(next_level)
                hashes = await asyncio.to_thread(self.rpc.get_operation_hashes, block, _MANAGER_PASS)
                if op_hash in hashes:
                    logger.info("Operation %s included at level %s", op_hash, next_level)
                    return await self._operation_results(block, op_hash)
                next_level += 1
            logger.debug("Waiting for %s (head=%s)", op_hash, head_level)
            await asyncio.sleep(self.confirmation_polling_interval)

    async def _operation_results(self, block: str, op_hash: str) -> List[Dict[str, Any]]:
        operations = await asyncio.to_thread(self.rpc.get_operations, block, _MANAGER_PASS)
        for operation in operations:
            if operation.get("hash") == op_hash:
                return _check_applied(operation.get("contents", []), op_hash)
        raise OperationFailedError(f"Operation {op_hash} listed at level {block} but not found")


def create_toolkit_from_signer(config: ConfigReader, signer: InMemorySigner) -> Toolkit:
    provider_url = config.get(provider_url_key(config))
    if not provider_url:
        message = f"network provider URL for {config.get('activeNetwork')} is not configured"
        logger.error(message)
        raise NetworkNotConfiguredError(message)
    return Toolkit(TezosRPCClient(provider_url), signer)


def create_toolkit(config: ConfigReader, address_or_alias: str) -> Toolkit:
    """Resolve a signing identity and bind it to the active network's endpoint."""

    signer = resolve_signer(config, address_or_alias)
    return create_toolkit_from_signer(config, signer)
