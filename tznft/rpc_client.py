"""REST client for Tezos node RPC endpoints.

The helpers in this module back the toolkit's origination, invocation and
query flows. Only the endpoints tznft needs are wrapped; each helper maps to a
single node path and returns the parsed JSON body. No protocol logic lives
here beyond shaping requests and surfacing errors clearly.
"""

from __future__ import annotations

import logging
from typing import Any, Dict, List, Optional

import requests
from requests import RequestException, Response

logger = logging.getLogger(__name__)

CHAIN = "main"


class RPCError(RuntimeError):
    """Raised when the node rejects a request with structured errors."""

    def __init__(self, errors: Any, status_code: int | None = None) -> None:
        self.errors = errors if isinstance(errors, list) else [errors]
        self.status_code = status_code
        super().__init__(f"RPC error: {self.summary()}")

    def summary(self) -> str:
        ids = [
            str(err.get("id", err.get("kind", "unknown"))) if isinstance(err, dict) else str(err)
            for err in self.errors
        ]
        return ", ".join(ids) or "unknown"


class RPCTransportError(RuntimeError):
    """Raised when the RPC endpoint is unreachable or returns malformed data."""

    def __init__(self, message: str, status_code: int | None = None) -> None:
        super().__init__(message)
        self.status_code = status_code


class TezosRPCClient:
    """Thin typed wrapper over a Tezos node's REST interface."""

    def __init__(self, base_url: str, timeout: float = 30) -> None:
        self.base_url = base_url.rstrip("/")
        self.timeout = timeout
        self._session = requests.Session()

    def request(
        self,
        method: str,
        path: str,
        body: Any = None,
        *,
        allow_missing: bool = False,
    ) -> Any:
        """Perform a request and return the decoded JSON body.

        With ``allow_missing`` a 404 yields ``None`` instead of an error, which
        is how the node reports absent big-map keys.
        """

        url = f"{self.base_url}{path}"
        logger.debug("RPC %s %s body=%s", method, path, body)
        try:
            response = self._session.request(
                method,
                url,
                json=body,
                headers={"content-type": "application/json"},
                timeout=self.timeout,
            )
        except RequestException as exc:
            logger.error(
                "RPC connection failed: %s",
                exc,
                exc_info=logger.isEnabledFor(logging.DEBUG),
            )
            raise RPCTransportError(
                f"RPC connection to {self.base_url} failed. Ensure the node is running and the "
                "network providerUrl in ~/.tznft.yaml is correct."
            ) from exc

        if allow_missing and response.status_code == 404:
            return None
        self._raise_for_status(response)
        try:
            return response.json()
        except ValueError as exc:
            logger.debug("RPC JSON parse error: %s", response.text, exc_info=True)
            raise RPCTransportError("RPC server returned malformed JSON") from exc

    def _raise_for_status(self, response: Response) -> None:
        if response.ok:
            return
        try:
            err_body = response.json()
        except ValueError:
            err_body = None

        logger.error("RPC HTTP error %s from %s", response.status_code, response.url)
        if err_body is not None:
            logger.error("RPC error body: %s", err_body)
            raise RPCError(err_body, status_code=response.status_code)
        raise RPCTransportError(
            f"RPC server returned HTTP {response.status_code}: {response.text.strip()[:200]}",
            status_code=response.status_code,
        )

    def get(self, path: str, *, allow_missing: bool = False) -> Any:
        return self.request("GET", path, allow_missing=allow_missing)

    def post(self, path: str, body: Any) -> Any:
        return self.request("POST", path, body)

    # Convenience wrappers -------------------------------------------------

    def get_block_header(self, block: str = "head") -> Dict[str, Any]:
        return self.get(f"/chains/{CHAIN}/blocks/{block}/header")

    def get_chain_id(self) -> str:
        return self.get(f"/chains/{CHAIN}/chain_id")

    def get_counter(self, address: str) -> int:
        return int(self.get(f"/chains/{CHAIN}/blocks/head/context/contracts/{address}/counter"))

    def get_manager_key(self, address: str) -> Optional[str]:
        return self.get(f"/chains/{CHAIN}/blocks/head/context/contracts/{address}/manager_key")

    def get_contract_storage(self, address: str) -> Any:
        return self.post(
            f"/chains/{CHAIN}/blocks/head/context/contracts/{address}/storage/normalized",
            {"unparsing_mode": "Readable"},
        )

    def pack_data(self, data: Any, data_type: Any) -> str:
        result = self.post(
            f"/chains/{CHAIN}/blocks/head/helpers/scripts/pack_data",
            {"data": data, "type": data_type},
        )
        return result["packed"]

    def get_big_map_value(self, big_map_id: int, script_expr: str) -> Any:
        return self.get(
            f"/chains/{CHAIN}/blocks/head/context/big_maps/{big_map_id}/{script_expr}",
            allow_missing=True,
        )

    def forge_operations(self, branch: str, contents: List[Dict[str, Any]]) -> str:
        return self.post(
            f"/chains/{CHAIN}/blocks/head/helpers/forge/operations",
            {"branch": branch, "contents": contents},
        )

    def preapply_operations(self, operations: List[Dict[str, Any]]) -> List[Dict[str, Any]]:
        return self.post(f"/chains/{CHAIN}/blocks/head/helpers/preapply/operations", operations)

    def inject_operation(self, signed_hex: str) -> str:
        return self.post("/injection/operation", signed_hex)

    def get_operation_hashes(self, block: str, validation_pass: int = 3) -> List[str]:
        return self.get(f"/chains/{CHAIN}/blocks/{block}/operation_hashes/{validation_pass}")

    def get_operations(self, block: str, validation_pass: int = 3) -> List[Dict[str, Any]]:
        return self.get(f"/chains/{CHAIN}/blocks/{block}/operations/{validation_pass}")
