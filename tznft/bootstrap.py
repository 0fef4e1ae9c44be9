"""Bring a network to a usable state for tznft.

``bootstrap`` starts the local sandbox when it is the active network, waits
until the node answers, originates the balance inspector and records its
address in the configuration. ``kill`` stops the sandbox again.
"""

from __future__ import annotations

import logging
from typing import Callable

from .config import ConfigReader, ConfigWriter, inspector_key, is_sandbox
from .contracts import originate_inspector
from .retry import RetryExhaustedError, RetryPolicy, retry_async
from .sandbox import ProcessController, ShellProcessController
from .toolkit import ExecutionHandle, create_toolkit

logger = logging.getLogger(__name__)

DEFAULT_OPERATOR = "bob"
READINESS_BLOCK = "2"
READINESS_POLICY = RetryPolicy(retries=8)


class SandboxStartError(RuntimeError):
    """Raised when the sandbox start script exits with a non-zero status."""


class SandboxStopError(RuntimeError):
    """Raised when the sandbox kill script exits with a non-zero status."""


class NetworkUnreachableError(RuntimeError):
    """Raised when the node does not answer within the readiness retry budget."""


async def start_sandbox(controller: ProcessController) -> None:
    logger.info("Starting sandbox...")
    result = await controller.start()
    if not result.ok:
        logger.error("Failed to start sandbox: %s", result.stderr.strip())
        raise SandboxStartError(
            f"sandbox start exited with status {result.returncode}: {result.stderr.strip()}"
        )


async def wait_for_network(handle: ExecutionHandle, policy: RetryPolicy = READINESS_POLICY) -> None:
    """Poll for an early block header until the node serves it."""

    async def fetch_early_block() -> None:
        logger.debug("Probing block %s", READINESS_BLOCK)
        await handle.get_block_header(READINESS_BLOCK)

    try:
        await retry_async(fetch_early_block, policy)
    except RetryExhaustedError as exc:
        raise NetworkUnreachableError(
            f"network did not respond after {exc.attempts} attempts"
        ) from exc.__cause__
    logger.info("Network is ready")


async def bootstrap(
    config: ConfigWriter,
    controller: ProcessController | None = None,
    *,
    operator: str = DEFAULT_OPERATOR,
    policy: RetryPolicy = READINESS_POLICY,
    toolkit_factory: Callable[[ConfigReader, str], ExecutionHandle] = create_toolkit,
) -> str:
    """Prepare the active network and return the balance inspector address."""

    if is_sandbox(config):
        await start_sandbox(controller or ShellProcessController())

    handle = toolkit_factory(config, operator)
    await wait_for_network(handle, policy)

    logger.info("Originating balance inspector contract...")
    address = await originate_inspector(handle)
    config.set(inspector_key(config), address)
    logger.info("Originated balance inspector %s", address)
    return address


async def kill(config: ConfigReader, controller: ProcessController | None = None) -> None:
    if not is_sandbox(config):
        logger.debug("Active network is not the sandbox; nothing to stop")
        return
    result = await (controller or ShellProcessController()).stop()
    if not result.ok:
        logger.error("Failed to stop sandbox: %s", result.stderr.strip())
        raise SandboxStopError(
            f"sandbox kill exited with status {result.returncode}: {result.stderr.strip()}"
        )
    logger.info("Killed sandbox")
