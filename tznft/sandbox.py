"""Control of the local flextesa sandbox process."""

from __future__ import annotations

import asyncio
import logging
from dataclasses import dataclass
from pathlib import Path
from typing import Protocol

logger = logging.getLogger(__name__)

SCRIPTS_DIR = Path(__file__).resolve().parent / "flextesa"
START_SCRIPT = SCRIPTS_DIR / "start-sandbox.sh"
KILL_SCRIPT = SCRIPTS_DIR / "kill-sandbox.sh"


@dataclass(frozen=True)
class ProcessResult:
    returncode: int
    stdout: str = ""
    stderr: str = ""

    @property
    def ok(self) -> bool:
        return self.returncode == 0


class ProcessController(Protocol):
    """Starts and stops an external network process."""

    async def start(self) -> ProcessResult: ...

    async def stop(self) -> ProcessResult: ...


class ShellProcessController:
    """Run the bundled shell scripts and wait for them to exit."""

    def __init__(
        self,
        start_script: Path = START_SCRIPT,
        kill_script: Path = KILL_SCRIPT,
        shell: str = "sh",
    ) -> None:
        self.start_script = Path(start_script)
        self.kill_script = Path(kill_script)
        self.shell = shell

    async def start(self) -> ProcessResult:
        return await self._run(self.start_script)

    async def stop(self) -> ProcessResult:
        return await self._run(self.kill_script)

    async def _run(self, script: Path) -> ProcessResult:
        logger.debug("Running %s %s", self.shell, script)
        process = await asyncio.create_subprocess_exec(
            self.shell,
            str(script),
            cwd=str(script.parent),
            stdout=asyncio.subprocess.PIPE,
            stderr=asyncio.subprocess.PIPE,
        )
        stdout, stderr = await process.communicate()
        result = ProcessResult(
            returncode=process.returncode if process.returncode is not None else -1,
            stdout=stdout.decode("utf-8", errors="replace"),
            stderr=stderr.decode("utf-8", errors="replace"),
        )
        if result.stdout.strip():
            logger.debug("%s stdout: %s", script.name, result.stdout.strip())
        return result
