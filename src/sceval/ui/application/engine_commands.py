"""Engine control use cases.

The language server exposes the interpreter's server controls (boot, stop
sound, meters, recording, ...) as ``workspace/executeCommand`` commands
named ``supercollider.internal.<name>``. :class:`EngineCommandRunner` forwards
them without blocking the invoking action and restarts the engine on demand.
"""

from __future__ import annotations

import asyncio
import logging
from typing import TYPE_CHECKING, Any, Awaitable, Callable

if TYPE_CHECKING:  # pragma: no cover - imports for type checking only
    from ...services.engine_client import EngineCommandTransport

LOGGER = logging.getLogger(__name__)

ENGINE_COMMAND_PREFIX = "supercollider.internal."

BOOT_SERVER = "bootServer"
REBOOT_SERVER = "rebootServer"
KILL_ALL_SERVERS = "killAllServers"
SHOW_SERVER_WINDOW = "showServerWindow"
CMD_PERIOD = "cmdPeriod"
SHOW_SERVER_METER = "showServerMeter"
SHOW_SCOPE = "showScope"
SHOW_FREQSCOPE = "showFreqscope"
DUMP_NODE_TREE = "dumpNodeTree"
DUMP_NODE_TREE_WITH_CONTROLS = "dumpNodeTreeWithControls"
SHOW_NODE_TREE = "showNodeTree"
START_RECORDING = "startRecording"
PAUSE_RECORDING = "pauseRecording"
STOP_RECORDING = "stopRecording"


def engine_command_id(name: str) -> str:
    """Return the wire name of the engine command ``name``."""

    return f"{ENGINE_COMMAND_PREFIX}{name}"


class EngineCommandRunner:
    """Use case for the server control commands.

    Every call returns the scheduled task (or ``None`` when nothing was
    scheduled). Failures are logged and never reach the action layer.
    """

    __slots__ = ("_engine", "_restart", "_pending")

    def __init__(
        self,
        engine: EngineCommandTransport,
        *,
        restart: Callable[[], Awaitable[Any]] | None = None,
    ) -> None:
        """Initialize the use case.

        Args:
            engine: Forwards commands to the running engine.
            restart: Coroutine factory relaunching the engine.
        """
        self._engine = engine
        self._restart = restart
        self._pending: set[asyncio.Task[Any]] = set()

    def run(self, name: str) -> asyncio.Task[Any] | None:
        """Forward the engine command ``name`` (for example ``cmdPeriod``)."""

        command = engine_command_id(name)
        if not self._engine.is_running:
            LOGGER.debug("EngineCommandRunner: engine not running, dropping %s", command)
            return None
        return self._track(self._execute(command))

    def restart(self) -> asyncio.Task[Any] | None:
        if self._restart is None:
            LOGGER.debug("EngineCommandRunner: no restart handler configured")
            return None
        return self._track(self._restart())

    async def _execute(self, command: str) -> Any:
        try:
            return await self._engine.execute_command(command)
        except Exception:
            LOGGER.warning("Engine command %s failed", command, exc_info=True)
            return None

    def _track(self, awaitable: Awaitable[Any]) -> asyncio.Task[Any]:
        task = asyncio.ensure_future(awaitable)
        self._pending.add(task)
        task.add_done_callback(self._pending.discard)
        return task

    async def drain(self) -> None:
        """Wait for every scheduled command to finish."""
        while self._pending:
            await asyncio.gather(*list(self._pending), return_exceptions=True)


__all__ = [
    "BOOT_SERVER",
    "CMD_PERIOD",
    "DUMP_NODE_TREE",
    "DUMP_NODE_TREE_WITH_CONTROLS",
    "ENGINE_COMMAND_PREFIX",
    "EngineCommandRunner",
    "KILL_ALL_SERVERS",
    "PAUSE_RECORDING",
    "REBOOT_SERVER",
    "SHOW_FREQSCOPE",
    "SHOW_NODE_TREE",
    "SHOW_SCOPE",
    "SHOW_SERVER_METER",
    "SHOW_SERVER_WINDOW",
    "START_RECORDING",
    "STOP_RECORDING",
    "engine_command_id",
]
