"""Command definitions exposed as window actions."""

from __future__ import annotations

import functools
from dataclasses import dataclass
from typing import Any, Callable, Mapping

from ..models.actions import WindowAction
from . import engine_commands as engine

EVALUATE_SELECTION_COMMAND = "sceval.evaluateSelection"
EVALUATE_LINE_COMMAND = "sceval.evaluateLine"
EVALUATE_REGION_COMMAND = "sceval.evaluateRegion"
RESTART_ENGINE_COMMAND = "sceval.restart"

LANGUAGE_MENU = "&Language"
SERVER_MENU = "&Server"


@dataclass(frozen=True, slots=True)
class _CommandDefinition:
    """Static metadata describing an evaluate command."""

    name: str
    text: str
    shortcut: str | None
    status_tip: str | None
    handler: str


@dataclass(frozen=True, slots=True)
class _EngineCommandDefinition:
    """An engine control; ``engine_command`` is ``None`` for the restart action."""

    engine_command: str | None
    text: str
    shortcut: str | None = None

    @property
    def name(self) -> str:
        if self.engine_command is None:
            return RESTART_ENGINE_COMMAND
        return f"sceval.{self.engine_command}"


_COMMAND_DEFINITIONS: tuple[_CommandDefinition, ...] = (
    _CommandDefinition(
        name=EVALUATE_SELECTION_COMMAND,
        text="Evaluate Selection",
        shortcut="Ctrl+Return",
        status_tip="Evaluate the selection, or the current line when nothing is selected",
        handler="evaluate_selection",
    ),
    _CommandDefinition(
        name=EVALUATE_LINE_COMMAND,
        text="Evaluate Line",
        shortcut="Shift+Return",
        status_tip="Evaluate every line touched by the selection",
        handler="evaluate_line",
    ),
    _CommandDefinition(
        name=EVALUATE_REGION_COMMAND,
        text="Evaluate Region",
        shortcut="Ctrl+Shift+Return",
        status_tip="Evaluate the enclosing parenthesised block",
        handler="evaluate_region",
    ),
)

_ENGINE_COMMAND_DEFINITIONS: tuple[_EngineCommandDefinition, ...] = (
    _EngineCommandDefinition(engine.BOOT_SERVER, "Boot Server", "Ctrl+B"),
    _EngineCommandDefinition(engine.REBOOT_SERVER, "Reboot Server"),
    _EngineCommandDefinition(engine.KILL_ALL_SERVERS, "Kill All Servers"),
    _EngineCommandDefinition(engine.CMD_PERIOD, "Stop All Sound", "Ctrl+."),
    _EngineCommandDefinition(engine.SHOW_SERVER_WINDOW, "Show Server Window"),
    _EngineCommandDefinition(engine.SHOW_SERVER_METER, "Show Server Meter", "Ctrl+M"),
    _EngineCommandDefinition(engine.SHOW_SCOPE, "Show Scope"),
    _EngineCommandDefinition(engine.SHOW_FREQSCOPE, "Show Freqscope"),
    _EngineCommandDefinition(engine.DUMP_NODE_TREE, "Dump Node Tree"),
    _EngineCommandDefinition(engine.DUMP_NODE_TREE_WITH_CONTROLS, "Dump Node Tree With Controls"),
    _EngineCommandDefinition(engine.SHOW_NODE_TREE, "Show Node Tree"),
    _EngineCommandDefinition(engine.START_RECORDING, "Start Recording"),
    _EngineCommandDefinition(engine.PAUSE_RECORDING, "Pause Recording"),
    _EngineCommandDefinition(engine.STOP_RECORDING, "Stop Recording"),
    _EngineCommandDefinition(None, "Restart Interpreter"),
)


def create_evaluation_actions(
    dispatcher: Any,
    *,
    overrides: Mapping[str, Callable[..., Any]] | None = None,
) -> dict[str, WindowAction]:
    """Create the evaluate actions bound to ``dispatcher``.

    Raises:
        KeyError: If ``dispatcher`` lacks a handler and no override is given.
    """
    actions: dict[str, WindowAction] = {}
    for definition in _COMMAND_DEFINITIONS:
        callback = (overrides or {}).get(definition.name) or getattr(
            dispatcher, definition.handler, None
        )
        if callback is None:
            raise KeyError(f"Missing callback for command '{definition.name}'")
        actions[definition.name] = WindowAction(
            name=definition.name,
            text=definition.text,
            shortcut=definition.shortcut,
            status_tip=definition.status_tip,
            menu=LANGUAGE_MENU,
            callback=callback,
        )
    return actions


def create_engine_actions(runner: engine.EngineCommandRunner) -> dict[str, WindowAction]:
    """Create the server control actions bound to ``runner``."""

    actions: dict[str, WindowAction] = {}
    for definition in _ENGINE_COMMAND_DEFINITIONS:
        if definition.engine_command is None:
            callback: Callable[..., Any] = runner.restart
            status_tip = "Restart the language server and interpreter"
        else:
            callback = functools.partial(runner.run, definition.engine_command)
            status_tip = f"Run {engine.engine_command_id(definition.engine_command)}"
        actions[definition.name] = WindowAction(
            name=definition.name,
            text=definition.text,
            shortcut=definition.shortcut,
            status_tip=status_tip,
            menu=SERVER_MENU,
            callback=callback,
        )
    return actions


__all__ = [
    "EVALUATE_LINE_COMMAND",
    "EVALUATE_REGION_COMMAND",
    "EVALUATE_SELECTION_COMMAND",
    "LANGUAGE_MENU",
    "RESTART_ENGINE_COMMAND",
    "SERVER_MENU",
    "create_engine_actions",
    "create_evaluation_actions",
]
