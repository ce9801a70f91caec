"""Application layer: use cases that drive the engine from commands.

Use Cases:
    - EvaluationDispatcher: Evaluate selection, line or region of the
      active editor
    - EngineCommandRunner: Server controls (boot, stop sound, meters,
      recording) and interpreter restart

All use cases receive their dependencies via constructor injection and
never touch Qt widgets directly.
"""

from __future__ import annotations

from .commands import (
    EVALUATE_LINE_COMMAND,
    EVALUATE_REGION_COMMAND,
    EVALUATE_SELECTION_COMMAND,
    RESTART_ENGINE_COMMAND,
    create_engine_actions,
    create_evaluation_actions,
)
from .engine_commands import EngineCommandRunner
from .evaluation_dispatcher import EvaluationDispatcher

__all__: list[str] = [
    "EVALUATE_LINE_COMMAND",
    "EVALUATE_REGION_COMMAND",
    "EVALUATE_SELECTION_COMMAND",
    "EngineCommandRunner",
    "EvaluationDispatcher",
    "RESTART_ENGINE_COMMAND",
    "create_engine_actions",
    "create_evaluation_actions",
]
