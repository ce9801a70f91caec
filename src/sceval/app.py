"""Application bootstrap helpers for the sceval editor."""

from __future__ import annotations

import argparse
import asyncio
import contextlib
import functools
import json
import logging
import os
import sys
from dataclasses import asdict, dataclass, fields
from pathlib import Path
from typing import Any, Dict, Mapping, Optional, Sequence, TextIO, cast, get_args, get_origin, get_type_hints

from .editor.document_model import DocumentMetadata, TextDocument
from .editor.workspace import EditorWorkspace
from .protocol.capabilities import EvaluateSelectionFeature
from .services.engine_client import (
    EngineClient,
    EngineClientError,
    EngineCommandTransport,
    EvaluationTransport,
)
from .services.settings import EvaluateSettings, Settings, SettingsStore
from .ui.application.commands import create_engine_actions, create_evaluation_actions
from .ui.application.engine_commands import EngineCommandRunner
from .ui.application.evaluation_dispatcher import EvaluationDispatcher
from .ui.domain.feedback_controller import FeedbackRegistry
from .ui.events import EventBus
from .ui.models.actions import WindowAction
from .utils import file_io
from .utils import logging as logging_utils

_TRUE_VALUES = {"1", "true", "yes", "on", "debug"}
_FALSE_VALUES = {"0", "false", "no", "off", "disabled"}
_LOGGER = logging.getLogger(__name__)


@dataclass(slots=True)
class QtRuntime:
    """Container returned by :func:`create_qapp`."""

    app: Any
    loop: asyncio.AbstractEventLoop


@dataclass(slots=True)
class EvaluationServices:
    """Everything the evaluate commands need, wired together."""

    event_bus: EventBus
    feature: EvaluateSelectionFeature
    feedback: FeedbackRegistry
    workspace: EditorWorkspace
    dispatcher: EvaluationDispatcher
    actions: dict[str, WindowAction]
    engine: EngineClient | None = None
    engine_commands: EngineCommandRunner | None = None


def configure_logging(debug: bool = False, *, trace_engine: bool = False, force: bool = False) -> None:
    """Configure logging; ``trace_engine`` also records the JSON-RPC traffic."""

    level = logging.DEBUG if debug else logging.INFO
    logging_utils.setup_logging(level, trace_engine=trace_engine, force=force)
    _LOGGER.debug("Logging configured (level=%s)", logging.getLevelName(level))


def load_settings(
    path: Optional[Path] = None,
    *,
    store: SettingsStore | None = None,
    overrides: Mapping[str, Any] | None = None,
) -> Settings:
    """Load persisted settings or fall back to defaults."""

    active_store = store or SettingsStore(path)
    try:
        settings = active_store.load(overrides=overrides)
    except OSError as exc:
        _LOGGER.warning("Failed to load settings from %s: %s", active_store.path, exc)
        settings = Settings()
    return settings


def build_services(
    settings: Settings,
    *,
    transport: EvaluationTransport | None = None,
    command_transport: EngineCommandTransport | None = None,
    event_bus: EventBus | None = None,
) -> EvaluationServices:
    """Wire the evaluate feature, the engine transport and the use cases.

    When ``transport`` is omitted an :class:`EngineClient` is created (but not
    started) and serves both evaluate requests and the server controls.
    """

    bus = event_bus or EventBus()
    feature = EvaluateSelectionFeature(event_bus=bus)
    engine: EngineClient | None = None
    if transport is None:
        engine = EngineClient(feature, document_selector=settings.document_selector)
        transport = engine
    feedback = FeedbackRegistry(event_bus=bus)
    workspace = EditorWorkspace()
    workspace.add_close_listener(feedback.discard)
    dispatcher = EvaluationDispatcher(
        transport,
        feature,
        feedback,
        workspace.active_editor,
        settings_provider=lambda: settings,
    )
    actions = create_evaluation_actions(dispatcher)
    runner: EngineCommandRunner | None = None
    if engine is not None:
        runner = EngineCommandRunner(engine, restart=functools.partial(restart_engine, engine, settings))
    elif command_transport is not None:
        runner = EngineCommandRunner(command_transport)
    if runner is not None:
        actions.update(create_engine_actions(runner))
    return EvaluationServices(
        event_bus=bus,
        feature=feature,
        feedback=feedback,
        workspace=workspace,
        dispatcher=dispatcher,
        actions=actions,
        engine=engine,
        engine_commands=runner,
    )


async def start_engine(engine: EngineClient, settings: Settings, *, root: Path | None = None) -> bool:
    """Launch and initialize the engine; returns ``False`` when it is unavailable."""

    root_uri = (root or Path.cwd()).resolve().as_uri()
    try:
        await engine.start(settings.engine_command, *settings.engine_args)
        await engine.initialize(root_uri)
    except EngineClientError as exc:
        _LOGGER.warning("Evaluation engine unavailable: %s", exc)
        return False
    _LOGGER.info(
        "Evaluation engine ready (registered=%s)",
        engine.feature.is_registered,
    )
    return True


async def restart_engine(engine: EngineClient, settings: Settings, *, root: Path | None = None) -> bool:
    """Relaunch the engine process; returns ``False`` when it does not come back."""

    root_uri = (root or Path.cwd()).resolve().as_uri()
    try:
        await engine.restart(settings.engine_command, *settings.engine_args, root_uri=root_uri)
    except EngineClientError as exc:
        _LOGGER.warning("Evaluation engine restart failed: %s", exc)
        return False
    _LOGGER.info("Evaluation engine restarted (registered=%s)", engine.feature.is_registered)
    return True


def load_document(path: Path | str | None) -> TextDocument:
    """Return a document for ``path``; a missing path yields an untitled document."""

    if path is None:
        return TextDocument()
    target = Path(path).expanduser()
    metadata = DocumentMetadata(path=target, language=file_io.infer_language(target))
    if not target.exists():
        return TextDocument(metadata=metadata)
    return TextDocument(text=file_io.read_text(target), metadata=metadata)


def create_qapp() -> QtRuntime:
    """Create a qasync-powered QApplication instance."""

    from PySide6.QtWidgets import QApplication
    from qasync import QEventLoop

    os.environ.setdefault("QT_ENABLE_HIGHDPI_SCALING", "1")
    app = cast(Any, QApplication.instance() or QApplication(sys.argv))
    app.setApplicationName("sceval")
    app.setApplicationDisplayName("sceval")

    loop = QEventLoop(app)
    asyncio.set_event_loop(loop)
    app.aboutToQuit.connect(loop.stop)
    return QtRuntime(app=app, loop=loop)


def main(argv: Sequence[str] | None = None) -> None:
    """Entry point invoked by the ``sceval`` console script."""

    args, passthrough = _parse_cli_args(argv)
    _rewrite_sys_argv(passthrough)

    debug = _env_flag("SCEVAL_DEBUG", default=False)
    configure_logging(debug)

    settings_path = args.settings_path or os.environ.get("SCEVAL_SETTINGS_PATH")
    resolved_path = Path(settings_path).expanduser() if settings_path else None
    settings_store = SettingsStore(resolved_path)
    try:
        cli_overrides = _coerce_cli_overrides(args.overrides or [])
    except ValueError as exc:
        print(f"Invalid --set override: {exc}", file=sys.stderr)
        raise SystemExit(2) from exc

    settings = load_settings(resolved_path, store=settings_store, overrides=cli_overrides or None)

    if args.dump_settings:
        _dump_settings(settings, settings_store, overrides=cli_overrides)
        return

    if settings.debug_logging:
        configure_logging(True, trace_engine=True, force=True)

    from .ui.main_window import MainWindow, WindowContext

    runtime = create_qapp()
    services = build_services(settings)
    window = MainWindow(
        WindowContext(workspace=services.workspace, actions=services.actions, settings=settings)
    )
    paths = args.files or [None]
    for path in paths:
        window.open_document(load_document(path))
    window.show()

    loop = runtime.loop
    engine = services.engine
    try:
        if engine is not None:
            loop.run_until_complete(start_engine(engine, settings))
        loop.run_forever()
    except KeyboardInterrupt:  # pragma: no cover - manual shutdown path
        _LOGGER.info("Shutdown requested by user.")
    finally:
        if engine is not None:
            with contextlib.suppress(RuntimeError):
                loop.run_until_complete(engine.stop())
        _drain_event_loop(loop)
        loop.close()


def _env_flag(name: str, *, default: bool = False) -> bool:
    value = os.environ.get(name)
    if value is None:
        return default
    return value.strip().lower() in _TRUE_VALUES


def _drain_event_loop(loop: asyncio.AbstractEventLoop) -> None:
    """Cancel outstanding tasks and shut down async machinery before closing."""

    if loop.is_closed():
        return

    async def _cleanup() -> None:
        current_task = asyncio.current_task()
        tasks = [
            task
            for task in asyncio.all_tasks(loop)
            if not task.done() and task is not current_task
        ]
        if tasks:
            _LOGGER.debug("Canceling %s pending asyncio task(s) before shutdown.", len(tasks))
            for task in tasks:
                task.cancel()
            await asyncio.gather(*tasks, return_exceptions=True)
        with contextlib.suppress(RuntimeError, NotImplementedError):
            await loop.shutdown_asyncgens()

    try:
        loop.run_until_complete(_cleanup())
    except RuntimeError as exc:  # pragma: no cover - loop already stopping
        _LOGGER.debug("Unable to drain asyncio loop: %s", exc)


def _parse_cli_args(argv: Sequence[str] | None) -> tuple[argparse.Namespace, list[str]]:
    parser = argparse.ArgumentParser(
        prog="sceval",
        add_help=True,
        description="Edit SuperCollider code and evaluate it on a running sclang engine.",
    )
    parser.add_argument("files", nargs="*", metavar="FILE", help="Documents to open.")
    parser.add_argument(
        "--dump-settings",
        action="store_true",
        help="Print the effective settings payload and exit.",
    )
    parser.add_argument(
        "--settings",
        dest="settings_path",
        metavar="PATH",
        help="Override the default ~/.sceval/settings.json path.",
    )
    parser.add_argument(
        "--set",
        dest="overrides",
        metavar="KEY=VALUE",
        action="append",
        default=[],
        help="Override persisted settings before launch (repeatable).",
    )
    return parser.parse_known_args(argv)


def _rewrite_sys_argv(passthrough: Sequence[str]) -> None:
    program = sys.argv[0] if sys.argv else "sceval"
    sys.argv = [program, *passthrough]


def _coerce_cli_overrides(items: Sequence[str]) -> Dict[str, Any]:
    overrides: Dict[str, Any] = {}
    if not items:
        return overrides

    settings_fields = {item.name for item in fields(Settings)} - {"evaluate"}
    evaluate_fields = {f"evaluate.{item.name}" for item in fields(EvaluateSettings)}
    settings_hints = get_type_hints(Settings)
    evaluate_hints = get_type_hints(EvaluateSettings)
    for entry in items:
        if "=" not in entry:
            raise ValueError(f"Override '{entry}' must use KEY=VALUE syntax.")
        key, raw_value = entry.split("=", 1)
        key = _normalize_key(key.strip())
        if not key:
            raise ValueError("Override is missing a field name.")
        if key in settings_fields:
            annotation = settings_hints[key]
        elif key in evaluate_fields:
            annotation = evaluate_hints[key.split(".", 1)[1]]
        else:
            raise ValueError(f"Unknown setting '{key}'.")
        overrides[key] = _coerce_value(annotation, raw_value.strip())
    return overrides


def _normalize_key(key: str) -> str:
    aliases = {
        "evaluate.flashTime": "evaluate.flash_time",
        "evaluate.postFlashTime": "evaluate.post_flash_time",
    }
    return aliases.get(key, key)


def _coerce_value(annotation: Any, raw_value: str) -> Any:
    target = _resolve_annotation(annotation)
    normalized = raw_value.strip()

    if target is str or target is Any:
        return normalized
    if target is bool:
        return _parse_bool(normalized)
    if target is int:
        return int(normalized, 10)
    if target is list:
        try:
            value = json.loads(normalized or "[]")
        except json.JSONDecodeError as exc:
            raise ValueError("List overrides must be valid JSON arrays") from exc
        if not isinstance(value, list):
            raise ValueError("List overrides must be valid JSON arrays")
        return value
    return normalized


def _resolve_annotation(annotation: Any) -> Any:
    origin = get_origin(annotation)
    if origin is None:
        return annotation
    if origin in {list, dict}:
        return origin
    args = [arg for arg in get_args(annotation) if arg is not type(None)]
    if not args:
        return origin
    return args[0]


def _parse_bool(value: str) -> bool:
    lowered = value.strip().lower()
    if lowered in _TRUE_VALUES:
        return True
    if lowered in _FALSE_VALUES:
        return False
    raise ValueError(f"Cannot coerce '{value}' to a boolean.")


def _dump_settings(
    settings: Settings,
    store: SettingsStore,
    *,
    overrides: Mapping[str, Any],
    stream: TextIO | None = None,
) -> None:
    destination = stream or sys.stdout
    metadata = {
        "path": str(store.path),
        "cli_overrides": sorted(overrides.keys()),
        "environment_variables": _active_env_overrides(),
    }
    output = {"settings": asdict(settings), "meta": metadata}
    json.dump(output, destination, indent=2)
    destination.write("\n")


def _active_env_overrides() -> list[str]:
    return sorted(name for name in os.environ if name.startswith("SCEVAL_"))


if __name__ == "__main__":  # pragma: no cover - manual launch
    main()
