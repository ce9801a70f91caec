"""Application bootstrap tests."""

from __future__ import annotations

import asyncio
import io
import json
from pathlib import Path
from typing import Any, Mapping

import pytest

from sceval import app
from sceval.core.ranges import TextSpan
from sceval.protocol.capabilities import EvaluateSelectionRegistrationOptions
from sceval.services.engine_client import EngineClientError
from sceval.services.settings import EvaluateSettings, Settings, SettingsStore
from sceval.ui.application.commands import (
    EVALUATE_LINE_COMMAND,
    EVALUATE_REGION_COMMAND,
    EVALUATE_SELECTION_COMMAND,
    RESTART_ENGINE_COMMAND,
)


@pytest.fixture(autouse=True)
def _clean_environment(monkeypatch: pytest.MonkeyPatch) -> None:
    for name in (
        "SCEVAL_DEBUG",
        "SCEVAL_DEBUG_LOGGING",
        "SCEVAL_ENGINE_COMMAND",
        "SCEVAL_FLASH_TIME",
        "SCEVAL_POST_FLASH_TIME",
        "SCEVAL_SETTINGS_PATH",
    ):
        monkeypatch.delenv(name, raising=False)


class RecordingCommands:
    def __init__(self) -> None:
        self.executed: list[str] = []

    @property
    def is_running(self) -> bool:
        return True

    async def execute_command(self, command: str, *arguments: Any) -> Any:
        self.executed.append(command)
        return None


class RecordingTransport:
    def __init__(self) -> None:
        self.requests: list[tuple[str, dict[str, Any]]] = []

    async def send_request(self, method: str, params: Mapping[str, Any]) -> Any:
        self.requests.append((method, dict(params)))
        return {"result": "ok"}


# ---------------------------------------------------------------------------
# CLI overrides
# ---------------------------------------------------------------------------


class TestCliOverrides:
    def test_coerces_typed_values(self) -> None:
        overrides = app._coerce_cli_overrides(
            [
                "engine_command=/usr/bin/sclang",
                "debug_logging=yes",
                'engine_args=["-i", "lsp", "-d", "/tmp"]',
                "evaluate.post_flash_time=900",
            ]
        )

        assert overrides == {
            "engine_command": "/usr/bin/sclang",
            "debug_logging": True,
            "engine_args": ["-i", "lsp", "-d", "/tmp"],
            "evaluate.post_flash_time": 900,
        }

    def test_accepts_camel_case_evaluate_keys(self) -> None:
        assert app._coerce_cli_overrides(["evaluate.flashTime=120"]) == {"evaluate.flash_time": 120}

    @pytest.mark.parametrize(
        "entry",
        ["engine_command", "unknown=1", "evaluate.nope=3", "debug_logging=maybe", "engine_args={}"],
    )
    def test_rejects_invalid_entries(self, entry: str) -> None:
        with pytest.raises(ValueError):
            app._coerce_cli_overrides([entry])

    def test_overrides_flow_into_settings(self, tmp_path: Path) -> None:
        overrides = app._coerce_cli_overrides(["evaluate.flashTime=5"])

        settings = app.load_settings(tmp_path / "settings.json", overrides=overrides)

        assert settings.evaluate == EvaluateSettings(flash_time=5, post_flash_time=600)


class TestDumpSettings:
    def test_writes_settings_and_meta(self, tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> None:
        monkeypatch.setenv("SCEVAL_ENGINE_COMMAND", "sclang")
        store = SettingsStore(tmp_path / "settings.json")
        stream = io.StringIO()

        app._dump_settings(Settings(), store, overrides={"debug_logging": True}, stream=stream)

        payload = json.loads(stream.getvalue())
        assert payload["settings"]["evaluate"] == {"flash_time": 50, "post_flash_time": 600}
        assert payload["meta"]["path"] == str(tmp_path / "settings.json")
        assert payload["meta"]["cli_overrides"] == ["debug_logging"]
        assert "SCEVAL_ENGINE_COMMAND" in payload["meta"]["environment_variables"]

    def test_main_dumps_without_starting_qt(
        self,
        tmp_path: Path,
        monkeypatch: pytest.MonkeyPatch,
        capsys: pytest.CaptureFixture[str],
    ) -> None:
        monkeypatch.setenv("SCEVAL_LOG_DIR", str(tmp_path / "logs"))
        monkeypatch.setattr("sys.argv", ["sceval"])
        settings_path = tmp_path / "settings.json"
        settings_path.write_text(json.dumps({"engine_command": "/opt/sclang"}), encoding="utf-8")

        app.main(["--dump-settings", "--settings", str(settings_path), "--set", "evaluate.flash_time=10"])

        payload = json.loads(capsys.readouterr().out)
        assert payload["settings"]["engine_command"] == "/opt/sclang"
        assert payload["settings"]["evaluate"]["flash_time"] == 10

    def test_main_rejects_bad_override(self, tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> None:
        monkeypatch.setenv("SCEVAL_LOG_DIR", str(tmp_path / "logs"))
        monkeypatch.setattr("sys.argv", ["sceval"])

        with pytest.raises(SystemExit) as excinfo:
            app.main(["--dump-settings", "--set", "bogus"])

        assert excinfo.value.code == 2


# ---------------------------------------------------------------------------
# Documents
# ---------------------------------------------------------------------------


class TestLoadDocument:
    def test_none_is_untitled(self) -> None:
        document = app.load_document(None)

        assert document.text == ""
        assert document.metadata.path is None

    def test_missing_file_keeps_path_and_language(self, tmp_path: Path) -> None:
        document = app.load_document(tmp_path / "new.scd")

        assert document.text == ""
        assert document.metadata.language == "supercollider"
        assert document.uri == (tmp_path / "new.scd").as_uri()

    def test_existing_file_is_read(self, tmp_path: Path) -> None:
        target = tmp_path / "synth.scd"
        target.write_bytes(b"(\r\nSynthDef(\\a, {}).add;\r\n)")

        document = app.load_document(target)

        assert document.text == "(\nSynthDef(\\a, {}).add;\n)"
        assert document.line_count == 3


# ---------------------------------------------------------------------------
# Service wiring
# ---------------------------------------------------------------------------


class TestBuildServices:
    def test_without_transport_creates_engine(self) -> None:
        services = app.build_services(Settings())

        assert services.engine is not None
        assert services.engine.feature is services.feature
        assert services.engine_commands is not None
        assert {
            EVALUATE_SELECTION_COMMAND,
            EVALUATE_LINE_COMMAND,
            EVALUATE_REGION_COMMAND,
            RESTART_ENGINE_COMMAND,
            "sceval.cmdPeriod",
        } <= set(services.actions)

    def test_fake_transport_without_commands_has_no_server_actions(self) -> None:
        services = app.build_services(Settings(), transport=RecordingTransport())

        assert services.engine_commands is None
        assert set(services.actions) == {
            EVALUATE_SELECTION_COMMAND,
            EVALUATE_LINE_COMMAND,
            EVALUATE_REGION_COMMAND,
        }

    @pytest.mark.asyncio
    async def test_server_action_reaches_command_transport(self) -> None:
        commands = RecordingCommands()
        services = app.build_services(Settings(), transport=RecordingTransport(), command_transport=commands)

        services.actions["sceval.cmdPeriod"].trigger()
        assert services.engine_commands is not None
        await services.engine_commands.drain()

        assert commands.executed == ["supercollider.internal.cmdPeriod"]
        assert RESTART_ENGINE_COMMAND in services.actions

    @pytest.mark.asyncio
    async def test_region_command_reaches_transport(self, make_editor: Any) -> None:
        transport = RecordingTransport()
        services = app.build_services(Settings(), transport=transport)
        services.feature.register(
            "static",
            EvaluateSelectionRegistrationOptions(document_selector=({"language": "supercollider"},)),
        )
        editor = make_editor("(\n1 + 1;\n)", TextSpan.from_lines(1, 1, 0))
        services.workspace.add_editor(editor)

        services.actions[EVALUATE_REGION_COMMAND].trigger()
        await services.dispatcher.drain()

        assert services.engine is None
        assert transport.requests == [
            (
                "textDocument/evaluateSelection",
                {"textDocument": {"uri": editor.document.uri}, "sourceCode": "(\n1 + 1;\n)"},
            )
        ]
        await services.feedback.controller_for(editor).wait_idle()

    @pytest.mark.asyncio
    async def test_closing_editor_discards_its_controller(self, make_editor: Any) -> None:
        services = app.build_services(Settings(), transport=RecordingTransport())
        editor = make_editor("1;", editor_id="closing")
        services.workspace.add_editor(editor)
        services.feedback.controller_for(editor).start(TextSpan.from_lines(0, 0, 2))

        services.workspace.close_editor("closing")

        assert services.feedback.get("closing") is None
        assert services.feedback.tracker.has_annotations("closing") is False


class FailingEngine:
    def __init__(self) -> None:
        self.initialized = False

    async def start(self, command: str, *args: str) -> None:
        raise EngineClientError(f"cannot launch {command}")

    async def initialize(self, root_uri: str | None = None) -> None:
        self.initialized = True

    async def restart(self, command: str, *args: str, root_uri: str | None = None) -> None:
        raise EngineClientError(f"cannot relaunch {command}")


class TestStartEngine:
    def test_failure_is_not_fatal(self, tmp_path: Path) -> None:
        engine = FailingEngine()

        started = asyncio.run(app.start_engine(engine, Settings(), root=tmp_path))  # type: ignore[arg-type]

        assert started is False
        assert engine.initialized is False

    def test_failed_restart_is_not_fatal(self, tmp_path: Path) -> None:
        started = asyncio.run(app.restart_engine(FailingEngine(), Settings(), root=tmp_path))  # type: ignore[arg-type]

        assert started is False
