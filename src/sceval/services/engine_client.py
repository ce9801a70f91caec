"""Language-server transport for the evaluation engine.

:class:`EngineClient` wraps a pygls :class:`LanguageClient`: it spawns the
engine process over stdio, performs the ``initialize`` handshake with the
evaluation capability advertised, tracks static and dynamic registrations of
``textDocument/evaluateSelection`` and sends evaluate requests. The
dispatcher only depends on the :class:`EvaluationTransport` protocol, so any
object with a compatible ``send_request`` can stand in for it.
"""

from __future__ import annotations

import logging
import os
from collections.abc import Awaitable, Callable, Mapping, Sequence
from typing import Any, Protocol

import cattrs
from lsprotocol import types
from pygls.lsp.client import LanguageClient
from pygls.protocol import default_converter

from ..protocol.capabilities import (
    DocumentSelector,
    EvaluateSelectionFeature,
    install_server_capability_hook,
)
from ..protocol.evaluate import EVALUATE_SELECTION

LOGGER = logging.getLogger(__name__)

CLIENT_NAME = "sceval"
CLIENT_VERSION = "0.1.0"


class EngineClientError(RuntimeError):
    """Raised when the engine process cannot be started or initialized."""


class EvaluationTransport(Protocol):
    """Anything that can send a typed request and eventually resolve it."""

    def send_request(self, method: str, params: Mapping[str, Any]) -> Awaitable[Any]:
        ...


class EngineCommandTransport(Protocol):
    """Anything that forwards ``workspace/executeCommand`` to the engine."""

    @property
    def is_running(self) -> bool:
        ...

    async def execute_command(self, command: str, *arguments: Any) -> Any:
        ...


def build_converter() -> cattrs.Converter:
    """Return the pygls converter with the engine capability hook installed."""

    return install_server_capability_hook(default_converter())


def create_language_client() -> LanguageClient:
    return LanguageClient(CLIENT_NAME, CLIENT_VERSION, converter_factory=build_converter)


class EngineClient:
    """Stdio language client speaking the evaluate extension."""

    def __init__(
        self,
        feature: EvaluateSelectionFeature | None = None,
        *,
        document_selector: DocumentSelector | None = None,
        client: LanguageClient | None = None,
        client_factory: Callable[[], LanguageClient] | None = None,
    ) -> None:
        if client_factory is None:
            client_factory = create_language_client if client is None else (lambda: client)
        self._feature = feature or EvaluateSelectionFeature()
        self._document_selector = [dict(entry) for entry in (document_selector or ())]
        self._client_factory = client_factory
        self._client = client or client_factory()
        self._server_capabilities: types.ServerCapabilities | None = None
        self._running = False
        self._install_handlers()

    # ------------------------------------------------------------------
    # Properties
    # ------------------------------------------------------------------
    @property
    def feature(self) -> EvaluateSelectionFeature:
        return self._feature

    @property
    def server_capabilities(self) -> types.ServerCapabilities | None:
        return self._server_capabilities

    @property
    def is_running(self) -> bool:
        return self._running

    # ------------------------------------------------------------------
    # Lifecycle
    # ------------------------------------------------------------------
    async def start(self, command: str, *args: str) -> None:
        """Spawn the engine process and connect to its stdio."""

        LOGGER.debug("Starting engine: %s %s", command, " ".join(args))
        try:
            await self._client.start_io(command, *args)
        except OSError as exc:
            raise EngineClientError(f"Unable to start engine {command!r}: {exc}") from exc
        self._running = True

    async def initialize(self, root_uri: str | None = None) -> types.InitializeResult:
        """Run the ``initialize`` handshake and register the evaluate feature."""

        params = types.InitializeParams(
            process_id=os.getpid(),
            root_uri=root_uri,
            capabilities=self.build_client_capabilities(),
            client_info=types.ClientInfo(name=CLIENT_NAME, version=CLIENT_VERSION),
        )
        try:
            result = await self._client.initialize_async(params)
        except Exception as exc:
            raise EngineClientError(f"Engine initialization failed: {exc}") from exc
        self._client.initialized(types.InitializedParams())
        self._server_capabilities = result.capabilities
        self._feature.initialize(result.capabilities, self._document_selector)
        return result

    async def stop(self) -> None:
        """Shut the engine down and drop every registration."""

        self._feature.clear()
        if not self._running:
            return
        self._running = False
        try:
            await self._client.shutdown_async(None)
            self._client.exit(None)
        except Exception:  # pragma: no cover - engine already gone
            LOGGER.debug("Engine shutdown request failed", exc_info=True)
        await self._client.stop()

    async def restart(
        self, command: str, *args: str, root_uri: str | None = None
    ) -> types.InitializeResult:
        """Stop the engine, then launch and initialize a fresh process."""

        await self.stop()
        self._client = self._client_factory()
        self._install_handlers()
        await self.start(command, *args)
        return await self.initialize(root_uri)

    def build_client_capabilities(self) -> types.ClientCapabilities:
        capabilities = types.ClientCapabilities(
            text_document=types.TextDocumentClientCapabilities(),
        )
        return self._feature.fill_client_capabilities(capabilities)

    # ------------------------------------------------------------------
    # Requests
    # ------------------------------------------------------------------
    def send_request(self, method: str, params: Mapping[str, Any]) -> Awaitable[Any]:
        """Send ``method`` with a JSON ``params`` object; resolves with the raw result."""

        LOGGER.debug("Sending %s", method)
        return self._client.protocol.send_request_async(method, dict(params))

    async def execute_command(self, command: str, *arguments: Any) -> Any:
        """Run ``command`` on the engine through ``workspace/executeCommand``."""

        if not self._running:
            raise EngineClientError(f"Engine is not running; cannot execute {command!r}")
        params = types.ExecuteCommandParams(command=command, arguments=list(arguments) or None)
        LOGGER.debug("Executing engine command %s", command)
        return await self._client.workspace_execute_command_async(params)

    # ------------------------------------------------------------------
    # Server-driven registration
    # ------------------------------------------------------------------
    def _install_handlers(self) -> None:
        # The handlers take ``*args`` so they work whether or not pygls passes
        # the client instance ahead of the params.
        @self._client.feature(types.CLIENT_REGISTER_CAPABILITY)
        def _register_capability(*args: Any) -> None:
            self.handle_register_capability(args[-1])

        @self._client.feature(types.CLIENT_UNREGISTER_CAPABILITY)
        def _unregister_capability(*args: Any) -> None:
            self.handle_unregister_capability(args[-1])

    def handle_register_capability(self, params: types.RegistrationParams) -> None:
        for registration in _entries(params, "registrations"):
            if _field(registration, "method") != EVALUATE_SELECTION:
                continue
            self._feature.register_dynamic(
                str(_field(registration, "id")),
                _field(registration, "register_options", "registerOptions"),
                self._document_selector,
            )

    def handle_unregister_capability(self, params: types.UnregistrationParams) -> None:
        for unregistration in _entries(params, "unregisterations", "unregistrations"):
            if _field(unregistration, "method") != EVALUATE_SELECTION:
                continue
            self._feature.unregister(str(_field(unregistration, "id")))


def _field(value: Any, *names: str) -> Any:
    for name in names:
        if isinstance(value, Mapping):
            if name in value:
                return value[name]
        elif hasattr(value, name):
            return getattr(value, name)
    return None


def _entries(params: Any, *names: str) -> Sequence[Any]:
    entries = _field(params, *names)
    return list(entries) if entries else []


__all__ = [
    "CLIENT_NAME",
    "CLIENT_VERSION",
    "build_converter",
    "create_language_client",
    "EngineClient",
    "EngineClientError",
    "EngineCommandTransport",
    "EvaluationTransport",
]
