"""Base language server manager interface."""

import abc
import asyncio
import logging
import os
from typing import Any, Dict, List, Optional

from lsprotocol.types import (
    WINDOW_LOG_MESSAGE,
    ClientCapabilities,
    DefinitionClientCapabilities,
    DidChangeConfigurationClientCapabilities,
    DidChangeConfigurationParams,
    DocumentFormattingClientCapabilities,
    HoverClientCapabilities,
    InitializedParams,
    InitializeParams,
    InitializeResult,
    LogMessageParams,
    MessageType,
    PublishDiagnosticsClientCapabilities,
    ReferenceClientCapabilities,
    RenameClientCapabilities,
    TextDocumentClientCapabilities,
    TextDocumentSyncClientCapabilities,
    WorkspaceClientCapabilities,
    WorkspaceEditClientCapabilities,
)
from pygls.lsp.client import BaseLanguageClient
from pygls.uris import from_fs_path

from prismalsp import __version__

DEFAULT_INIT_TIMEOUT_MS = 10 * 1000
DEFAULT_SHUTDOWN_TIMEOUT_MS = 5 * 1000

LOG_LEVELS = {
    MessageType.Error: logging.ERROR,
    MessageType.Warning: logging.WARNING,
    MessageType.Info: logging.INFO,
    MessageType.Log: logging.DEBUG,
}


class BaseLanguageServerManager(abc.ABC):
    """Abstract base class for language server managers.

    A manager owns one pygls client connected to one server process, which is
    spawned from the command registered for the server.
    """

    def __init__(
        self,
        workspace_path: str,
        command: List[str],
        init_timeout_ms: int = DEFAULT_INIT_TIMEOUT_MS,
        shutdown_timeout_ms: int = DEFAULT_SHUTDOWN_TIMEOUT_MS
    ):
        """Initialize the language server manager.

        Args:
            workspace_path: Path to the workspace directory.
            command: Argument vector that starts the server on stdio.
            init_timeout_ms: Time allowed for the initialize handshake.
            shutdown_timeout_ms: Time allowed for the shutdown request.
        """
        if not command:
            raise ValueError("Language server command must not be empty")

        self.workspace_path = os.path.abspath(workspace_path)
        self.command = list(command)
        self.init_timeout_ms = init_timeout_ms
        self.shutdown_timeout_ms = shutdown_timeout_ms
        self.logger = logging.getLogger(f"prismalsp.servers.{self.language}")

        self.client: Optional[BaseLanguageClient] = None
        self.server_info: Optional[InitializeResult] = None
        self.running = False

    @property
    @abc.abstractmethod
    def language(self) -> str:
        """Get the language managed by this server.

        Returns:
            The language name.
        """
        pass

    @property
    def initialization_options(self) -> Dict[str, Any]:
        """Options sent with the initialize request."""
        return {}

    @property
    def server_settings(self) -> Dict[str, Any]:
        """Settings sent with workspace/didChangeConfiguration."""
        return {}

    def is_running(self) -> bool:
        """Check if the language server is running.

        Returns:
            True if the server is running, False otherwise.
        """
        return self.running and self.client is not None and not self.client.stopped

    def _create_client(self) -> BaseLanguageClient:
        """Create the pygls client and register notification handlers."""
        client = BaseLanguageClient(f"prismalsp-{self.language}", __version__)

        @client.feature(WINDOW_LOG_MESSAGE)
        def _log_message(params: LogMessageParams) -> None:
            self._handle_log_message(params)

        return client

    def _handle_log_message(self, params: LogMessageParams) -> None:
        """Forward a window/logMessage notification to the manager's logger."""
        level = LOG_LEVELS.get(params.type, logging.INFO)
        self.logger.log(level, f"LSP server: {params.message}")

    def _initialize_params(self) -> InitializeParams:
        """Build the initialize request parameters."""
        return InitializeParams(
            process_id=os.getpid(),
            root_path=self.workspace_path,
            root_uri=self._path_to_uri(self.workspace_path),
            capabilities=ClientCapabilities(
                text_document=TextDocumentClientCapabilities(
                    synchronization=TextDocumentSyncClientCapabilities(did_save=True, will_save=True),
                    hover=HoverClientCapabilities(),
                    definition=DefinitionClientCapabilities(),
                    references=ReferenceClientCapabilities(),
                    formatting=DocumentFormattingClientCapabilities(),
                    rename=RenameClientCapabilities(),
                    publish_diagnostics=PublishDiagnosticsClientCapabilities()
                ),
                workspace=WorkspaceClientCapabilities(
                    apply_edit=True,
                    workspace_edit=WorkspaceEditClientCapabilities(document_changes=True),
                    did_change_configuration=DidChangeConfigurationClientCapabilities()
                )
            ),
            initialization_options=self.initialization_options
        )

    async def start(self) -> None:
        """Start the language server process and run the initialize handshake.

        Raises:
            RuntimeError: If the server does not complete the handshake.
        """
        if self.is_running():
            self.logger.info(f"{self.language} language server is already running")
            return

        self.logger.info(f"Starting {self.language} language server with command: {' '.join(self.command)}")
        self.client = self._create_client()

        try:
            await self.client.start_io(*self.command, cwd=self.workspace_path)
            self.server_info = await asyncio.wait_for(
                self.client.initialize_async(self._initialize_params()),
                timeout=self.init_timeout_ms / 1000
            )
        except asyncio.TimeoutError:
            self.logger.error(f"Timeout waiting for {self.language} language server to initialize")
            await self._stop_client()
            raise RuntimeError(f"{self.language} language server did not initialize within {self.init_timeout_ms} ms")
        except Exception as e:
            self.logger.error(f"Failed to start {self.language} language server: {e}")
            await self._stop_client()
            raise

        self.client.initialized(InitializedParams())
        self.client.workspace_did_change_configuration(
            DidChangeConfigurationParams(settings=self.server_settings)
        )
        self.running = True
        self.logger.info(f"Successfully initialized {self.language} language server")

    async def stop(self) -> None:
        """Shut down the language server process."""
        if self.client is None:
            return

        if not self.is_running():
            # Server process already exited, nothing left to shut down
            self.logger.warning(f"{self.language} language server exited")
            await self._stop_client()
            return

        self.logger.info(f"Stopping {self.language} language server")
        try:
            await asyncio.wait_for(
                self.client.shutdown_async(None),
                timeout=self.shutdown_timeout_ms / 1000
            )
            self.client.exit(None)
        except asyncio.TimeoutError:
            self.logger.warning(f"{self.language} language server did not answer shutdown, stopping anyway")
        except Exception as e:
            self.logger.error(f"Error shutting down {self.language} language server: {e}")

        await self._stop_client()
        self.logger.info(f"{self.language} language server stopped")

    async def _stop_client(self) -> None:
        """Stop the pygls client and forget it."""
        client, self.client = self.client, None
        self.running = False
        if client is not None:
            await client.stop()

    def _path_to_uri(self, path: str) -> str:
        """Convert a file path to a file URI.

        Args:
            path: File path to convert.

        Returns:
            File URI.
        """
        return from_fs_path(os.path.abspath(path))
