"""Registry of language server definitions for the language client host."""

import enum
import logging
import os
from typing import Callable, Dict, List, Optional, Tuple, Type, TypeAlias

from pydantic import BaseModel, ConfigDict, Field

from prismalsp.servers.base import (
    DEFAULT_INIT_TIMEOUT_MS,
    DEFAULT_SHUTDOWN_TIMEOUT_MS,
    BaseLanguageServerManager,
)
from prismalsp.servers.prisma_server import PrismaLanguageServerManager


class Timeouts(str, enum.Enum):
    """Kinds of request timeouts the host enforces."""

    INIT = "init"
    SHUTDOWN = "shutdown"


DEFAULT_TIMEOUTS: Dict[Timeouts, int] = {
    Timeouts.INIT: DEFAULT_INIT_TIMEOUT_MS,
    Timeouts.SHUTDOWN: DEFAULT_SHUTDOWN_TIMEOUT_MS,
}


class ServerDefinition(BaseModel):
    """A language server started from a raw command line."""

    model_config = ConfigDict(frozen=True)

    server_id: str
    command: Tuple[str, ...]
    extensions: Tuple[str, ...] = Field(default_factory=tuple)


ManagerFactory: TypeAlias = Callable[[ServerDefinition, str, Dict[Timeouts, int]], BaseLanguageServerManager]

MANAGER_CLASSES: Dict[str, Type[BaseLanguageServerManager]] = {
    "prisma": PrismaLanguageServerManager,
}


def default_manager_factory(
    definition: ServerDefinition,
    workspace_path: str,
    timeouts: Dict[Timeouts, int]
) -> BaseLanguageServerManager:
    """Create the manager class registered for a definition's server id."""
    manager_cls = MANAGER_CLASSES.get(definition.server_id)
    if manager_cls is None:
        raise ValueError(f"No language server manager for server id: {definition.server_id}")

    return manager_cls(
        workspace_path,
        list(definition.command),
        init_timeout_ms=timeouts[Timeouts.INIT],
        shutdown_timeout_ms=timeouts[Timeouts.SHUTDOWN]
    )


class LanguageClientHost:
    """Holds server definitions and the managers started from them."""

    def __init__(self, manager_factory: Optional[ManagerFactory] = None):
        """Initialize the host.

        Args:
            manager_factory: Creates a manager for a definition and workspace.
        """
        self.manager_factory = manager_factory or default_manager_factory
        self.definitions: Dict[str, ServerDefinition] = {}
        self.timeouts: Dict[Timeouts, int] = dict(DEFAULT_TIMEOUTS)
        self.managers: Dict[Tuple[str, str], BaseLanguageServerManager] = {}
        self.logger = logging.getLogger("prismalsp.host")

    def add_server_definition(self, definition: ServerDefinition) -> None:
        """Register a server definition, replacing any with the same id."""
        if definition.server_id in self.definitions:
            self.logger.debug(f"Replacing server definition: {definition.server_id}")
        self.definitions[definition.server_id] = definition
        self.logger.info(f"Registered language server {definition.server_id}: {' '.join(definition.command)}")

    def get_server_definition(self, server_id: str) -> ServerDefinition:
        """Get a registered definition.

        Raises:
            ValueError: If no definition is registered under the id.
        """
        definition = self.definitions.get(server_id)
        if definition is None:
            raise ValueError(f"No language server registered with id: {server_id}")
        return definition

    def definition_for_file(self, file_path: str) -> Optional[ServerDefinition]:
        """Get the definition serving a file, based on its extension."""
        file_ext = os.path.splitext(file_path)[1].lower()
        for definition in self.definitions.values():
            if file_ext in definition.extensions:
                return definition
        return None

    def set_timeout(self, kind: Timeouts, milliseconds: int) -> None:
        """Override a request timeout."""
        if milliseconds <= 0:
            raise ValueError(f"Timeout must be positive, got {milliseconds}")
        self.timeouts[kind] = milliseconds

    def get_manager(self, server_id: str, workspace_path: str) -> BaseLanguageServerManager:
        """Get the manager for a server and workspace, creating it if needed."""
        key = (server_id, os.path.abspath(workspace_path))
        manager = self.managers.get(key)
        if manager is None:
            definition = self.get_server_definition(server_id)
            manager = self.manager_factory(definition, key[1], dict(self.timeouts))
            self.managers[key] = manager
        return manager

    async def start_server(self, server_id: str, workspace_path: str) -> BaseLanguageServerManager:
        """Start a registered server for a workspace."""
        manager = self.get_manager(server_id, workspace_path)
        await manager.start()
        return manager

    def running_managers(self) -> List[BaseLanguageServerManager]:
        """Get the managers whose server is running."""
        return [manager for manager in self.managers.values() if manager.is_running()]

    async def stop_all(self) -> None:
        """Stop every running server."""
        for (server_id, workspace), manager in list(self.managers.items()):
            self.logger.info(f"Stopping {server_id} language server for {workspace}...")
            await manager.stop()
        self.managers.clear()
