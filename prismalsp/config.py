"""Configuration for the Prisma language server integration."""

import logging
import os
from typing import Optional, Tuple

import click
from pydantic import BaseModel, ConfigDict, Field

PRISMA_LANGUAGE_SERVER_PACKAGE = "@prisma/language-server"
PRISMA_LANGUAGE_SERVER_VERSION = "3.0.28"
PRISMA_LANGUAGE_SERVER_BIN = "prisma-language-server"
PRISMA_PLUGIN_NAME = "Prisma"
PRISMA_SERVER_ID = "prisma"
INSTALL_SUB_DIR = "language_server"

NODE_INTERPRETER = "node"
STDIO_FLAG = "--stdio"

# 2 minutes, the server can be slow to answer initialize on first start
INIT_TIMEOUT_MS = 2 * 60 * 1000

LOG_FORMAT = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"


class InstallTarget(BaseModel):
    """An npm package pinned to an exact version."""

    model_config = ConfigDict(frozen=True)

    package: str = PRISMA_LANGUAGE_SERVER_PACKAGE
    version: str = PRISMA_LANGUAGE_SERVER_VERSION

    @property
    def spec(self) -> str:
        """Get the `package@version` install specifier."""
        return f"{self.package}@{self.version}"

    @property
    def path_parts(self) -> Tuple[str, ...]:
        """Get the package name split into its node_modules path segments.

        Scoped packages such as `@prisma/language-server` live in nested
        directories under node_modules.
        """
        return tuple(self.package.split("/"))

    def with_version(self, version: Optional[str]) -> "InstallTarget":
        """Return a copy of this target pinned to another version."""
        if not version or version == self.version:
            return self
        return self.model_copy(update={"version": version})


def default_plugin_home() -> str:
    """Get the per-user plugin home directory."""
    return click.get_app_dir(PRISMA_PLUGIN_NAME)


class ProvisionerSettings(BaseModel):
    """Settings for provisioning and registering the language server."""

    plugin_home: str = Field(default_factory=default_plugin_home)
    install_sub_dir: str = INSTALL_SUB_DIR
    global_install: bool = False
    target: InstallTarget = Field(default_factory=InstallTarget)
    interpreter: str = NODE_INTERPRETER
    server_id: str = PRISMA_SERVER_ID
    init_timeout_ms: int = INIT_TIMEOUT_MS
    file_extensions: Tuple[str, ...] = (".prisma",)

    @property
    def install_dir(self) -> Optional[str]:
        """Get the local install directory, or None for a global install."""
        if self.global_install:
            return None
        return os.path.join(self.plugin_home, self.install_sub_dir)


def configure_logging(debug: bool = False) -> None:
    """Configure root logging for the command-line entry points.

    Args:
        debug: Whether to enable debug logging.
    """
    log_level = logging.DEBUG if debug else logging.INFO
    logging.basicConfig(level=log_level, format=LOG_FORMAT)
