#!/usr/bin/env python3
"""Startup service for the Prisma language server integration.

This module provides the startup activity that provisions the language server,
registers its launch command with the language client host, and starts it for
a workspace.
"""

import asyncio
import logging
from typing import Optional

import click

from prismalsp.config import ProvisionerSettings, configure_logging, default_plugin_home
from prismalsp.provisioner import Provisioner, ProvisioningResult
from prismalsp.servers.base import BaseLanguageServerManager
from prismalsp.servers.registry import LanguageClientHost, ServerDefinition, Timeouts
from prismalsp.utils.progress import ClickProgressIndicator, LoggingProgressIndicator, ProgressIndicator


class PrismaLanguageService:
    """Provisions the Prisma language server and hands it to the client host."""

    def __init__(
        self,
        settings: Optional[ProvisionerSettings] = None,
        host: Optional[LanguageClientHost] = None,
        provisioner: Optional[Provisioner] = None,
        logger: Optional[logging.Logger] = None
    ):
        """Initialize the service.

        Args:
            settings: Provisioning settings.
            host: Language client host receiving the server definition.
            provisioner: Provisioner for the language server package.
            logger: Logger shared with the default provisioner.
        """
        self.settings = settings or ProvisionerSettings()
        self.host = host or LanguageClientHost()
        self.logger = logger or logging.getLogger("prismalsp")
        self.provisioner = provisioner or Provisioner(
            target=self.settings.target,
            interpreter=self.settings.interpreter,
            logger=self.logger.getChild("provisioner")
        )

    def preload(self, indicator: Optional[ProgressIndicator] = None) -> ProvisioningResult:
        """Install the language server if needed and register its launch command.

        Args:
            indicator: Progress sink for the setup step.

        Returns:
            The provisioning outcome. The server definition is registered
            whatever the outcome.
        """
        indicator = indicator or LoggingProgressIndicator(self.logger)
        indicator.set_indeterminate(True)
        indicator.set_text("Setting up language server...")

        install_dir = self.settings.install_dir
        self.logger.debug(f"Installing in directory: {install_dir or '<global>'}")

        result = self.provisioner.provision(install_dir, self.settings.target.version, indicator)
        self.logger.info(result.command.entry_point)

        self.host.set_timeout(Timeouts.INIT, self.settings.init_timeout_ms)
        self.host.add_server_definition(ServerDefinition(
            server_id=self.settings.server_id,
            command=tuple(result.command.argv),
            extensions=self.settings.file_extensions
        ))
        return result

    async def start(
        self,
        workspace_path: str,
        indicator: Optional[ProgressIndicator] = None
    ) -> BaseLanguageServerManager:
        """Provision the language server and start it for a workspace.

        Args:
            workspace_path: Path to the workspace directory.
            indicator: Progress sink for the setup step.

        Returns:
            The running server manager.
        """
        result = await asyncio.to_thread(self.preload, indicator)
        self.logger.info(f"Language server provisioning finished: {result.status.value}")
        return await self.host.start_server(self.settings.server_id, workspace_path)

    async def stop(self) -> None:
        """Stop all language servers."""
        await self.host.stop_all()

    def is_running(self) -> bool:
        """Check whether any language server is running."""
        return bool(self.host.running_managers())


async def serve(service: PrismaLanguageService, workspace: str, poll_interval: float = 1.0) -> None:
    """Start the service and keep it alive until the server exits or the task is cancelled."""
    await service.start(workspace, ClickProgressIndicator())
    try:
        while service.is_running():
            await asyncio.sleep(poll_interval)
    finally:
        await service.stop()


@click.command()
@click.option("--workspace", required=True, type=click.Path(exists=True, file_okay=False), help="Path to the workspace directory")
@click.option("--plugin-home", default=None, help="Directory holding the plugin's language server install")
@click.option("--global/--local", "global_install", default=False, help="Use a global npm install")
@click.option("--debug/--no-debug", default=False, help="Enable debug logging")
def main(workspace: str, plugin_home: Optional[str], global_install: bool, debug: bool) -> None:
    """Run the Prisma language server service.

    Args:
        workspace: Path to the workspace directory.
        plugin_home: Directory holding the plugin's language server install.
        global_install: Whether to use a global npm install.
        debug: Whether to enable debug logging.
    """
    configure_logging(debug)

    settings = ProvisionerSettings(
        plugin_home=plugin_home or default_plugin_home(),
        global_install=global_install
    )
    service = PrismaLanguageService(settings)

    click.echo(f"Starting Prisma language server for workspace: {workspace}")
    click.echo("Press Ctrl+C to stop the service")
    try:
        asyncio.run(serve(service, workspace))
    except KeyboardInterrupt:
        click.echo("Stopping service...")
    except Exception as e:
        logging.error(f"Error: {e}")
        raise SystemExit(1)
    click.echo("Service stopped")


if __name__ == "__main__":
    main()  # pylint: disable=no-value-for-parameter
