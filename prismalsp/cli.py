#!/usr/bin/env python3
"""Command-line interface for the Prisma language server integration."""

import argparse
import asyncio
import logging
import sys
from typing import List, Optional

from prismalsp.config import (
    NODE_INTERPRETER,
    PRISMA_LANGUAGE_SERVER_VERSION,
    InstallTarget,
    ProvisionerSettings,
    configure_logging,
    default_plugin_home,
)
from prismalsp.provisioner import ProvisionStatus
from prismalsp.service import PrismaLanguageService, serve
from prismalsp.utils.progress import ClickProgressIndicator


def parse_args(args: Optional[List[str]] = None) -> argparse.Namespace:
    """Parse command-line arguments.

    Args:
        args: Command-line arguments. If None, sys.argv is used.

    Returns:
        Parsed arguments namespace.
    """
    parser = argparse.ArgumentParser(
        description="Prisma language server installer and launcher"
    )

    parser.add_argument(
        "--plugin-home",
        default=None,
        help="Directory holding the plugin's language server install"
    )
    parser.add_argument(
        "--global",
        dest="global_install",
        action="store_true",
        help="Check and install the language server globally"
    )
    parser.add_argument(
        "--server-version",
        default=PRISMA_LANGUAGE_SERVER_VERSION,
        help="Required language server version"
    )
    parser.add_argument(
        "--interpreter",
        default=NODE_INTERPRETER,
        help="Interpreter used to run the language server"
    )

    subparsers = parser.add_subparsers(dest="action", help="Action to perform")

    subparsers.add_parser("status", help="Show whether the language server is installed and up to date")
    subparsers.add_parser("install", help="Install the language server if it is missing or outdated")
    subparsers.add_parser("command", help="Print the command that launches the language server")

    launch_parser = subparsers.add_parser("launch", help="Install and run the language server for a workspace")
    launch_parser.add_argument("--workspace", "-w", required=True, help="Path to the workspace directory")

    parser.add_argument(
        "--debug",
        action="store_true",
        help="Enable debug logging"
    )

    return parser.parse_args(args)


def build_settings(parsed_args: argparse.Namespace) -> ProvisionerSettings:
    """Build provisioning settings from parsed arguments."""
    return ProvisionerSettings(
        plugin_home=parsed_args.plugin_home or default_plugin_home(),
        global_install=parsed_args.global_install,
        target=InstallTarget(version=parsed_args.server_version),
        interpreter=parsed_args.interpreter
    )


def main(args: Optional[List[str]] = None) -> int:
    """Run the CLI application.

    Args:
        args: Command-line arguments. If None, sys.argv is used.

    Returns:
        Exit code (0 for success, non-zero for error).
    """
    parsed_args = parse_args(args)
    configure_logging(parsed_args.debug)

    settings = build_settings(parsed_args)
    service = PrismaLanguageService(settings)
    install_dir = settings.install_dir

    try:
        if parsed_args.action == "status":
            record = service.provisioner.installed_record(install_dir)
            if record is None:
                print(f"{settings.target.package} is not installed")
                return 1

            up_to_date = record.version == settings.target.version
            state = "up to date" if up_to_date else f"outdated, required {settings.target.version}"
            print(f"{record.name}@{record.version} ({state})")
            return 0 if up_to_date else 1

        if parsed_args.action == "install":
            result = service.provisioner.provision(install_dir, settings.target.version, ClickProgressIndicator())
            print(result.status.value)
            return 1 if result.status == ProvisionStatus.INSTALL_FAILED else 0

        if parsed_args.action == "command":
            command = service.provisioner.launch_command(install_dir)
            print(" ".join(command.argv))
            return 0

        if parsed_args.action == "launch":
            print(f"Starting Prisma language server for workspace: {parsed_args.workspace}")
            print("Press Ctrl+C to stop the server")
            try:
                asyncio.run(serve(service, parsed_args.workspace))
            except KeyboardInterrupt:
                print("Stopping server...")
            print("Server stopped")
            return 0

        print("Please specify an action. Use --help for available commands.")
        return 1

    except Exception as e:
        logging.error(f"Error: {e}")
        return 1


if __name__ == "__main__":
    sys.exit(main())
