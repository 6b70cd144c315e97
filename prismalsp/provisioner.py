"""Provisioning of the Prisma language server through npm.

The provisioner checks whether the required version of the language server
package is installed, installs it when it is not, and builds the command used
to launch the server over stdio.
"""

import enum
import logging
import os
import subprocess
from typing import List, Optional

from pydantic import BaseModel, ConfigDict

from prismalsp.config import (
    NODE_INTERPRETER,
    PRISMA_LANGUAGE_SERVER_BIN,
    STDIO_FLAG,
    InstallTarget,
)
from prismalsp.utils.npm import InstalledPackageRecord, NpmClient
from prismalsp.utils.progress import ProgressIndicator

ENTRY_POINT_PARTS = ("dist", "src", "cli.js")


class ProvisionStatus(str, enum.Enum):
    """Outcome of a provisioning attempt."""

    UP_TO_DATE = "up-to-date"
    INSTALLED = "installed"
    INSTALL_FAILED = "install-failed"


class LaunchCommand(BaseModel):
    """Command line that starts the language server on stdio."""

    model_config = ConfigDict(frozen=True)

    interpreter: str
    entry_point: str
    transport_flag: str = STDIO_FLAG

    @property
    def argv(self) -> List[str]:
        """Get the argument vector to spawn."""
        if not self.interpreter:
            return [self.entry_point, self.transport_flag]
        return [self.interpreter, self.entry_point, self.transport_flag]


class ProvisioningResult(BaseModel):
    """Launch command together with the outcome that produced it."""

    model_config = ConfigDict(frozen=True)

    status: ProvisionStatus
    command: LaunchCommand


def entry_point_path(install_dir: str, target: Optional[InstallTarget] = None) -> str:
    """Get the server's JavaScript entry point inside an install directory.

    Args:
        install_dir: Directory holding the `node_modules` tree.
        target: The installed package. Defaults to the Prisma language server.

    Returns:
        Path to `node_modules/<scope>/<package>/dist/src/cli.js`.
    """
    target = target or InstallTarget()
    return os.path.join(install_dir, "node_modules", *target.path_parts, *ENTRY_POINT_PARTS)


def build_launch_command(
    install_dir: str,
    target: Optional[InstallTarget] = None,
    interpreter: str = NODE_INTERPRETER
) -> LaunchCommand:
    """Build the stdio launch command for a server installed in a directory."""
    return LaunchCommand(interpreter=interpreter, entry_point=entry_point_path(install_dir, target))


class Provisioner:
    """Ensures the required language server version is installed."""

    def __init__(
        self,
        npm: Optional[NpmClient] = None,
        target: Optional[InstallTarget] = None,
        interpreter: str = NODE_INTERPRETER,
        logger: Optional[logging.Logger] = None
    ):
        """Initialize the provisioner.

        Args:
            npm: Client used to run npm commands.
            target: Package to provision. Defaults to the Prisma language server.
            interpreter: Interpreter that runs the server entry point.
            logger: Logger for progress and failures.
        """
        self.npm = npm or NpmClient()
        self.target = target or InstallTarget()
        self.interpreter = interpreter
        self.logger = logger or logging.getLogger("prismalsp.provisioner")

    def installed_record(self, directory: Optional[str]) -> Optional[InstalledPackageRecord]:
        """Find the installed language server package.

        Args:
            directory: The install directory, or None to check the global prefix.

        Returns:
            The installed record, or None if the package is not installed.
        """
        if directory is not None and not os.path.exists(directory):
            self.logger.debug(f"Install directory does not exist: {directory}")
            return None

        listing = self.npm.list_dependencies(directory)
        if listing is None:
            return None

        record = listing.find(self.target.package)
        if record:
            self.logger.debug(f"Found installation of {record.name}, version: {record.version}")
        return record

    def is_language_server_installed(self, directory: Optional[str], version: str) -> bool:
        """Check if the given version of the language server is installed.

        Args:
            directory: The install directory, or None to check the global prefix.
            version: The exact version required.

        Returns:
            True if that exact version is installed.
        """
        record = self.installed_record(directory)
        return record is not None and record.version == version

    def install_language_server(self, directory: Optional[str], version: str) -> bool:
        """Install the given version of the language server.

        Args:
            directory: The install directory, created if missing. None installs
                globally.
            version: The exact version to install.

        Returns:
            True if npm reported success.
        """
        if directory is not None:
            os.makedirs(directory, exist_ok=True)

        spec = self.target.with_version(version).spec
        if not self.npm.install(spec, directory):
            self.logger.error(f"Failed to install {spec}")
            return False

        self.logger.debug(f"Installed {spec}")
        return True

    def launch_command(self, install_dir: Optional[str]) -> LaunchCommand:
        """Build the launch command for a local or global install.

        Args:
            install_dir: The install directory, or None for a global install.

        Returns:
            The launch command.
        """
        if install_dir is not None:
            return build_launch_command(install_dir, self.target, self.interpreter)

        try:
            global_root = self.npm.global_root()
        except (OSError, ValueError, subprocess.SubprocessError):
            self.logger.exception("Error resolving the global npm root")
            global_root = None

        if global_root is None:
            self.logger.warning(f"Falling back to {PRISMA_LANGUAGE_SERVER_BIN} on PATH")
            return LaunchCommand(interpreter="", entry_point=PRISMA_LANGUAGE_SERVER_BIN)

        # npm root -g points at node_modules itself
        return build_launch_command(os.path.dirname(global_root), self.target, self.interpreter)

    def provision(
        self,
        install_dir: Optional[str],
        required_version: Optional[str] = None,
        indicator: Optional[ProgressIndicator] = None
    ) -> ProvisioningResult:
        """Install the language server if needed and build its launch command.

        Failures to run npm are logged and reported through the result status;
        a launch command is returned in every case.

        Args:
            install_dir: The install directory, or None for a global install.
            required_version: The exact version required. Defaults to the
                target's version.
            indicator: Optional progress sink.

        Returns:
            The provisioning outcome and launch command.
        """
        version = required_version or self.target.version
        status = ProvisionStatus.INSTALL_FAILED

        try:
            if self.is_language_server_installed(install_dir, version):
                self.logger.debug(f"{self.target.package}@{version} is up to date")
                status = ProvisionStatus.UP_TO_DATE
            else:
                self.logger.debug(f"{self.target.package} not installed/up to date, installing...")
                if indicator is not None:
                    indicator.set_text(f"Installing {self.target.package}@{version}...")
                if self.install_language_server(install_dir, version):
                    status = ProvisionStatus.INSTALLED
        except (OSError, ValueError, subprocess.SubprocessError):
            self.logger.exception("Error while provisioning the language server")

        return ProvisioningResult(status=status, command=self.launch_command(install_dir))

    def ensure_server_available(
        self,
        install_dir: Optional[str],
        required_version: Optional[str] = None,
        indicator: Optional[ProgressIndicator] = None
    ) -> LaunchCommand:
        """Make sure the language server is installed and get its launch command."""
        return self.provision(install_dir, required_version, indicator).command
