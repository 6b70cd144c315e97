"""npm command helpers for installing and inspecting Node.js packages."""

import logging
import os
import platform
import subprocess
from typing import Dict, List, Optional

from pydantic import BaseModel, ConfigDict, Field, ValidationError


def is_windows() -> bool:
    """Check whether the current platform is Windows."""
    return platform.system().lower().startswith("windows")


class InstalledPackageRecord(BaseModel):
    """A package found in an npm dependency listing."""

    model_config = ConfigDict(frozen=True)

    name: str
    version: str


class NpmDependency(BaseModel):
    """A single entry of the `dependencies` mapping in `npm list -json`."""

    model_config = ConfigDict(extra="ignore")

    version: Optional[str] = None


class NpmListing(BaseModel):
    """Parsed output of `npm list --depth=0 -json`."""

    model_config = ConfigDict(extra="ignore")

    name: Optional[str] = None
    version: Optional[str] = None
    dependencies: Dict[str, NpmDependency] = Field(default_factory=dict)

    def versions(self) -> Dict[str, str]:
        """Get a mapping of dependency name to installed version.

        Dependencies npm reports without a version (missing or invalid
        entries) are left out.
        """
        return {
            name: dependency.version
            for name, dependency in self.dependencies.items()
            if dependency.version
        }

    def find(self, package: str) -> Optional[InstalledPackageRecord]:
        """Look up an installed dependency by name.

        Args:
            package: The npm package name.

        Returns:
            The installed record, or None if the package is not listed.
        """
        version = self.versions().get(package)
        if version is None:
            return None
        return InstalledPackageRecord(name=package, version=version)


class NpmClient:
    """Runs npm commands, locally in a directory or against the global prefix."""

    def __init__(self, executable: str = "npm", windows: Optional[bool] = None):
        """Initialize the npm client.

        Args:
            executable: Name or path of the npm executable.
            windows: Force Windows command wrapping on or off. Detected from
                the running platform when None.
        """
        self.executable = executable
        self.windows = is_windows() if windows is None else windows
        self.logger = logging.getLogger("prismalsp.npm")

    def build_command(self, *args: str, global_scope: bool = False) -> List[str]:
        """Build the argv for an npm invocation.

        On Windows npm is a batch script, so the command line is handed to
        `cmd /C` as a single string.

        Args:
            *args: npm subcommand and its arguments.
            global_scope: Whether to add the `-g` flag.

        Returns:
            The argument vector to spawn.
        """
        parts = [self.executable]
        if global_scope:
            parts.append("-g")
        parts.extend(args)

        if self.windows:
            return ["cmd", "/C", subprocess.list2cmdline(parts)]
        return parts

    def list_command(self, global_scope: bool = False) -> List[str]:
        """Build the dependency listing command."""
        return self.build_command("list", "--depth=0", "-json", global_scope=global_scope)

    def install_command(self, spec: str, global_scope: bool = False) -> List[str]:
        """Build the install command for a `package@version` specifier."""
        return self.build_command("install", spec, global_scope=global_scope)

    def run(self, command: List[str], cwd: Optional[str] = None) -> subprocess.CompletedProcess:
        """Run a command to completion and capture its output.

        Args:
            command: The argument vector to spawn.
            cwd: Working directory for the process.

        Returns:
            The completed process with decoded stdout and stderr.

        Raises:
            OSError: If the process cannot be spawned.
        """
        self.logger.debug(f"Running npm command: {' '.join(command)} (cwd={cwd})")
        with subprocess.Popen(
            command,
            cwd=cwd,
            stdout=subprocess.PIPE,
            stderr=subprocess.PIPE,
            encoding="utf-8",
            errors="replace"
        ) as process:
            stdout, stderr = process.communicate()

        return subprocess.CompletedProcess(command, process.returncode, stdout, stderr)

    def list_dependencies(self, directory: Optional[str] = None) -> Optional[NpmListing]:
        """List the top-level dependencies installed in a directory.

        Args:
            directory: The npm project directory, or None for the global prefix.

        Returns:
            The parsed listing, or None if npm failed or its output could not
            be parsed.
        """
        command = self.list_command(global_scope=directory is None)
        result = self.run(command, cwd=directory)

        if result.returncode != 0:
            self.logger.error(f"npm list failed with exit code {result.returncode}: {result.stderr.strip()}")
            return None

        try:
            return NpmListing.model_validate_json(result.stdout)
        except ValidationError as e:
            self.logger.error(f"Error parsing npm list output: {e}")
            return None

    def install(self, spec: str, directory: Optional[str] = None) -> bool:
        """Install a package.

        Args:
            spec: The `package@version` specifier.
            directory: The npm project directory, or None for a global install.

        Returns:
            True if npm exited successfully, False otherwise.
        """
        command = self.install_command(spec, global_scope=directory is None)
        result = self.run(command, cwd=directory)

        if result.returncode != 0:
            self.logger.error(f"npm install {spec} failed with exit code {result.returncode}: {result.stderr.strip()}")
            return False

        return True

    def global_root(self) -> Optional[str]:
        """Get the global node_modules directory (`npm root -g`).

        Returns:
            The directory path, or None if npm failed.
        """
        result = self.run(self.build_command("root", global_scope=True))

        root = result.stdout.strip()
        if result.returncode != 0 or not root:
            self.logger.error(f"npm root -g failed with exit code {result.returncode}")
            return None

        return os.path.normpath(root)
