"""Shared fixtures for the prismalsp test suite."""

from unittest.mock import MagicMock, Mock

import pytest

from prismalsp.config import PRISMA_LANGUAGE_SERVER_PACKAGE, PRISMA_LANGUAGE_SERVER_VERSION
from prismalsp.utils.npm import NpmClient, NpmListing


def make_listing(version=PRISMA_LANGUAGE_SERVER_VERSION, package=PRISMA_LANGUAGE_SERVER_PACKAGE):
    """Build an npm listing with one dependency, or none if version is None."""
    dependencies = {}
    if version is not None:
        dependencies[package] = {"version": version, "resolved": "https://registry.npmjs.org/x.tgz"}
    return NpmListing.model_validate({"name": "language_server", "dependencies": dependencies})


def fake_popen(stdout="", stderr="", returncode=0):
    """Build a subprocess.Popen replacement usable as a context manager."""
    popen = MagicMock()
    process = popen.return_value.__enter__.return_value
    process.communicate.return_value = (stdout, stderr)
    process.returncode = returncode
    return popen


@pytest.fixture
def npm():
    """An NpmClient double reporting the required version as installed."""
    client = Mock(spec=NpmClient)
    client.list_dependencies.return_value = make_listing()
    client.install.return_value = True
    client.global_root.return_value = "/usr/lib/node_modules"
    return client


@pytest.fixture
def install_dir(tmp_path):
    """An existing install directory."""
    directory = tmp_path / "language_server"
    directory.mkdir()
    return str(directory)
