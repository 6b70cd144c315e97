"""Tests for the npm command helpers."""

import json
import subprocess
import sys
from unittest.mock import patch

from conftest import fake_popen
from prismalsp.utils.npm import NpmClient, NpmListing


class TestCommandBuilding:
    """Test argv construction on each platform family."""

    def test_posix_list_command(self):
        client = NpmClient(windows=False)
        assert client.list_command() == ["npm", "list", "--depth=0", "-json"]

    def test_posix_global_install_command(self):
        client = NpmClient(windows=False)
        assert client.install_command("@prisma/language-server@3.0.28", global_scope=True) == [
            "npm", "-g", "install", "@prisma/language-server@3.0.28"
        ]

    def test_windows_wraps_command_line_in_cmd(self):
        client = NpmClient(windows=True)
        assert client.list_command(global_scope=True) == ["cmd", "/C", "npm -g list --depth=0 -json"]
        assert client.install_command("pkg@1.0.0") == ["cmd", "/C", "npm install pkg@1.0.0"]

    def test_platform_detected_once_at_construction(self):
        with patch("prismalsp.utils.npm.platform.system", return_value="Windows") as system:
            client = NpmClient()
            client.list_command()
            client.install_command("pkg@1.0.0")
        assert client.windows is True
        assert system.call_count == 1


class TestListing:
    """Test parsing of `npm list -json` output."""

    def test_versions_mapping(self):
        listing = NpmListing.model_validate_json(json.dumps({
            "name": "language_server",
            "dependencies": {
                "@prisma/language-server": {"version": "3.0.28", "resolved": "x", "overridden": False},
                "left-pad": {"version": "1.3.0"},
            },
        }))
        assert listing.versions() == {"@prisma/language-server": "3.0.28", "left-pad": "1.3.0"}

    def test_missing_dependencies_key(self):
        listing = NpmListing.model_validate_json("{}")
        assert listing.versions() == {}
        assert listing.find("@prisma/language-server") is None

    def test_dependency_without_version_is_not_installed(self):
        listing = NpmListing.model_validate({"dependencies": {"pkg": {"missing": True}}})
        assert listing.find("pkg") is None

    def test_find_returns_record(self):
        listing = NpmListing.model_validate({"dependencies": {"pkg": {"version": "2.0.0"}}})
        record = listing.find("pkg")
        assert record.name == "pkg"
        assert record.version == "2.0.0"


class TestNpmClientRun:
    """Test npm invocations with subprocess replaced."""

    def setup_method(self):
        self.client = NpmClient(windows=False)

    def test_list_dependencies_parses_output(self, tmp_path):
        output = json.dumps({"dependencies": {"pkg": {"version": "1.0.0"}}})
        popen = fake_popen(stdout=output)
        with patch("prismalsp.utils.npm.subprocess.Popen", popen):
            listing = self.client.list_dependencies(str(tmp_path))

        assert listing.versions() == {"pkg": "1.0.0"}
        args, kwargs = popen.call_args
        assert args[0] == ["npm", "list", "--depth=0", "-json"]
        assert kwargs["cwd"] == str(tmp_path)

    def test_list_dependencies_global(self):
        popen = fake_popen(stdout="{}")
        with patch("prismalsp.utils.npm.subprocess.Popen", popen):
            self.client.list_dependencies(None)

        args, kwargs = popen.call_args
        assert args[0] == ["npm", "-g", "list", "--depth=0", "-json"]
        assert kwargs["cwd"] is None

    def test_list_dependencies_non_zero_exit(self, tmp_path):
        popen = fake_popen(stdout="{}", stderr="npm ERR! missing", returncode=1)
        with patch("prismalsp.utils.npm.subprocess.Popen", popen):
            assert self.client.list_dependencies(str(tmp_path)) is None

    def test_list_dependencies_malformed_output(self, tmp_path):
        with patch("prismalsp.utils.npm.subprocess.Popen", fake_popen(stdout="not json")):
            assert self.client.list_dependencies(str(tmp_path)) is None

    def test_list_dependencies_empty_output(self, tmp_path):
        with patch("prismalsp.utils.npm.subprocess.Popen", fake_popen(stdout="")):
            assert self.client.list_dependencies(str(tmp_path)) is None

    def test_install_success_and_failure(self, tmp_path):
        with patch("prismalsp.utils.npm.subprocess.Popen", fake_popen()):
            assert self.client.install("pkg@1.0.0", str(tmp_path)) is True
        with patch("prismalsp.utils.npm.subprocess.Popen", fake_popen(returncode=254)):
            assert self.client.install("pkg@1.0.0", str(tmp_path)) is False

    def test_run_returns_completed_process(self):
        with patch("prismalsp.utils.npm.subprocess.Popen", fake_popen(stdout="out", returncode=3)):
            result = self.client.run(["npm", "--version"])
        assert isinstance(result, subprocess.CompletedProcess)
        assert result.returncode == 3
        assert result.stdout == "out"

    def test_global_root(self):
        with patch("prismalsp.utils.npm.subprocess.Popen", fake_popen(stdout="/usr/lib/node_modules\n")):
            assert self.client.global_root() == "/usr/lib/node_modules"
        with patch("prismalsp.utils.npm.subprocess.Popen", fake_popen(returncode=1)):
            assert self.client.global_root() is None


class TestOutputDecoding:
    """Test npm output that is not valid UTF-8."""

    INVALID_LISTING = (
        "import sys; "
        "sys.stdout.buffer.write(b'{\"dependencies\": {\"\\xff\\xfe\": {\"version\": \"1\"}}}'); "
        "sys.stderr.buffer.write(b'\\xff warn')"
    )

    def setup_method(self):
        self.client = NpmClient(windows=False)
        self.command = [sys.executable, "-c", self.INVALID_LISTING]

    def test_run_replaces_undecodable_bytes(self):
        result = self.client.run(self.command)

        assert result.returncode == 0
        assert "\ufffd" in result.stdout
        assert result.stderr.endswith(" warn")

    def test_list_dependencies_with_undecodable_bytes(self, tmp_path):
        with patch.object(self.client, "list_command", return_value=self.command):
            listing = self.client.list_dependencies(str(tmp_path))

        assert listing.versions() == {"\ufffd\ufffd": "1"}
        assert listing.find("@prisma/language-server") is None

    def test_popen_decodes_as_utf8(self):
        popen = fake_popen(stdout="{}")
        with patch("prismalsp.utils.npm.subprocess.Popen", popen):
            self.client.run(["npm", "list"])

        _, kwargs = popen.call_args
        assert kwargs["encoding"] == "utf-8"
        assert kwargs["errors"] == "replace"


class TestWindowsQuoting:
    """Test cmd /C command lines with paths containing spaces."""

    def test_executable_with_spaces_is_quoted(self):
        client = NpmClient(executable=r"C:\Program Files\nodejs\npm.cmd", windows=True)

        assert client.list_command() == [
            "cmd", "/C", '"C:\\Program Files\\nodejs\\npm.cmd" list --depth=0 -json'
        ]
