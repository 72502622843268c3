"""End-to-end tests for the sysrates CLI."""

import json
import subprocess
import sys
import tempfile


def _run(*args):
    with tempfile.TemporaryDirectory() as tmpdir:
        return subprocess.run(
            [sys.executable, "-m", "sysrates.cli", *args],
            capture_output=True, text=True, cwd=tmpdir, timeout=60,
        )


class TestCLIE2E:
    """Tests that exercise CLI commands end-to-end."""

    def test_cli_version(self):
        result = _run("version")
        assert result.returncode == 0
        assert "sysrates" in result.stdout

    def test_cli_no_command(self):
        result = _run()
        assert result.returncode == 1

    def test_cli_load_json(self):
        result = _run("load", "--window", "0.3", "--json")
        assert result.returncode == 0, result.stderr
        data = json.loads(result.stdout)
        assert 0.0 <= data["current_load"] <= 100.0
        assert data["ms"] >= 200
        assert len(data["cpus"]) >= 1

    def test_cli_load_table(self):
        result = _run("load", "--window", "0.3")
        assert result.returncode == 0, result.stderr
        assert "CPU load" in result.stdout

    def test_cli_disks_unsupported_platform(self):
        result = _run("disks", "--window", "0.2", "--json", "--platform", "freebsd")
        assert result.returncode == 0, result.stderr
        assert json.loads(result.stdout) == {"disks": [], "total": None}

    def test_cli_fs_unsupported_platform(self):
        result = _run("fs", "--window", "0.2", "--json", "--platform", "sunos")
        assert result.returncode == 0, result.stderr
        assert json.loads(result.stdout) is None

    def test_cli_speed_json(self):
        result = _run("speed", "--json")
        assert result.returncode == 0, result.stderr
        data = json.loads(result.stdout)
        assert set(data) == {"min", "max", "avg", "cores"}

    def test_cli_bad_value_type(self):
        with tempfile.NamedTemporaryFile("w", suffix=".yaml", delete=False) as fh:
            fh.write("sampler:\n  min_interval_ms: fast\n")
            path = fh.name
        result = _run("--config", path, "load", "--json")
        assert result.returncode == 2
        assert "Configuration error" in result.stderr
        assert "Traceback" not in result.stderr

    def test_cli_bad_config(self):
        with tempfile.NamedTemporaryFile("w", suffix=".yaml", delete=False) as fh:
            fh.write("mode: remote\n")
            path = fh.name
        result = _run("--config", path, "version")
        assert result.returncode == 2
        assert "Configuration error" in result.stderr
