"""Unit tests for config module."""

import argparse
from pathlib import Path
from typing import Any, Dict, Optional

import pytest

from configdiff.config import deep_get, get_env_var, load_config, read_options, resolve_dir
from configdiff.documenter import DEFAULT_TITLE


def _args(**kw: Optional[Any]) -> argparse.Namespace:
    values = {"pilot": None, "production": None, "out": None, "workers": None}
    values.update(kw)
    return argparse.Namespace(**values)


@pytest.fixture(autouse=True)
def clean_env(monkeypatch: pytest.MonkeyPatch) -> None:
    """Keep CONFIGDIFF_* variables of the calling shell out of the tests."""
    for name in ("CONFIGDIFF_PILOT_DIR", "CONFIGDIFF_PRODUCTION_DIR", "CONFIGDIFF_OUT_DIR"):
        monkeypatch.delenv(name, raising=False)


class TestLoadConfig:
    """Tests for load_config function."""

    def test_missing_file_exits(self, tmp_path: Path) -> None:
        """Test a missing config file raises SystemExit."""
        with pytest.raises(SystemExit, match="config file not found"):
            load_config(tmp_path / "config.yml")

    def test_empty_file_is_empty_dict(self, tmp_path: Path) -> None:
        """Test an empty YAML file loads as an empty dict."""
        path = tmp_path / "config.yml"
        path.write_text("", encoding="utf-8")
        assert load_config(path) == {}

    def test_loads_yaml(self, tmp_path: Path) -> None:
        """Test nested YAML values are loaded."""
        path = tmp_path / "config.yml"
        path.write_text("out_dir: reports\npilot:\n  dir: Data/Pilot\n", encoding="utf-8")
        cfg = load_config(path)
        assert cfg["out_dir"] == "reports"
        assert deep_get(cfg, ["pilot", "dir"]) == "Data/Pilot"


class TestDeepGet:
    """Tests for deep_get helper function."""

    def test_nested(self) -> None:
        """Test nested key access."""
        assert deep_get({"a": {"b": 1}}, ["a", "b"]) == 1

    def test_missing_returns_default(self) -> None:
        """Test missing keys and non-dict values give the default."""
        assert deep_get({"a": 1}, ["a", "b"], "x") == "x"
        assert deep_get({}, ["a"]) is None


class TestGetEnvVar:
    """Tests for get_env_var function."""

    def test_returns_env_var_value(self, monkeypatch: pytest.MonkeyPatch) -> None:
        """Test side and field are upper-cased into the variable name."""
        monkeypatch.setenv("CONFIGDIFF_PILOT_DIR", "/data/pilot")
        assert get_env_var("pilot", "dir") == "/data/pilot"

    def test_returns_none_when_not_set(self) -> None:
        """Test None when the variable is absent."""
        assert get_env_var("production", "nonexistent_field") is None


class TestResolveDir:
    """Tests for resolve_dir precedence."""

    @pytest.fixture
    def cfg(self) -> Dict[str, Any]:
        """Config naming both directories."""
        return {"pilot": {"dir": "cfg/pilot"}, "production": {"dir": "cfg/production"}}

    def test_from_config(self, cfg: Dict[str, Any]) -> None:
        """Test the config value is used without overrides."""
        assert resolve_dir(cfg, "pilot", {}) == Path("cfg/pilot")

    def test_cli_overrides_config(self, cfg: Dict[str, Any]) -> None:
        """Test CLI values replace config values."""
        assert resolve_dir(cfg, "pilot", {"pilot": "cli/pilot"}) == Path("cli/pilot")

    def test_env_overrides_cli(self, cfg: Dict[str, Any], monkeypatch: pytest.MonkeyPatch) -> None:
        """Test environment variables take highest priority."""
        monkeypatch.setenv("CONFIGDIFF_PILOT_DIR", "env/pilot")
        assert resolve_dir(cfg, "pilot", {"pilot": "cli/pilot"}) == Path("env/pilot")

    def test_missing_dir_exits_with_hints(self) -> None:
        """Test the error names the config key, the variable and the flag."""
        with pytest.raises(SystemExit) as exc_info:
            resolve_dir({}, "production", {})
        message = str(exc_info.value)
        assert "missing production.dir" in message
        assert "CONFIGDIFF_PRODUCTION_DIR" in message
        assert "--production" in message


class TestReadOptions:
    """Tests for read_options function."""

    def test_defaults(self) -> None:
        """Test defaults when only the directories are given."""
        opt = read_options({}, _args(pilot="p", production="q"))
        assert opt.pilot_dir == Path("p")
        assert opt.production_dir == Path("q")
        assert opt.out_dir == Path("out")
        assert opt.workers == 1
        assert opt.title == DEFAULT_TITLE

    def test_config_values(self) -> None:
        """Test values loaded from config."""
        cfg = {"out_dir": "reports", "workers": 4, "title": "Sync", "pilot": {"dir": "p"}, "production": {"dir": "q"}}
        opt = read_options(cfg, _args())
        assert opt.out_dir == Path("reports")
        assert opt.workers == 4
        assert opt.title == "Sync"

    def test_cli_overrides_config(self) -> None:
        """Test CLI out dir and workers replace config values."""
        cfg = {"out_dir": "reports", "workers": 4, "pilot": {"dir": "p"}, "production": {"dir": "q"}}
        opt = read_options(cfg, _args(out="cli_out", workers=0))
        assert opt.out_dir == Path("cli_out")
        assert opt.workers == 1

    def test_env_out_dir(self, monkeypatch: pytest.MonkeyPatch) -> None:
        """Test CONFIGDIFF_OUT_DIR wins over the CLI."""
        monkeypatch.setenv("CONFIGDIFF_OUT_DIR", "env_out")
        opt = read_options({}, _args(pilot="p", production="q", out="cli_out"))
        assert opt.out_dir == Path("env_out")
