"""Tests for YAML configuration."""

from pathlib import Path

import pytest

from tracelink.config import Config


@pytest.fixture(autouse=True)
def isolated_home(tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> Path:
    """Point global config at a temporary directory."""
    home = tmp_path / "home"
    monkeypatch.setenv("TRACELINK_HOME", str(home))
    monkeypatch.chdir(tmp_path)
    return home


def test_defaults() -> None:
    """Test built-in defaults are returned when nothing is set."""
    config = Config()
    assert config.get("backend") == "local"
    assert config.get_float("link.timeout") == 10.0
    assert config.get("notion.token") is None


def test_set_and_reload(tmp_path: Path) -> None:
    """Test values are saved to the local config file."""
    Config().set("scope.suite_id", "s1")
    assert (tmp_path / ".tracelink" / "config.yaml").exists()
    assert Config().get("scope.suite_id") == "s1"


def test_local_overrides_global() -> None:
    """Test local values win over global ones and global fills the gaps."""
    Config(use_global=True).set("backend", "notion")
    Config(use_global=True).set("notion.database_id", "db")
    Config().set("backend", "local")

    config = Config()
    assert config.get("backend") == "local"
    assert config.get("notion.database_id") == "db"
    assert config.list() == {"backend": "local", "notion.database_id": "db"}


def test_unset() -> None:
    """Test unsetting falls back to the default."""
    config = Config()
    config.set("link.timeout", "3")
    assert config.get_float("link.timeout") == 3.0
    config.unset("link.timeout")
    assert Config().get("link.timeout") == "10"


def test_get_float_invalid() -> None:
    """Test non-numeric values are reported."""
    config = Config()
    config.set("link.timeout", "soon")
    with pytest.raises(ValueError, match="not a number"):
        config.get_float("link.timeout")


def test_invalid_yaml(tmp_path: Path) -> None:
    """Test a broken config file raises ValueError."""
    config_dir = tmp_path / ".tracelink"
    config_dir.mkdir()
    (config_dir / "config.yaml").write_text("backend: [unclosed")
    with pytest.raises(ValueError, match="Failed to load config"):
        Config()


def test_scope() -> None:
    """Test the filter scope is built from scope settings."""
    config = Config()
    config.set("scope.suite_id", "s1")
    config.set("scope.user_id", "u1")
    config.set("scope.account_type", "individual")

    scope = config.scope()
    assert scope.is_complete
    assert scope.collection_path == "individualAccounts/u1/testSuites/s1/bugs"
