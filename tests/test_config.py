"""Tests for the monitor config document and its store."""

import json
from pathlib import Path

import pytest

from repo_monitor.config import (
    ConfigStore, MonitorConfig, RepoRef, format_repos_for_display,
    parse_repos_input, user_config_path, validate_config
)
from repo_monitor.exceptions import ConfigValidationError


def _valid(**overrides) -> MonitorConfig:
    values = {
        "github_token": "secret",
        "refresh_interval": 60,
        "repos": [RepoRef(owner="octo", repo="hello")],
    }
    values.update(overrides)
    return MonitorConfig(**values)


class TestValidateConfig:
    """Test config validation rules."""

    def test_valid_config(self) -> None:
        """Test a complete config has no errors."""
        assert validate_config(_valid()) == []

    def test_token_required(self) -> None:
        """Test an empty token is reported."""
        assert validate_config(_valid(github_token="")) == ["GitHub token is required"]

    @pytest.mark.parametrize("interval", [10, 3600, None])
    def test_interval_accepted(self, interval) -> None:
        """Test the inclusive bounds and an absent interval are accepted."""
        assert validate_config(_valid(refresh_interval=interval)) == []

    @pytest.mark.parametrize("interval", [9, 3601, 0])
    def test_interval_rejected(self, interval) -> None:
        """Test intervals outside the range are reported."""
        errors = validate_config(_valid(refresh_interval=interval))

        assert errors == ["Refresh interval must be between 10 and 3600 seconds"]

    def test_incomplete_repository(self) -> None:
        """Test repositories missing owner or name are reported by index."""
        config = _valid(repos=[
            RepoRef(owner="octo", repo="hello"),
            RepoRef(owner="", repo="orphan"),
        ])

        assert validate_config(config) == ["Repo at index 1 must have owner and repo fields"]

    def test_all_errors_collected(self) -> None:
        """Test every problem is reported at once."""
        config = _valid(github_token="", refresh_interval=5, repos=[RepoRef(owner="octo")])

        assert len(validate_config(config)) == 3


class TestMonitorConfig:
    """Test the config document model."""

    def test_document_uses_camel_case(self) -> None:
        """Test the stored document keeps its established field names."""
        document = _valid(repos_base_path="/src").to_document()

        assert document == {
            "githubToken": "secret",
            "refreshInterval": 60,
            "repos": [{"owner": "octo", "repo": "hello"}],
            "reposBasePath": "/src",
        }

    def test_parse_document(self) -> None:
        """Test a stored document validates into the model."""
        config = MonitorConfig.model_validate({
            "githubToken": "t",
            "refreshInterval": 120,
            "repos": [{"owner": "a", "repo": "b"}],
        })

        assert config.github_token == "t"
        assert config.refresh_interval == 120
        assert config.repos[0].key == "a/b"
        assert config.repos_base_path is None

    def test_effective_refresh_interval(self) -> None:
        """Test the polling interval is defaulted and clamped."""
        assert _valid(refresh_interval=None).effective_refresh_interval == 60
        assert _valid(refresh_interval=0).effective_refresh_interval == 60
        assert _valid(refresh_interval=5).effective_refresh_interval == 10
        assert _valid(refresh_interval=7200).effective_refresh_interval == 3600
        assert _valid(refresh_interval=300).effective_refresh_interval == 300


class TestReposInput:
    """Test the one-repository-per-line text format."""

    def test_parse(self) -> None:
        """Test blank and malformed lines are skipped and parts trimmed."""
        repos = parse_repos_input("octo/hello\n\n  not-a-repo  \n acme / widgets \nx/y/z")

        assert [repo.key for repo in repos] == ["octo/hello", "acme/widgets", "x/y"]

    def test_format(self) -> None:
        """Test repositories render one per line."""
        repos = [RepoRef(owner="octo", repo="hello"), RepoRef(owner="acme", repo="widgets")]

        assert format_repos_for_display(repos) == "octo/hello\nacme/widgets"


class TestConfigStore:
    """Test loading and saving the config document."""

    def test_first_existing_candidate_wins(self, tmp_path: Path) -> None:
        """Test lookup stops at the first readable candidate."""
        first = tmp_path / "missing.json"
        second = tmp_path / "second.json"
        third = tmp_path / "third.json"
        second.write_text(json.dumps({"githubToken": "two"}))
        third.write_text(json.dumps({"githubToken": "three"}))
        store = ConfigStore(candidate_paths=[first, second, third], save_path=tmp_path / "out.json")

        config, path = store.load()

        assert config.github_token == "two"
        assert path == second
        assert store.loaded_from == second

    def test_invalid_candidate_is_skipped(self, tmp_path: Path) -> None:
        """Test unparseable documents fall through to the next candidate."""
        broken = tmp_path / "broken.json"
        wrong_shape = tmp_path / "wrong.json"
        good = tmp_path / "good.json"
        broken.write_text("{not json")
        wrong_shape.write_text(json.dumps({"repos": "octo/hello"}))
        good.write_text(json.dumps({"githubToken": "ok"}))
        store = ConfigStore(candidate_paths=[broken, wrong_shape, good], save_path=tmp_path / "out.json")

        config, path = store.load()

        assert config.github_token == "ok"
        assert path == good

    def test_nothing_found_uses_defaults(self, tmp_path: Path) -> None:
        """Test the default config is returned when no candidate exists."""
        store = ConfigStore(candidate_paths=[tmp_path / "none.json"], save_path=tmp_path / "out.json")

        config, path = store.load()

        assert path is None
        assert config.github_token == ""
        assert config.repos == []
        assert config.refresh_interval == 60

    def test_save_then_load(self, tmp_path: Path) -> None:
        """Test a saved config is found again, creating its directory."""
        save_path = tmp_path / "nested" / "repo-monitor" / "config.json"
        store = ConfigStore(candidate_paths=[save_path], save_path=save_path)

        written = store.save(_valid(repos_base_path="/src"))
        config, path = store.load()

        assert written == save_path
        assert path == save_path
        assert config == _valid(repos_base_path="/src")
        assert json.loads(save_path.read_text())["githubToken"] == "secret"

    def test_save_rejects_invalid(self, tmp_path: Path) -> None:
        """Test an invalid config raises with its errors and writes nothing."""
        save_path = tmp_path / "config.json"
        store = ConfigStore(candidate_paths=[save_path], save_path=save_path)

        with pytest.raises(ConfigValidationError) as exc_info:
            store.save(_valid(refresh_interval=3601))

        assert exc_info.value.errors == ["Refresh interval must be between 10 and 3600 seconds"]
        assert not save_path.exists()
        assert store.loaded_from is None

    def test_user_config_path_follows_xdg(self, tmp_path: Path, monkeypatch) -> None:
        """Test the save location honours XDG_CONFIG_HOME."""
        monkeypatch.setenv("XDG_CONFIG_HOME", str(tmp_path))

        assert user_config_path() == tmp_path / "repo-monitor" / "config.json"
