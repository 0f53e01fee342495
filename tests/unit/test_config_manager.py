import pytest
import yaml

from src.models.config import StorageBackend
from src.models.gitlab import EventKind
from src.services.config_manager import ConfigManager, ConfigValidationError


@pytest.fixture
def valid_config_file(tmp_path):
    config_content = {
        "gitlab": {
            "api_path": "https://gitlab.example.com/api/v4/",
            "gitlab_path": "https://gitlab.example.com",
            "private_token": "${TEST_GITLAB_TOKEN}",
        },
        "notifier": {"ignore_own_events": True, "user_id": 1},
        "polling": {"polling_second": 300},
        "storage": {"backend": "memory"},
        "projects": [
            {"name": "sue445/example"},
            {"name": "group/repo", "events": {"Commit": False}},
        ],
    }
    config_file = tmp_path / "notifier.yaml"
    with open(config_file, "w") as f:
        yaml.dump(config_content, f)
    return config_file


def make_manager(path) -> ConfigManager:
    manager = ConfigManager(config_path=str(path))
    manager.env_loaded = True
    return manager


def test_load_valid_config(valid_config_file, monkeypatch):
    monkeypatch.setenv("TEST_GITLAB_TOKEN", "secret-token")

    config = make_manager(valid_config_file).load_config()

    assert config.gitlab.api_path == "https://gitlab.example.com/api/v4"
    assert config.gitlab.private_token == "secret-token"
    assert config.notifier.user_id == 1
    assert config.polling.polling_second == 300
    assert config.storage.backend == StorageBackend.MEMORY
    assert [p.name for p in config.projects] == ["sue445/example", "group/repo"]
    assert config.projects[1].events == {EventKind.COMMIT: False}


def test_unset_env_var_leaves_token_empty(valid_config_file, monkeypatch):
    monkeypatch.delenv("TEST_GITLAB_TOKEN", raising=False)

    config = make_manager(valid_config_file).load_config()

    assert config.gitlab.private_token is None


def test_config_is_cached(valid_config_file):
    manager = make_manager(valid_config_file)

    assert manager.load_config() is manager.load_config()


def test_missing_file(tmp_path):
    manager = make_manager(tmp_path / "absent.yaml")

    with pytest.raises(FileNotFoundError):
        manager.load_config()


def test_invalid_yaml(tmp_path):
    config_file = tmp_path / "broken.yaml"
    config_file.write_text("gitlab: [unclosed")

    with pytest.raises(ConfigValidationError, match="Failed to parse YAML"):
        make_manager(config_file).load_config()


def test_non_mapping_root(tmp_path):
    config_file = tmp_path / "list.yaml"
    config_file.write_text("- a\n- b\n")

    with pytest.raises(ConfigValidationError, match="mapping"):
        make_manager(config_file).load_config()


def test_invalid_values(tmp_path):
    config_file = tmp_path / "bad.yaml"
    config_file.write_text("polling:\n  polling_second: 1\n")

    with pytest.raises(ConfigValidationError, match="Invalid configuration"):
        make_manager(config_file).load_config()


def test_empty_file_uses_defaults(tmp_path):
    config_file = tmp_path / "empty.yaml"
    config_file.write_text("")

    config = make_manager(config_file).load_config()

    assert not config.gitlab.is_configured
