"""
Tests for configuration loading — easygce.yml parsing, env and CLI overrides.
"""

import textwrap
from pathlib import Path

import pytest

from easygce.core.config.loader import (
    ConfigError,
    env_overrides,
    find_config_file,
    load_settings,
)


@pytest.fixture
def config_file(tmp_path: Path) -> Path:
    """Create a valid easygce.yml in a temp directory."""
    content = textwrap.dedent("""\
        easygce:
          project: file-project
          zone: europe-west1-b
          ssh:
            user: alice
            connect_timeout: 20
          desktop:
            username: desk
          downloads:
            bucket: my-bucket
    """)
    path = tmp_path / "easygce.yml"
    path.write_text(content)
    return path


class TestFindConfigFile:
    def test_finds_in_current_dir(self, config_file: Path):
        assert find_config_file(config_file.parent) == config_file

    def test_walks_up(self, config_file: Path):
        nested = config_file.parent / "a" / "b"
        nested.mkdir(parents=True)
        assert find_config_file(nested) == config_file

    def test_not_found(self, tmp_path: Path):
        assert find_config_file(tmp_path) is None


class TestLoadSettings:
    def test_from_file(self, config_file: Path):
        s = load_settings(path=config_file, environ={})
        assert s.project == "file-project"
        assert s.zone == "europe-west1-b"
        assert s.ssh.user == "alice"
        assert s.ssh.connect_timeout == 20
        assert s.desktop.username == "desk"
        assert s.bucket_name == "my-bucket"

    def test_flat_file(self, tmp_path: Path):
        path = tmp_path / "easygce.yml"
        path.write_text("project: flat\n")
        assert load_settings(path=path, environ={}).project == "flat"

    def test_empty_file(self, tmp_path: Path):
        path = tmp_path / "easygce.yml"
        path.write_text("")
        assert load_settings(path=path, environ={}).project == ""

    def test_defaults_without_file(self):
        s = load_settings(search=False, environ={})
        assert s.zone == "us-east1-c"
        assert s.project == ""

    def test_env_beats_file(self, config_file: Path):
        s = load_settings(
            path=config_file,
            environ={"EASYGCE_PROJECT": "env-project", "EASYGCE_SSH_USER": "bob"},
        )
        assert s.project == "env-project"
        assert s.ssh.user == "bob"
        assert s.ssh.connect_timeout == 20

    def test_cli_beats_env(self, config_file: Path):
        s = load_settings(
            path=config_file,
            overrides={"project": "cli-project", "zone": None, "ssh.key_path": "/k"},
            environ={"EASYGCE_PROJECT": "env-project"},
        )
        assert s.project == "cli-project"
        assert s.zone == "europe-west1-b"
        assert s.ssh.key_path == "/k"

    def test_missing_explicit_file(self, tmp_path: Path):
        with pytest.raises(ConfigError, match="not found"):
            load_settings(path=tmp_path / "nope.yml", environ={})

    def test_invalid_yaml(self, tmp_path: Path):
        path = tmp_path / "easygce.yml"
        path.write_text("project: [unclosed\n")
        with pytest.raises(ConfigError, match="Invalid YAML"):
            load_settings(path=path, environ={})

    def test_not_a_mapping(self, tmp_path: Path):
        path = tmp_path / "easygce.yml"
        path.write_text("- a\n- b\n")
        with pytest.raises(ConfigError, match="mapping"):
            load_settings(path=path, environ={})

    def test_invalid_value(self, tmp_path: Path):
        path = tmp_path / "easygce.yml"
        path.write_text("ssh:\n  connect_timeout: soon\n")
        with pytest.raises(ConfigError, match="Invalid configuration"):
            load_settings(path=path, environ={})


class TestEnvOverrides:
    def test_nested_keys(self):
        data = env_overrides({"EASYGCE_SSH_KEY": "/k", "EASYGCE_ZONE": "z"})
        assert data == {"ssh": {"key_path": "/k"}, "zone": "z"}

    def test_ignores_empty_and_unknown(self):
        assert env_overrides({"EASYGCE_PROJECT": "", "OTHER": "x"}) == {}
