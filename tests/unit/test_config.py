"""Tests for configuration loading, profiles and startup resolution."""

import os
from pathlib import Path

import pytest

from ragcourse.config.loader import PROFILES_ENV_VAR, load_config, parse_profiles
from ragcourse.config.schema import AppConfig, ChatConfig, ChatProviderType, ConfigError, SourceType, VectorBackend
from ragcourse.config.startup import StartupConfig, resolve_startup

CONFIG_TOML = """
[vector_store]
collection_name = "course"
persist_directory = "${CHROMA_DIR:-/tmp/ragcourse-chroma}"

[retrieval]
top_k = 5

[profiles.networked.vector_store]
host = "chroma.internal"
port = 9000

[profiles.rag.knowledge_base]
probe_query = "Kendrick Lamar"
"""


@pytest.fixture(autouse=True)
def clean_env(monkeypatch):
    monkeypatch.delenv(PROFILES_ENV_VAR, raising=False)
    monkeypatch.delenv("CHROMA_DIR", raising=False)
    saved = dict(os.environ)
    yield
    # load_dotenv writes straight into os.environ; undo it for later tests
    os.environ.clear()
    os.environ.update(saved)


@pytest.fixture
def config_file(tmp_path) -> Path:
    path = tmp_path / "ragcourse.toml"
    path.write_text(CONFIG_TOML)
    return path


def test_defaults():
    config = AppConfig()

    assert config.active_profiles == []
    assert config.vector_store.backend == VectorBackend.IN_MEMORY
    assert config.retrieval.top_k == 4
    assert config.knowledge_base.probe_query == "Spring Framework"
    assert config.knowledge_base.ingestion_enabled is False
    assert [s.source_id for s in config.knowledge_base.sources] == [
        "drake_feud",
        "spring_framework",
        "wef_jobs_report",
    ]
    assert config.knowledge_base.sources[2].doc_type == SourceType.PDF


def test_chat_api_key_follows_provider():
    assert ChatConfig().api_key == "OPENAI_API_KEY"
    assert ChatConfig(provider=ChatProviderType.ANTHROPIC).api_key == "ANTHROPIC_API_KEY"
    assert ChatConfig(api_key="sk-literal").api_key == "sk-literal"


def test_profiles_normalized():
    config = AppConfig(active_profiles=["RAG", " rag", "Networked", ""])
    assert config.active_profiles == ["rag", "networked"]


def test_parse_profiles():
    assert parse_profiles(None) == []
    assert parse_profiles("rag, Networked,,") == ["rag", "networked"]
    assert parse_profiles(["rag"]) == ["rag"]


class TestLoadConfig:
    """Test load_config with files, profiles and environment."""

    def test_missing_file_uses_defaults(self, tmp_path):
        config = load_config(tmp_path / "absent.toml")
        assert config.vector_store.collection_name == "ragcourse"

    def test_file_values_and_default_substitution(self, config_file):
        config = load_config(config_file)

        assert config.vector_store.collection_name == "course"
        assert config.vector_store.persist_directory == Path("/tmp/ragcourse-chroma")
        assert config.retrieval.top_k == 5
        assert config.vector_store.host is None

    def test_env_substitution(self, config_file, monkeypatch):
        monkeypatch.setenv("CHROMA_DIR", "/data/chroma")
        config = load_config(config_file)
        assert config.vector_store.persist_directory == Path("/data/chroma")

    def test_profile_sections_merged(self, config_file):
        """Profile tables merge into the base key by key."""
        config = load_config(config_file, profiles=["rag", "networked"])

        assert config.active_profiles == ["rag", "networked"]
        assert config.vector_store.host == "chroma.internal"
        assert config.vector_store.port == 9000
        assert config.vector_store.collection_name == "course"
        assert config.knowledge_base.probe_query == "Kendrick Lamar"

    def test_profiles_from_environment(self, config_file, monkeypatch):
        monkeypatch.setenv(PROFILES_ENV_VAR, "networked")
        config = load_config(config_file)

        assert config.active_profiles == ["networked"]
        assert config.vector_store.host == "chroma.internal"

    def test_argument_beats_environment(self, config_file, monkeypatch):
        monkeypatch.setenv(PROFILES_ENV_VAR, "networked")
        config = load_config(config_file, profiles=["rag"])
        assert config.active_profiles == ["rag"]

    def test_unknown_profile_is_kept(self, config_file):
        """A profile without a section is still active."""
        config = load_config(config_file, profiles=["redis"])
        assert config.active_profiles == ["redis"]

    def test_environment_overrides_file(self, config_file, monkeypatch):
        monkeypatch.setenv("RAGCOURSE_RETRIEVAL__TOP_K", "7")
        config = load_config(config_file)
        assert config.retrieval.top_k == 7

    def test_env_file(self, tmp_path, monkeypatch):
        monkeypatch.delenv("RAGCOURSE_CHAT__MODEL_NAME", raising=False)
        env_file = tmp_path / ".env"
        env_file.write_text("RAGCOURSE_CHAT__MODEL_NAME=gpt-4.1\n")

        config = load_config(tmp_path / "absent.toml", env_file=env_file)

        assert config.chat.model_name == "gpt-4.1"

    def test_invalid_toml(self, tmp_path):
        path = tmp_path / "broken.toml"
        path.write_text("[retrieval\ntop_k = ")

        with pytest.raises(ConfigError, match="Invalid TOML") as exc_info:
            load_config(path)
        assert exc_info.value.path == str(path)

    def test_invalid_value(self, tmp_path):
        path = tmp_path / "bad.toml"
        path.write_text("[retrieval]\ntop_k = 0\n")

        with pytest.raises(ConfigError, match="Invalid configuration"):
            load_config(path)


class TestResolveStartup:
    """Test activation flags derived from profiles."""

    def test_no_profiles(self):
        assert resolve_startup(AppConfig()) == StartupConfig(
            ingestion_enabled=False,
            backend=VectorBackend.IN_MEMORY,
        )

    def test_rag_profile_enables_ingestion(self):
        startup = resolve_startup(AppConfig(active_profiles=["rag"]))

        assert startup.ingestion_enabled is True
        assert startup.backend == VectorBackend.IN_MEMORY

    @pytest.mark.parametrize("profile", ["networked", "redis"])
    def test_networked_profiles(self, profile):
        startup = resolve_startup(AppConfig(active_profiles=["rag", profile]))

        assert startup.ingestion_enabled is True
        assert startup.backend == VectorBackend.NETWORKED

    def test_backend_from_config(self):
        config = AppConfig(vector_store={"backend": "networked"})
        assert resolve_startup(config).backend == VectorBackend.NETWORKED

    def test_ingestion_flag_from_config(self, app_config):
        assert resolve_startup(app_config).ingestion_enabled is True

    def test_startup_is_frozen(self):
        startup = StartupConfig()
        with pytest.raises(AttributeError):
            startup.ingestion_enabled = True
