# tests/config/test_loader.py
"""
Tests for layered configuration loading and validation.
"""

import os

import pytest

from llmadapt.config import AppConfig, load_config
from llmadapt.exceptions import ConfigError
from llmadapt.storage.similarity import DistanceType


@pytest.fixture(autouse=True)
def clean_environment(monkeypatch):
    for name in list(os.environ):
        if name.startswith("LLMADAPT_"):
            monkeypatch.delenv(name)


def test_packaged_defaults():
    config = load_config()

    assert isinstance(config, AppConfig)
    assert config.chat.provider == "openai"
    assert config.chat.default_options == {"model": "gpt-4o", "temperature": 0.7}
    assert config.chat.retry.max_attempts == 3
    assert config.embedding.model == "text-embedding-3-small"
    assert config.vector_store.type == "memory"
    assert config.vector_store.distance_type is DistanceType.COSINE
    assert config.logging.components["openai"] == "WARNING"


def test_programmatic_overrides():
    config = load_config(overrides={
        "chat.provider": "Moonshot",
        "chat.default_options.model": "moonshot-v1-32k",
        "vector_store.distance_type": "l2",
        "vector_store.embedding_dimension": 8,
    })

    assert config.chat.provider == "moonshot"
    assert config.chat.default_options["model"] == "moonshot-v1-32k"
    assert config.chat.default_options["temperature"] == 0.7
    assert config.vector_store.distance_type is DistanceType.EUCLIDEAN
    assert config.vector_store.embedding_dimension == 8


def test_user_file(tmp_path):
    config_file = tmp_path / "llmadapt.toml"
    config_file.write_text(
        '[vector_store]\n'
        'type = "chromadb"\n'
        'collection_name = "notes"\n'
        '\n'
        '[logging]\n'
        'console_level = "debug"\n'
    )

    config = load_config(config_file_path=config_file)

    assert config.vector_store.type == "chromadb"
    assert config.vector_store.collection_name == "notes"
    assert config.vector_store.embedding_dimension == 1536
    assert config.logging.console_level == "DEBUG"


def test_missing_user_file(tmp_path):
    with pytest.raises(ConfigError):
        load_config(config_file_path=tmp_path / "nope.toml")


def test_malformed_user_file(tmp_path):
    config_file = tmp_path / "broken.toml"
    config_file.write_text("[chat\nprovider = ")
    with pytest.raises(ConfigError):
        load_config(config_file_path=config_file)


def test_environment_overrides(monkeypatch):
    monkeypatch.setenv("LLMADAPT_CHAT_RETRY_MAX__ATTEMPTS", "7")
    monkeypatch.setenv("LLMADAPT_VECTOR__STORE_TYPE", "chromadb")

    config = load_config()

    assert config.chat.retry.max_attempts == 7
    assert config.vector_store.type == "chromadb"


def test_env_prefix_none_skips_environment(monkeypatch):
    monkeypatch.setenv("LLMADAPT_CHAT_PROVIDER", "moonshot")
    assert load_config().chat.provider == "moonshot"
    assert load_config(env_prefix=None).chat.provider == "openai"


def test_overrides_beat_environment(monkeypatch):
    monkeypatch.setenv("LLMADAPT_CHAT_PROVIDER", "moonshot")
    assert load_config(overrides={"chat.provider": "openai"}).chat.provider == "openai"


@pytest.mark.parametrize("overrides", [
    {"chat.retry.max_attempts": 0},
    {"chat.retry.base_delay_seconds": 5.0, "chat.retry.max_delay_seconds": 1.0},
    {"vector_store.distance_type": "manhattan"},
    {"vector_store.default_similarity_threshold": 1.5},
    {"logging.file_mode": "daily"},
    {"chat.unknown_key": True},
    {"embedding.dimensions": 256},
])
def test_invalid_configuration(overrides):
    with pytest.raises(ConfigError):
        load_config(overrides=overrides)


def test_matching_embedding_dimensions():
    config = load_config(overrides={"embedding.dimensions": 256, "vector_store.embedding_dimension": 256})
    assert config.embedding.dimensions == 256
