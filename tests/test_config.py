"""Simplified comprehensive tests for Config class."""

import logging
import os
from importlib import reload
from pathlib import Path
from unittest.mock import call, patch

import pytest

from f1gpt import config as config_module
from f1gpt.config import Config
from f1gpt.errors import ConfigurationError


@pytest.fixture(autouse=True)
def _restore_config_module():
    yield
    reload(config_module)


def test_get_openai_api_key_from_env():
    """Test API key retrieval from environment."""
    with patch.dict(os.environ, {"OPENAI_API_KEY": "test-api-key"}):
        assert Config.get_openai_api_key() == "test-api-key"


def test_get_openai_api_key_empty_when_not_set():
    """Test API key returns empty string when not set."""
    with patch.dict(os.environ, {}, clear=True):
        assert not Config.get_openai_api_key()


def test_validate_success_with_api_key():
    """Test validation passes when API key is set."""
    with patch.object(Config, "get_openai_api_key", return_value="test-key"):
        Config.validate()


def test_validate_fails_without_api_key():
    """Test validation fails when API key is not set."""
    with (
        patch.object(Config, "get_openai_api_key", return_value=""),
        pytest.raises(ConfigurationError, match="OPENAI_API_KEY required"),
    ):
        Config.validate()


def test_validate_names_every_missing_value():
    with (
        patch.object(Config, "get_openai_api_key", return_value=""),
        patch.object(Config, "CHAT_MODEL", ""),
        patch.object(Config, "EMBEDDING_DIMENSION", 0),
        pytest.raises(ConfigurationError) as exc_info,
    ):
        Config.validate()

    message = str(exc_info.value)
    assert "OPENAI_API_KEY" in message
    assert "CHAT_MODEL" in message
    assert "EMBEDDING_DIMENSION" in message
    assert "EMBEDDING_MODEL" not in message


def test_configuration_error_is_value_error():
    assert issubclass(ConfigurationError, ValueError)


@pytest.mark.parametrize(
    ("env_var", "config_attr", "default_value", "test_value", "expected_type"),
    [
        ("LOG_LEVEL", "LOG_LEVEL", "INFO", "debug", str),
        ("OPENAI_LOG_LEVEL", "OPENAI_LOG_LEVEL", "WARNING", "error", str),
        (
            "EMBEDDING_MODEL",
            "EMBEDDING_MODEL",
            "text-embedding-3-small",
            "BAAI/bge-large-en-v1.5",
            str,
        ),
        (
            "CHAT_MODEL",
            "CHAT_MODEL",
            "gpt-3.5-turbo-instruct",
            "mistralai/Mixtral-8x7B-Instruct-v0.1",
            str,
        ),
        ("EMBEDDING_DIMENSION", "EMBEDDING_DIMENSION", 1024, "768", int),
        ("CHAT_MAX_TOKENS", "CHAT_MAX_TOKENS", 1000, "500", int),
        ("CHAT_TEMPERATURE", "CHAT_TEMPERATURE", 0.01, "0.5", float),
        ("CHAT_TOP_P", "CHAT_TOP_P", 0.1, "0.9", float),
        ("RETRIEVAL_TOP_K", "RETRIEVAL_TOP_K", 5, "10", int),
        ("RETRIEVAL_MIN_SIMILARITY", "RETRIEVAL_MIN_SIMILARITY", 0.7, "0.5", float),
        ("CHUNK_SIZE", "CHUNK_SIZE", 1024, "1500", int),
        ("CHUNK_OVERLAP", "CHUNK_OVERLAP", 100, "300", int),
        ("CLIENT_REQUEST_TIMEOUT", "CLIENT_REQUEST_TIMEOUT", 30.0, "10", float),
        ("CLIENT_READ_TIMEOUT", "CLIENT_READ_TIMEOUT", 30.0, "5", float),
        ("MAX_INPUT_LENGTH", "MAX_INPUT_LENGTH", 1000, "2000", int),
        ("DEFAULT_USER", "DEFAULT_USER", "anonymous", "guest", str),
    ],
)
def test_config_loading_from_env(
    env_var, config_attr, default_value, test_value, expected_type
):
    with patch.dict(os.environ, {}, clear=True):
        reload(config_module)
        actual_default = getattr(config_module.Config, config_attr)
        assert actual_default == default_value

    with patch.dict(os.environ, {env_var: test_value}):
        reload(config_module)
        actual_value = getattr(config_module.Config, config_attr)
        if expected_type is int:
            expected = int(test_value)
        elif expected_type is float:
            expected = float(test_value)
        elif config_attr in {"LOG_LEVEL", "OPENAI_LOG_LEVEL"}:
            expected = test_value.upper()
        else:
            expected = test_value
        assert actual_value == expected


def test_repetition_penalty_is_optional():
    with patch.dict(os.environ, {}, clear=True):
        reload(config_module)
        assert config_module.Config.CHAT_REPETITION_PENALTY is None

    with patch.dict(os.environ, {"CHAT_REPETITION_PENALTY": "1.2"}):
        reload(config_module)
        assert config_module.Config.CHAT_REPETITION_PENALTY == pytest.approx(1.2)


def test_stop_sequences_parsed_from_comma_list():
    with patch.dict(os.environ, {}, clear=True):
        reload(config_module)
        assert config_module.Config.CHAT_STOP_SEQUENCES == ("</s>",)

    with patch.dict(os.environ, {"CHAT_STOP_SEQUENCES": "</s>, [INST] ,"}):
        reload(config_module)
        assert config_module.Config.CHAT_STOP_SEQUENCES == ("</s>", "[INST]")


def test_vector_paths_follow_collection():
    """Test store paths are derived from the directory and collection name."""
    with patch.dict(
        os.environ,
        {"VECTOR_STORE_DIR": "/custom/vectors", "VECTOR_COLLECTION": "f1"},
    ):
        reload(config_module)
        assert config_module.Config.vector_db_path() == Path("/custom/vectors/f1.db")
        assert config_module.Config.vector_index_path() == Path(
            "/custom/vectors/f1.faiss"
        )


def test_openai_base_url_from_env():
    """Test provider base URL loading from environment."""
    with patch.dict(os.environ, {"OPENAI_BASE_URL": "https://custom.example.com/v1"}):
        reload(config_module)
        assert config_module.Config.OPENAI_BASE_URL == "https://custom.example.com/v1"


@pytest.mark.parametrize(
    ("log_level", "openai_level", "expected_level", "expected_openai_level"),
    [
        ("INFO", "WARNING", logging.INFO, logging.WARNING),
        ("DEBUG", "ERROR", logging.DEBUG, logging.ERROR),
        ("INVALID", "INVALID", logging.INFO, logging.WARNING),
    ],
)
def test_setup_logging_levels(
    log_level, openai_level, expected_level, expected_openai_level
):
    """Verify logging setup respects overrides and falls back on invalid values."""
    with (
        patch.object(Config, "LOG_LEVEL", log_level),
        patch.object(Config, "OPENAI_LOG_LEVEL", openai_level),
        patch("f1gpt.config.logging.basicConfig") as mock_basic,
        patch("f1gpt.config.logging.getLogger") as mock_get_logger,
    ):
        mock_logger = mock_get_logger.return_value

        Config.setup_logging()

        mock_basic.assert_called_once_with(
            level=expected_level,
            format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
            datefmt="%H:%M:%S",
        )
        assert mock_get_logger.call_args_list == [call("openai"), call("httpx")]
        mock_logger.setLevel.assert_called_with(expected_openai_level)


def test_get_logger():
    """Test logger creation with specified name."""
    with patch("f1gpt.config.logging.getLogger") as mock_get_logger:
        mock_logger = mock_get_logger.return_value

        result = Config.get_logger("test.module")

        mock_get_logger.assert_called_once_with("test.module")
        assert result == mock_logger


def test_api_headers_carry_user_agent():
    with patch.object(Config, "API_USER_AGENT", "F1GPT/1.0"):
        assert Config.get_api_headers() == {"User-Agent": "F1GPT/1.0"}
    with patch.object(Config, "API_USER_AGENT", ""):
        assert Config.get_api_headers() == {}


@pytest.mark.parametrize(
    ("env_var", "invalid_value", "error_match"),
    [
        ("CHUNK_SIZE", "not_a_number", "invalid literal for int"),
        ("CHAT_TEMPERATURE", "not_a_float", "could not convert string to float"),
    ],
)
def test_type_conversion_errors(env_var, invalid_value, error_match):
    """Test handling of invalid type conversions."""
    with (
        patch.dict(os.environ, {env_var: invalid_value}),
        pytest.raises(ValueError, match=error_match),
    ):
        reload(config_module)


def test_no_dotenv_loading_when_missing():
    """Test that .env file loading is skipped when file doesn't exist."""
    with (
        patch.object(Path, "exists", return_value=False),
        patch("f1gpt.config.load_dotenv") as mock_load,
    ):
        reload(config_module)

        mock_load.assert_not_called()
