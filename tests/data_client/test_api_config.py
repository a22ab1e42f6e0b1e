"""Tests for loading the data client configuration."""

import json
from pathlib import Path

import pytest
from pydantic import ValidationError

from runtime_core.data_client.config import DEFAULT_HEADERS, ApiConfig, RetryConfig, load_api_config


def test_defaults():
    """Test the built-in defaults."""
    config = ApiConfig()
    assert config.base_url == ""
    assert config.timeout == 30000
    assert config.headers == DEFAULT_HEADERS
    assert config.endpoints == {}
    assert config.graphql_endpoint == "/graphql"
    assert config.cache.enabled is True
    assert config.cache.ttl == 300000
    assert config.cache.max_size == 100
    assert config.retry.max_retries == 3
    assert config.retry.retry_delay == 1000
    assert config.retry.backoff_multiplier == 2
    assert config.retry.retry_on == {408, 429, 500, 502, 503, 504}


def test_aliases_and_field_names():
    """Test that both the JSON keys and the field names are accepted."""
    by_alias = ApiConfig.model_validate({"baseURL": "https://api.test", "retry": {"maxRetries": 1}})
    by_name = ApiConfig(base_url="https://api.test", retry=RetryConfig(max_retries=1))
    assert by_alias == by_name


def test_config_is_frozen():
    """Test that a loaded configuration cannot be mutated."""
    config = ApiConfig()
    with pytest.raises(ValidationError):
        config.timeout = 1


def test_retry_delays():
    """Test the backoff schedule."""
    retry = RetryConfig(retry_delay=1000, backoff_multiplier=2)
    assert [retry.delay_before(n) for n in (1, 2, 3)] == [1000, 2000, 4000]


def test_load_none_returns_defaults():
    assert load_api_config(None) == ApiConfig()


def test_load_partial_file(tmp_path: Path):
    """Test that keys missing from the file take their defaults."""
    path = tmp_path / "api-config.json"
    path.write_text(
        json.dumps(
            {
                "baseURL": "https://api.test",
                "endpoints": {"trending": "/v1/trending"},
                "cache": {"ttl": 1000},
                "retry": {"retryOn": [503]},
            }
        )
    )

    config = load_api_config(path)

    assert config.base_url == "https://api.test"
    assert config.endpoints == {"trending": "/v1/trending"}
    assert config.cache.ttl == 1000
    assert config.cache.max_size == 100
    assert config.retry.retry_on == {503}
    assert config.retry.max_retries == 3
    assert config.timeout == 30000


def test_load_missing_file(tmp_path: Path):
    """Test that a missing file falls back to the defaults."""
    assert load_api_config(tmp_path / "missing.json") == ApiConfig()


@pytest.mark.parametrize("content", ["{not json", '{"timeout": "soon"}', '{"cache": {"maxSize": -1}}'])
def test_load_malformed_file(tmp_path: Path, content: str):
    """Test that a malformed file falls back to the defaults."""
    path = tmp_path / "api-config.json"
    path.write_text(content)
    assert load_api_config(str(path)) == ApiConfig()


def test_load_file_with_invalid_encoding(tmp_path: Path):
    """Test that a file that is not UTF-8 falls back to the defaults."""
    path = tmp_path / "api-config.json"
    path.write_bytes(b'{"baseURL": "https://caf\xe9.test"}')
    assert load_api_config(path) == ApiConfig()
