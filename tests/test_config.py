"""Tests for configuration."""

import os
from pathlib import Path
from unittest.mock import patch

import pytest
from remote_term.config import (
    HttpOptions,
    S3Options,
    Settings,
    TermOptions,
    load_term_options,
    validate_options,
)
from remote_term.errors import ConfigError


class TestSettings:
    """Test Settings class."""

    def test_default_values(self):
        """Test default configuration values."""
        with patch.dict(os.environ, {}, clear=True):
            settings = Settings(_env_file=None)

            assert settings.REMOTE_TERM_LOG_LEVEL == "INFO"
            assert settings.REMOTE_TERM_S3_ENDPOINT_URL == ""
            assert settings.REMOTE_TERM_HTTP_TIMEOUT == 30.0
            assert settings.REMOTE_TERM_MIN_REFRESH_INTERVAL == 300.0

    def test_custom_values_from_env(self):
        """Test loading custom values from environment."""
        env_vars = {
            "REMOTE_TERM_LOG_LEVEL": "DEBUG",
            "REMOTE_TERM_S3_ENDPOINT_URL": "https://r2.example.com",
            "REMOTE_TERM_HTTP_TIMEOUT": "5",
            "REMOTE_TERM_MIN_REFRESH_INTERVAL": "60",
        }

        with patch.dict(os.environ, env_vars, clear=True):
            settings = Settings(_env_file=None)

            assert settings.REMOTE_TERM_LOG_LEVEL == "DEBUG"
            assert settings.REMOTE_TERM_S3_ENDPOINT_URL == "https://r2.example.com"
            assert settings.REMOTE_TERM_HTTP_TIMEOUT == 5.0
            assert settings.REMOTE_TERM_MIN_REFRESH_INTERVAL == 60.0


class TestOptions:
    """Test option models and validation."""

    def test_s3_options_defaults(self):
        """Test S3 options fill in defaults."""
        opts = validate_options(S3Options, {"bucket": "b", "key": "k", "region": "r"})

        assert opts.failover_regions == []
        assert opts.failover_buckets == []
        assert opts.compression is None
        assert opts.version_fallback is False
        assert opts.conditional is False

    def test_s3_options_missing_bucket(self):
        """Test missing required option raises ConfigError."""
        with pytest.raises(ConfigError, match="S3Options"):
            validate_options(S3Options, {"key": "k", "region": "r"})

    def test_s3_options_unknown_compression(self):
        """Test only gzip compression is accepted."""
        with pytest.raises(ConfigError):
            validate_options(
                S3Options, {"bucket": "b", "key": "k", "region": "r", "compression": "zstd"}
            )

    def test_failover_bucket_requires_region(self):
        """Test failover buckets need both bucket and region."""
        with pytest.raises(ConfigError):
            validate_options(
                S3Options,
                {"bucket": "b", "key": "k", "region": "r", "failover_buckets": [{"bucket": "x"}]},
            )

    def test_http_options_rejects_non_http_url(self):
        """Test HTTP options reject other URL schemes."""
        with pytest.raises(ConfigError, match="Invalid URL"):
            validate_options(HttpOptions, {"url": "ftp://example.com/term"})

    def test_http_options_min_refresh_must_be_positive(self):
        """Test min_refresh_interval must be > 0."""
        with pytest.raises(ConfigError):
            validate_options(
                HttpOptions, {"url": "https://example.com", "min_refresh_interval": 0}
            )

    def test_validate_options_passes_instances_through(self):
        """Test an already validated model is returned as-is."""
        opts = HttpOptions(url="https://example.com")
        assert validate_options(HttpOptions, opts) is opts

    def test_term_options_requires_source_table(self):
        """Test the table for the selected source must be present."""
        with pytest.raises(ConfigError, match="no \\[http\\] table"):
            validate_options(TermOptions, {"name": "t", "source": "http"})

    def test_term_options_refresh_interval_positive(self):
        """Test refresh_interval must be positive when set."""
        with pytest.raises(ConfigError):
            validate_options(
                TermOptions,
                {"name": "t", "source": "static", "refresh_interval": -1, "static": {"data": "x"}},
            )


class TestLoadTermOptions:
    """Test loading term options from TOML."""

    def test_load_s3_config(self, tmp_path):
        """Test loading an S3 term config."""
        path = tmp_path / "term.toml"
        path.write_text(
            "[term]\n"
            'name = "pricing"\n'
            'source = "s3"\n'
            "refresh_interval = 3600\n"
            "auto_decompress = true\n"
            "\n"
            "[s3]\n"
            'bucket = "my-bucket"\n'
            'key = "pricing.json.gz"\n'
            'region = "us-east-1"\n'
            'failover_regions = ["us-west-2"]\n'
            "failover_buckets = [{ bucket = \"backup\", region = \"eu-west-1\" }]\n"
            'compression = "gzip"\n'
        )

        options = load_term_options(path)

        assert options.name == "pricing"
        assert options.refresh_interval == 3600
        assert options.auto_decompress is True
        assert options.fetcher_options.bucket == "my-bucket"
        assert options.fetcher_options.failover_regions == ["us-west-2"]
        assert options.fetcher_options.failover_buckets[0].bucket == "backup"

    def test_load_http_config(self, tmp_path):
        """Test loading an HTTP term config."""
        path = tmp_path / "term.toml"
        path.write_text(
            '[term]\nname = "feed"\nsource = "http"\n\n'
            '[http]\nurl = "https://example.com/feed"\nhttp_cache = true\n'
        )

        options = load_term_options(path)

        assert options.source == "http"
        assert options.fetcher_options.http_cache is True

    def test_missing_file(self, tmp_path):
        """Test missing config file raises FileNotFoundError."""
        with pytest.raises(FileNotFoundError, match="Config file not found"):
            load_term_options(tmp_path / "missing.toml")

    def test_invalid_toml(self, tmp_path):
        """Test malformed TOML raises ConfigError."""
        path = tmp_path / "term.toml"
        path.write_text("[term\nname = ")

        with pytest.raises(ConfigError, match="Invalid TOML"):
            load_term_options(path)

    def test_invalid_values(self, tmp_path):
        """Test schema violations raise ConfigError."""
        path = tmp_path / "term.toml"
        path.write_text('[term]\nname = "t"\nsource = "s3"\n\n[s3]\nbucket = "b"\n')

        with pytest.raises(ConfigError):
            load_term_options(Path(path))
