"""Tests for application configuration."""

import pytest
from pydantic import ValidationError

from mindflow.config import Environment, Settings


def _make_settings(**overrides) -> Settings:
    """Build a Settings instance with test defaults + overrides."""
    defaults = {
        "DATABASE_URL": "postgresql+psycopg://localhost/test",
        "MINDFLOW_ENV": "test",
        "SUPABASE_JWKS_URL": "http://localhost:54321/auth/v1/.well-known/jwks.json",
        "SUPABASE_ISSUER": "http://localhost:54321/auth/v1/",
        "SUPABASE_AUDIENCES": "authenticated, anon ,",
    }
    defaults.update(overrides)
    return Settings(**defaults)


class TestDefaults:
    def test_defaults(self, monkeypatch):
        monkeypatch.delenv("LOG_FORMAT", raising=False)
        s = _make_settings()
        assert s.mindflow_env == Environment.TEST
        assert s.port == 3000
        assert s.rate_limit_requests == 120
        assert s.rate_limit_window_s == 60
        assert s.max_body_bytes == 1024 * 1024
        assert s.redis_url is None
        assert s.log_format == "json"

    def test_audiences_are_split_and_trimmed(self):
        assert _make_settings().audience_list == ["authenticated", "anon"]

    def test_issuer_trailing_slash_stripped(self):
        assert _make_settings().normalized_issuer == "http://localhost:54321/auth/v1"

    def test_cors_origins_parsed(self):
        s = _make_settings(CORS_ORIGINS="http://localhost:5173, https://app.example.com")
        assert s.cors_origin_list == ["http://localhost:5173", "https://app.example.com"]

    def test_no_cors_origins_by_default(self):
        assert _make_settings().cors_origin_list == []


class TestValidation:
    @pytest.mark.parametrize(
        "missing", ["SUPABASE_JWKS_URL", "SUPABASE_ISSUER", "SUPABASE_AUDIENCES"]
    )
    def test_jwks_settings_required_in_every_environment(self, missing):
        with pytest.raises(ValidationError, match=missing):
            _make_settings(**{missing: None})

    @pytest.mark.parametrize("env", ["staging", "prod"])
    def test_provider_settings_required_in_production_like_envs(self, env):
        with pytest.raises(ValidationError, match="SUPABASE_URL"):
            _make_settings(MINDFLOW_ENV=env)

    def test_provider_settings_satisfy_production(self):
        s = _make_settings(
            MINDFLOW_ENV="prod",
            SUPABASE_URL="https://project.supabase.co",
            SUPABASE_ANON_KEY="anon-key",
        )
        assert s.is_production_like
        assert s.auth_provider_configured

    def test_local_runs_without_provider(self):
        s = _make_settings(MINDFLOW_ENV="local")
        assert not s.auth_provider_configured

    def test_invalid_log_format_rejected(self):
        with pytest.raises(ValidationError, match="LOG_FORMAT"):
            _make_settings(LOG_FORMAT="xml")

    def test_rate_limit_must_be_positive(self):
        with pytest.raises(ValidationError):
            _make_settings(RATE_LIMIT_REQUESTS=0)
