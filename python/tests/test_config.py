"""Tests for application configuration."""

import pytest
from pydantic import ValidationError

from agora.config import DEV_JWT_SECRET, Environment, get_settings
from tests.helpers import make_settings


class TestSavedSearchSettings:
    def test_defaults(self):
        s = make_settings()
        assert s.saved_searches_min_trust_level == 1
        assert s.saved_search_recency_hours == 24
        assert s.saved_search_results_per_term == 5
        assert s.saved_search_max_terms == 5
        assert s.saved_search_max_term_length == 100
        assert s.saved_search_schedule_minutes == 1440
        assert s.system_username == "system"

    def test_overrides_accepted(self):
        s = make_settings(
            SAVED_SEARCHES_MIN_TRUST_LEVEL=3,
            SAVED_SEARCH_RECENCY_HOURS=6,
            SAVED_SEARCH_RESULTS_PER_TERM=10,
        )
        assert s.saved_searches_min_trust_level == 3
        assert s.saved_search_recency_hours == 6
        assert s.saved_search_results_per_term == 10

    @pytest.mark.parametrize("level", [-1, 5])
    def test_trust_level_out_of_range_rejected(self, level):
        with pytest.raises(ValidationError, match="SAVED_SEARCHES_MIN_TRUST_LEVEL must be between"):
            make_settings(SAVED_SEARCHES_MIN_TRUST_LEVEL=level)

    def test_trust_level_zero_allowed(self):
        assert make_settings(SAVED_SEARCHES_MIN_TRUST_LEVEL=0).saved_searches_min_trust_level == 0

    @pytest.mark.parametrize(
        "field",
        [
            "SAVED_SEARCH_RECENCY_HOURS",
            "SAVED_SEARCH_RESULTS_PER_TERM",
            "SAVED_SEARCH_MAX_TERMS",
            "SAVED_SEARCH_MAX_TERM_LENGTH",
            "SAVED_SEARCH_SCHEDULE_MINUTES",
        ],
    )
    def test_zero_value_rejected(self, field):
        with pytest.raises(ValidationError, match=f"{field} must be >= 1"):
            make_settings(**{field: 0})


class TestEnvironmentSettings:
    def test_jwt_secret_required_in_prod(self):
        with pytest.raises(ValidationError, match="AUTH_JWT_SECRET is required"):
            make_settings(AGORA_ENV="prod")

    def test_jwt_secret_required_in_staging(self):
        with pytest.raises(ValidationError, match="AUTH_JWT_SECRET is required"):
            make_settings(AGORA_ENV="staging")

    def test_prod_with_secret(self):
        s = make_settings(AGORA_ENV="prod", AUTH_JWT_SECRET="s3cret")
        assert s.agora_env == Environment.PROD
        assert s.effective_jwt_secret == "s3cret"

    def test_dev_secret_fallback(self):
        assert make_settings(AGORA_ENV="local").effective_jwt_secret == DEV_JWT_SECRET

    def test_site_base_url_normalized(self):
        s = make_settings(SITE_BASE_URL="https://forum.example/")
        assert s.normalized_site_base_url == "https://forum.example"

    def test_celery_urls_fall_back_to_redis(self):
        s = make_settings(REDIS_URL="redis://localhost:6379/0")
        assert s.effective_celery_broker_url == "redis://localhost:6379/0"
        assert s.effective_celery_result_backend == "redis://localhost:6379/0"

    def test_explicit_celery_urls_win(self):
        s = make_settings(
            REDIS_URL="redis://localhost:6379/0",
            CELERY_BROKER_URL="redis://broker:6379/1",
        )
        assert s.effective_celery_broker_url == "redis://broker:6379/1"
        assert s.effective_celery_result_backend == "redis://localhost:6379/0"

    def test_get_settings_reads_environment(self, monkeypatch):
        monkeypatch.setenv("SAVED_SEARCH_RECENCY_HOURS", "12")

        assert get_settings().saved_search_recency_hours == 12
        assert get_settings() is get_settings()
