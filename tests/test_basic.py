"""
Basic tests for RailBar core functionality.
"""

from unittest.mock import patch

import pytest
from pydantic import ValidationError

from railbar.config import RAILWAY_GRAPHQL_URL, Settings, get_settings
from railbar.exceptions import (
    RailwayGraphQLError,
    RailwayHTTPError,
    RailwayNoDataError,
    RailwayRateLimitError,
)
from railbar.models import DeploymentStatus, Environment, Service


def test_settings_creation():
    """Test that settings can be created with environment variables."""
    # Clear any cached settings first
    import railbar.config

    railbar.config._settings_instance = None

    with patch.dict(
        "os.environ",
        {
            "RAILWAY_API_TOKEN": "env-token",
            "TICKER_INTERVAL_SECONDS": "5",
            "DEPLOYMENT_BATCH_SIZE": "10",
            "LOG_LEVEL": "debug",
        },
        clear=True,
    ):
        settings = get_settings()
        assert settings.railway_api_token == "env-token"
        assert settings.railway_api_url == RAILWAY_GRAPHQL_URL
        assert settings.log_level == "DEBUG"
        assert settings.polling_config.ticker_interval_seconds == 5.0
        assert settings.polling_config.deployment_batch_size == 10
        assert settings.transport_config.max_attempts == 3

        # Cached until reset
        assert get_settings() is settings
        assert railbar.config.settings is settings

    railbar.config._settings_instance = None


@pytest.mark.parametrize(
    "overrides",
    [
        {"log_level": "LOUD"},
        {"log_format": "xml"},
        {"ticker_interval_seconds": 0},
        {"request_timeout_seconds": -1},
        {"max_attempts": 0},
        {"deployment_batch_size": 0},
    ],
)
def test_settings_validation(overrides):
    with pytest.raises(ValidationError):
        Settings(**overrides)


def test_server_config():
    settings = Settings(host="0.0.0.0", port=9000)

    assert settings.server_config.host == "0.0.0.0"
    assert settings.server_config.port == 9000


class TestDeploymentStatus:
    @pytest.mark.parametrize("value", ["QUEUED", "", None, "success"])
    def test_unrecognized_maps_to_unknown(self, value):
        assert DeploymentStatus.from_api(value) is DeploymentStatus.UNKNOWN

    def test_known_value(self):
        assert DeploymentStatus.from_api("CRASHED") is DeploymentStatus.CRASHED

    def test_classification(self):
        assert DeploymentStatus.INITIALIZING.is_active
        assert DeploymentStatus.CRASHED.is_error
        assert not DeploymentStatus.SLEEPING.is_active
        assert not DeploymentStatus.SLEEPING.is_error


def test_environment_is_production():
    assert Environment(id="e", name="PRODUCTION").is_production
    assert not Environment(id="e", name="prod").is_production


def test_service_without_deployment_is_unknown():
    assert Service(id="s", name="api").status is DeploymentStatus.UNKNOWN


def test_error_messages():
    assert str(RailwayHTTPError(401)) == "Railway API returned HTTP 401"
    assert str(RailwayGraphQLError(["a", "b"])) == "Railway API error: a, b"
    assert str(RailwayNoDataError()) == "No data returned from Railway API"
    assert str(RailwayRateLimitError()) == (
        "Railway API rate limit exceeded. Try again shortly."
    )


def test_main_app_import():
    """Test that main FastAPI app can be imported."""
    from railbar.main import app

    assert app is not None
    assert app.title == "RailBar"


def test_build_controller_uses_settings(mock_settings: Settings):
    from railbar.main import build_controller

    controller = build_controller(mock_settings)

    assert controller.is_configured
    assert controller.fetcher.batcher.batch_size == 5
    assert controller.fetcher.client.budget is controller.budget
