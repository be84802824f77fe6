"""Configuration management for the formation regression runner."""

import os
from pathlib import Path
from typing import Optional

import yaml
from pydantic import BaseModel, Field

DEFAULT_CONFIG_PATH = "config/regression.yaml"

DEFAULT_IGNORABLE_ERRORS = [
    "ERR_TUNNEL_CONNECTION_FAILED",
    "ERR_NAME_NOT_RESOLVED",
    "net::ERR_",
]


class RegressionConfig(BaseModel):
    """Main configuration for the regression runner."""

    # Application under test
    app_url: str = Field(default="http://localhost:8765/", description="URL of the live board")
    movements_storage_key: str = Field(default="vectair_fdms_movements_v3", description="localStorage key for movements")
    bookings_storage_key: str = Field(default="vectair_fdms_bookings_v1", description="localStorage key for bookings")
    storage_version: int = Field(default=3, description="Version written into the movements envelope")
    stubbed_scripts: list[str] = Field(
        default_factory=lambda: ["**/xlsx.full.min.js"],
        description="Script URL patterns answered with an empty stub",
    )

    # Browser settings
    browser_headless: bool = Field(default=True, description="Run browser in headless mode")
    viewport_width: int = Field(default=1280, description="Viewport width in pixels")
    viewport_height: int = Field(default=720, description="Viewport height in pixels")

    # Timeouts (milliseconds)
    navigation_timeout_ms: int = Field(default=20000, description="Initial navigation timeout")
    app_ready_timeout_ms: int = Field(default=15000, description="Wait for the live board to render")
    modal_timeout_ms: int = Field(default=5000, description="Wait for a modal input to appear")
    optional_control_timeout_ms: int = Field(default=3000, description="Timeout for controls a scenario may not reach")
    action_timeout_ms: int = Field(default=10000, description="Default Playwright action timeout")
    storage_wait_timeout_ms: int = Field(default=3000, description="Upper bound when polling storage for a change")

    # Settle delays after UI actions with no observable completion signal
    app_ready_delay_ms: int = Field(default=800, description="Delay after the live board appears")
    settle_short_ms: int = Field(default=200, description="Delay after opening menus or typing")
    settle_panel_ms: int = Field(default=400, description="Delay after expanding a strip")
    settle_save_ms: int = Field(default=600, description="Delay after saving a modal or element")

    # Error handling
    ignorable_error_substrings: list[str] = Field(
        default_factory=lambda: list(DEFAULT_IGNORABLE_ERRORS),
        description="Console/page error substrings that never fail a scenario",
    )

    # Output settings
    evidence_directory: str = Field(default="evidence", description="Directory for screenshots and results")
    log_level: str = Field(default="INFO", description="Logging level")


# Environment variable -> field; pydantic coerces the raw strings.
ENV_OVERRIDES = {
    "FDMS_APP_URL": "app_url",
    "EVIDENCE_DIR": "evidence_directory",
    "BROWSER_HEADLESS": "browser_headless",
    "LOG_LEVEL": "log_level",
    "ACTION_TIMEOUT_MS": "action_timeout_ms",
    "STORAGE_WAIT_TIMEOUT_MS": "storage_wait_timeout_ms",
}


def load_config(config_path: Optional[str] = None) -> RegressionConfig:
    """Build the run configuration from a YAML file, then environment overrides.

    A missing file is not an error: every field has a default. Values that
    fail validation raise ``pydantic.ValidationError``.
    """
    path = Path(config_path or os.getenv("REGRESSION_CONFIG", DEFAULT_CONFIG_PATH))
    data = {}
    if path.is_file():
        data = yaml.safe_load(path.read_text(encoding="utf-8")) or {}

    data.update({field: os.environ[var] for var, field in ENV_OVERRIDES.items() if var in os.environ})
    return RegressionConfig.model_validate(data)


def get_config() -> RegressionConfig:
    return load_config()
