"""Harness configuration: selector map, timeouts, PINs and storage key.

The defaults describe the PlusMinus page as it ships today. A YAML file
(``config/smoke_config.yaml`` by default) may override any of them; unknown
keys are rejected so a typo never silently falls back to a default.
"""

from __future__ import annotations

import logging
import os
from pathlib import Path
from typing import Optional

import yaml
from pydantic import BaseModel, ConfigDict, Field, ValidationError

from plusminus_smoke.errors import ConfigError

logger = logging.getLogger(__name__)

PROJECT_ROOT = Path(__file__).resolve().parents[1]
CONFIG_PATH = PROJECT_ROOT / "config" / "smoke_config.yaml"
CONFIG_ENV_VAR = "PLUSMINUS_SMOKE_CONFIG"
HEADED_ENV_VAR = "PLUSMINUS_SMOKE_HEADED"


class Selectors(BaseModel):
    """DOM contract of the page under test."""

    model_config = ConfigDict(extra="forbid")

    problem_container: str = ".big-eq"
    skill_label: str = "#uiSkillName"
    unit_marker: str = ".viz-area .d-pt"
    answer_box_id: str = "ansBox"
    equals_symbol: str = "="
    required: list[str] = ["#uiProblem", "#uiKbd", "#ansBox"]
    # ``{value}`` is replaced by the digit or comparison symbol to press.
    keypad_button: str = 'button:has-text("{value}")'
    confirm_button: str = 'button:has-text("OK")'
    feedback: str = "#uiFeedback"
    next_button: str = "#btnNext"
    dashboard_button: str = 'button:has-text("Dashboard")'
    pin_dialog: str = "#pinDlg"
    pin_input: str = "#pinInput"
    pin_confirm: str = "#pinOk"
    pin_message: str = "#pinMsg"
    parent_dialog: str = "#parentDlg"
    parent_close: str = '#parentDlg button:has-text("Închide")'

    def keypad(self, value: str) -> str:
        return self.keypad_button.replace("{value}", value)


class Timeouts(BaseModel):
    """Per-wait timeouts, in milliseconds."""

    model_config = ConfigDict(extra="forbid")

    navigation: int = Field(20000, gt=0)
    required_element: int = Field(10000, gt=0)
    click: int = Field(5000, gt=0)
    feedback_visible: int = Field(5000, gt=0)
    feedback_hidden: int = Field(5000, gt=0)
    advance: int = Field(15000, gt=0)
    advance_poll: int = Field(100, gt=0)
    pin_dialog: int = Field(3000, gt=0)
    pin_message: int = Field(2000, gt=0)
    parent_dialog: int = Field(10000, gt=0)


class SmokeConfig(BaseModel):
    model_config = ConfigDict(extra="forbid")

    module_candidates: list[str] = ["plusminus/index.html", "PlusMinus/index.html"]
    storage_key: str = "plusminus_state_v1"
    wrong_pin: str = "0000"
    correct_pin: str = "2580"
    rounds: int = Field(3, ge=1)
    max_advance_attempts: int = Field(5, ge=0)
    headless: bool = True
    server_ready_attempts: int = Field(30, ge=1)
    server_ready_interval: float = Field(0.15, gt=0)
    inline_js_files: list[str] = ["index.html", "plusminus/index.html"]
    selectors: Selectors = Field(default_factory=Selectors)
    timeouts: Timeouts = Field(default_factory=Timeouts)


def _resolve_config_path(path: str | Path | None) -> Optional[Path]:
    """Pick the config file: explicit path, then env var, then the repo default."""
    if path is not None:
        return Path(path)
    env_path = os.environ.get(CONFIG_ENV_VAR)
    if env_path:
        return Path(env_path)
    if CONFIG_PATH.exists():
        return CONFIG_PATH
    return None


def load_config(path: str | Path | None = None) -> SmokeConfig:
    """Load and validate the harness configuration.

    An explicitly requested file (argument or env var) must exist. Without
    one, the bundled ``config/smoke_config.yaml`` is used when present and the
    built-in defaults otherwise.
    """
    config_path = _resolve_config_path(path)
    raw: dict = {}
    if config_path is not None:
        try:
            with open(config_path, encoding="utf-8") as f:
                raw = yaml.safe_load(f) or {}
        except OSError as e:
            raise ConfigError(f"Cannot read config {config_path}: {e}") from e
        except yaml.YAMLError as e:
            raise ConfigError(f"Invalid YAML in {config_path}: {e}") from e
        if not isinstance(raw, dict):
            raise ConfigError(f"Config {config_path} must be a mapping")
        logger.debug("Loaded config from %s", config_path)

    try:
        config = SmokeConfig.model_validate(raw)
    except ValidationError as e:
        raise ConfigError(f"Invalid config {config_path or '<defaults>'}:\n{e}") from e

    if os.environ.get(HEADED_ENV_VAR, "").strip().lower() in ("1", "true", "yes"):
        config = config.model_copy(update={"headless": False})
    return config
