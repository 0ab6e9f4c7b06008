"""
Configuration loader that interprets high-level profiles into full config.
"""
import copy
import logging
import tomllib
from pathlib import Path
from typing import Any, Dict, Optional

from .constants import (
    ANOMALY_DEFAULTS,
    COMPLIANCE_DEFAULTS,
    DEFAULT_ROUNDING_STRATEGY,
    EDIT_WINDOW,
    ENTRY_LIMITS,
    REFERENCE_TIMEZONE,
    ROUNDING_STRATEGIES,
    STREAK_MODES,
)
from .feature_manager import FeatureManager

logger = logging.getLogger(__name__)


class ConfigLoader:
    """Loads and interprets configuration with profile support."""

    # Anomaly sensitivity per profile
    ANOMALY_SENSITIVITY_MAP = {
        "strict": {"max_daily_change_kg": 1.0, "min_elapsed_days": 2},
        "moderate": {"max_daily_change_kg": ANOMALY_DEFAULTS['MAX_DAILY_CHANGE_KG'],
                     "min_elapsed_days": ANOMALY_DEFAULTS['MIN_ELAPSED_DAYS']},
        "lenient": {"max_daily_change_kg": 2.5, "min_elapsed_days": 2},
    }

    STREAK_POLICY_MAP = {
        "in_progress": {"streak_mode": "current_week"},
        "completed_only": {"streak_mode": "last_completed_week"},
    }

    DEFAULT_PROFILES = {
        "balanced": {"anomaly_sensitivity": "moderate", "streak_policy": "in_progress"},
        "strict": {"anomaly_sensitivity": "strict", "streak_policy": "in_progress"},
        "lenient": {"anomaly_sensitivity": "lenient", "streak_policy": "completed_only"},
    }

    @classmethod
    def load(cls, config_path: Optional[str] = "config.toml") -> Dict[str, Any]:
        """Load and interpret configuration file."""
        if config_path is None or not Path(config_path).exists():
            logger.warning(f"Config file {config_path} not found, using defaults")
            return cls.from_dict({})

        with open(config_path, "rb") as f:
            raw_config = tomllib.load(f)

        return cls.from_dict(raw_config)

    @classmethod
    def from_dict(cls, raw_config: Dict[str, Any]) -> Dict[str, Any]:
        """Interpret an already parsed configuration mapping."""
        profile_name = raw_config.get("profile", "balanced")

        profiles = dict(cls.DEFAULT_PROFILES)
        profiles.update(raw_config.get("profiles", {}))
        if profile_name not in profiles:
            logger.warning(f"Unknown profile '{profile_name}', using balanced")
            profile_name = "balanced"

        config = cls._build_base_config(raw_config)
        config["profile"] = profile_name

        cls._apply_profile(config, profiles[profile_name])
        cls._apply_overrides(config, raw_config)
        cls._validate(config)

        config["feature_manager"] = FeatureManager(raw_config)

        return config

    @classmethod
    def _build_base_config(cls, raw_config: Dict) -> Dict[str, Any]:
        """Build the base configuration structure."""
        return {
            "data": copy.deepcopy(raw_config.get("data", {})),
            "clock": {"timezone": REFERENCE_TIMEZONE},
            "anomaly": {
                "max_daily_change_kg": ANOMALY_DEFAULTS['MAX_DAILY_CHANGE_KG'],
                "min_elapsed_days": ANOMALY_DEFAULTS['MIN_ELAPSED_DAYS'],
            },
            "edit_window": {"grace_days": EDIT_WINDOW['GRACE_DAYS']},
            "entry": {
                "backfill_limit_days": ENTRY_LIMITS['BACKFILL_LIMIT_DAYS'],
                "max_note_length": ENTRY_LIMITS['MAX_NOTE_LENGTH'],
            },
            "compliance": dict(COMPLIANCE_DEFAULTS),
            "rounding": {"strategy": DEFAULT_ROUNDING_STRATEGY},
            "logging": raw_config.get("logging", {"level": "INFO", "metrics": True}),
        }

    @classmethod
    def _apply_profile(cls, config: Dict, profile: Dict):
        """Apply profile settings to configuration."""
        sensitivity = profile.get("anomaly_sensitivity", "moderate")
        if sensitivity not in cls.ANOMALY_SENSITIVITY_MAP:
            logger.warning(f"Unknown anomaly_sensitivity '{sensitivity}', using moderate")
            sensitivity = "moderate"
        config["anomaly"].update(cls.ANOMALY_SENSITIVITY_MAP[sensitivity])

        streak_policy = profile.get("streak_policy", "in_progress")
        if streak_policy not in cls.STREAK_POLICY_MAP:
            logger.warning(f"Unknown streak_policy '{streak_policy}', using in_progress")
            streak_policy = "in_progress"
        config["compliance"].update(cls.STREAK_POLICY_MAP[streak_policy])

    @classmethod
    def _apply_overrides(cls, config: Dict, raw_config: Dict):
        """Explicit sections win over profile settings."""
        for section in ("clock", "anomaly", "edit_window", "entry", "compliance", "rounding"):
            if section in raw_config:
                config[section].update(raw_config[section])

        # window_weeks = 0 in TOML means the whole history
        if config["compliance"].get("window_weeks") == 0:
            config["compliance"]["window_weeks"] = None

    @classmethod
    def _validate(cls, config: Dict):
        strategy = config["rounding"]["strategy"]
        if strategy not in ROUNDING_STRATEGIES:
            raise ValueError(f"rounding.strategy must be one of {ROUNDING_STRATEGIES}, got '{strategy}'")

        mode = config["compliance"]["streak_mode"]
        if mode not in STREAK_MODES:
            raise ValueError(f"compliance.streak_mode must be one of {STREAK_MODES}, got '{mode}'")

        if config["anomaly"]["max_daily_change_kg"] <= 0:
            raise ValueError("anomaly.max_daily_change_kg must be positive")
        if config["anomaly"]["min_elapsed_days"] < 1:
            raise ValueError("anomaly.min_elapsed_days must be at least 1")
        if config["edit_window"]["grace_days"] < 0:
            raise ValueError("edit_window.grace_days cannot be negative")


def load_config(config_path: Optional[str] = "config.toml") -> Dict[str, Any]:
    """Load configuration with profile interpretation."""
    return ConfigLoader.load(config_path)


def default_config() -> Dict[str, Any]:
    """Configuration with every default applied."""
    return ConfigLoader.from_dict({})
