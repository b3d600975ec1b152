import json
import os
from dataclasses import dataclass
from decimal import Decimal, InvalidOperation
from pathlib import Path
from typing import Any, Dict, Optional

# Package defaults (bundled with code)
PACKAGE_CONFIG_DIR = Path(__file__).parent / "defaults"

# User configs (in project root, gitignored)
PROJECT_ROOT = Path(__file__).parents[3]
USER_CONFIG_DIR = PROJECT_ROOT / "config"


def user_config_dir() -> Path:
    """
    User config directory.

    Resolution order:
    1. PENNY_CONFIG_DIR
    2. config/ in the source checkout, when running from one
    3. config/ in the current working directory (installed package)
    """
    override = os.getenv("PENNY_CONFIG_DIR")
    if override:
        return Path(override)
    if (PROJECT_ROOT / "pyproject.toml").exists():
        return USER_CONFIG_DIR
    return Path.cwd() / "config"


class ConfigLoader:
    """Load configuration with user overrides"""

    @staticmethod
    def load_config(config_name: str) -> Dict[str, Any]:
        """
        Load config with fallback: user config -> default config

        Args:
            config_name: Name of the config file (e.g., 'rules.json')

        Raises:
            FileNotFoundError: If no config file was found

        Returns:
            Parsed JSON configuration
        """
        user_config_path = user_config_dir() / config_name
        if user_config_path.exists():
            with open(user_config_path, encoding="utf-8") as f:
                return json.load(f)

        default_config_path = PACKAGE_CONFIG_DIR / config_name
        if default_config_path.exists():
            with open(default_config_path, encoding="utf-8") as f:
                return json.load(f)

        raise FileNotFoundError(
            f"Config file '{config_name}' not found in:\n"
            f" - {user_config_path}\n"
            f" - {default_config_path}"
        )

    @staticmethod
    def load_default_config(config_name: str) -> Dict[str, Any]:
        """Load a bundled default config, ignoring user overrides"""
        with open(PACKAGE_CONFIG_DIR / config_name, encoding="utf-8") as f:
            return json.load(f)

    @staticmethod
    def load_rules_config() -> Dict[str, Any]:
        """Load the built-in categorization rule table"""
        return ConfigLoader.load_default_config('rules.json')

    @staticmethod
    def load_user_rules_config() -> Dict[str, Any]:
        """Load user categorization rules, empty if the user has none"""
        try:
            return ConfigLoader.load_config('categorization_rules.json')
        except FileNotFoundError:
            return {"rules": []}

    @staticmethod
    def load_anomaly_config() -> Dict[str, Any]:
        """Load anomaly detector thresholds"""
        return ConfigLoader.load_config('anomaly.json')


@dataclass(frozen=True)
class AnomalySettings:
    """
    Thresholds for the anomaly detector.

    Attributes:
        min_sample_size: Same-category history needed before the statistical test applies
        sensitivity: k in `amount > mean + k * stdev`
        bootstrap_multiplier: Multiple of the overall median used while history is thin
        bootstrap_ceiling: Absolute ceiling used when there is no history at all
    """
    min_sample_size: int = 3
    sensitivity: Decimal = Decimal("2.5")
    bootstrap_multiplier: Decimal = Decimal("10")
    bootstrap_ceiling: Decimal = Decimal("50000")

    def __post_init__(self):
        if self.min_sample_size < 2:
            # a sample standard deviation needs at least two points
            raise ValueError(f"min_sample_size must be >= 2, got {self.min_sample_size}")
        for name in ("sensitivity", "bootstrap_multiplier", "bootstrap_ceiling"):
            if getattr(self, name) <= 0:
                raise ValueError(f"{name} must be positive")

    @classmethod
    def from_config(cls, config: Optional[Dict[str, Any]] = None) -> "AnomalySettings":
        """
        Build settings from a config dict.

        Args:
            config: Optional config dict. If None, loads anomaly.json via ConfigLoader.
                Missing keys keep their defaults.
        """
        if config is None:
            try:
                config = ConfigLoader.load_anomaly_config()
            except FileNotFoundError:
                config = {}

        values: Dict[str, Any] = {}
        if "min_sample_size" in config:
            values["min_sample_size"] = int(config["min_sample_size"])
        for key in ("sensitivity", "bootstrap_multiplier", "bootstrap_ceiling"):
            if key in config:
                try:
                    values[key] = Decimal(str(config[key]))
                except InvalidOperation:
                    raise ValueError(f"Invalid value for '{key}': {config[key]!r}")

        return cls(**values)
