"""

Configuration loader for the job spider
Reads and validates settings.yaml, applies environment overrides
"""

import logging
import os
from datetime import datetime
from pathlib import Path
from typing import Any, Dict, Optional

import yaml
from dotenv import load_dotenv
from pydantic import ValidationError

from .fixtures import DEFAULT_FIXTURE_DIR, FixtureStore
from .models import DEFAULT_BASE_URL, DEFAULT_USER_AGENT, SpiderConfig
from .rules import ExtractionRules

logger = logging.getLogger(__name__)

TRUTHY = {"1", "true", "yes", "on"}


class ConfigValidationError(ValueError):
    """Raised when configuration fails invariant validation."""
    pass


def _validate_non_negative(value: Any, field: str) -> None:
    """Validate that a numeric value is non-negative."""
    if value is not None and float(value) < 0:
        raise ConfigValidationError(
            f"Invalid config: '{field}' must be non-negative, got {value}"
        )


def _validate_positive(value: Any, field: str) -> None:
    """Validate that a numeric value is positive (> 0)."""
    if value is not None and float(value) <= 0:
        raise ConfigValidationError(
            f"Invalid config: '{field}' must be positive (> 0), got {value}"
        )


def _env_flag(name: str) -> Optional[bool]:
    value = os.getenv(name)
    if value is None or not value.strip():
        return None
    return value.strip().lower() in TRUTHY


class ConfigLoader:
    """Loads and validates configuration from YAML file"""

    def __init__(self, config_path: str = "config/settings.yaml", env_file: Optional[str] = ".env"):
        self.config_path = Path(config_path)
        self.config: Dict[str, Any] = {}
        if env_file:
            load_dotenv(dotenv_path=env_file, override=False)
        self._load()

    def _load(self) -> None:
        """Load config from YAML file"""
        if not self.config_path.exists():
            raise FileNotFoundError(f"Config file not found: {self.config_path}")

        try:
            with open(self.config_path, 'r') as f:
                self.config = yaml.safe_load(f) or {}
            logger.info(f"✓ Config loaded from {self.config_path}")
        except yaml.YAMLError as e:
            logger.error(f"Error parsing config file: {e}")
            raise

        if not isinstance(self.config, dict):
            raise ConfigValidationError(f"Invalid config: {self.config_path} must contain a mapping")
        self._validate_invariants()

    def _validate_invariants(self) -> None:
        """Validate configuration invariants. Raises ConfigValidationError on failure."""
        _validate_positive(self.get('spider.max_concurrency'), 'spider.max_concurrency')
        _validate_non_negative(self.get('spider.retry_attempts'), 'spider.retry_attempts')
        _validate_non_negative(self.get('spider.retry_delay'), 'spider.retry_delay')
        _validate_positive(self.get('spider.page_size'), 'spider.page_size')
        _validate_positive(self.get('spider.max_pages'), 'spider.max_pages')

        # Browser timeouts (must be positive)
        _validate_positive(self.get('browser.launch_timeout'), 'browser.launch_timeout')
        _validate_positive(self.get('browser.navigation_timeout'), 'browser.navigation_timeout')
        _validate_positive(self.get('browser.page_timeout'), 'browser.page_timeout')
        _validate_positive(self.get('browser.card_wait_timeout'), 'browser.card_wait_timeout')
        _validate_positive(self.get('browser.control_timeout'), 'browser.control_timeout')

        # Politeness delays
        _validate_non_negative(self.get('rate_limit.delay'), 'rate_limit.delay')
        _validate_non_negative(self.get('rate_limit.jitter'), 'rate_limit.jitter')
        _validate_non_negative(self.get('rate_limit.settle_delay'), 'rate_limit.settle_delay')

        selectors = self.get('selectors', {}) or {}
        if not isinstance(selectors, dict):
            raise ConfigValidationError("Invalid config: 'selectors' must be a mapping")
        try:
            ExtractionRules.model_validate(selectors)
        except ValidationError as exc:
            raise ConfigValidationError(f"Invalid config: 'selectors': {exc}") from exc

        logger.debug("✓ Config invariants validated")

    def get(self, key: str, default: Any = None) -> Any:
        """Get config value by dot notation (e.g., 'spider.base_url')"""
        keys = key.split('.')
        value = self.config

        for k in keys:
            if isinstance(value, dict):
                value = value.get(k, default)
            else:
                return default

        return value

    # === Spider Config ===

    def get_base_url(self) -> str:
        """Get listing search URL (NSW_JOBS_URL wins over settings)"""
        return (os.getenv("NSW_JOBS_URL") or "").strip() or self.get('spider.base_url', DEFAULT_BASE_URL)

    def get_user_agent(self) -> str:
        return self.get('spider.user_agent', DEFAULT_USER_AGENT)

    def get_page_size(self) -> Optional[int]:
        value = self.get('spider.page_size')
        return int(value) if value is not None else None

    def get_max_records(self) -> Optional[int]:
        """Get default listing cap (0 or missing means no cap)"""
        value = self.get('spider.max_records')
        return int(value) if value else None

    # === Browser Config ===

    def is_headless(self) -> bool:
        """Check if browser should run in headless mode"""
        return bool(self.get('browser.headless', True))

    def use_stealth(self) -> bool:
        """Check if Playwright stealth should be enabled"""
        return bool(self.get('browser.use_stealth', False))

    def get_navigation_timeout(self) -> int:
        """Get navigation timeout in milliseconds"""
        return int(float(self.get('browser.navigation_timeout', 60)) * 1000)

    def get_page_timeout(self) -> int:
        """Get page operation timeout in milliseconds"""
        return int(float(self.get('browser.page_timeout', 30)) * 1000)

    def get_launch_timeout(self) -> int:
        """Get browser launch timeout in milliseconds"""
        return int(float(self.get('browser.launch_timeout', 60)) * 1000)

    def get_card_wait_timeout(self) -> int:
        """Get result card wait timeout in milliseconds"""
        return int(float(self.get('browser.card_wait_timeout', 10)) * 1000)

    def get_control_timeout(self) -> int:
        """Get page size / sort control wait timeout in milliseconds"""
        return int(float(self.get('browser.control_timeout', 5)) * 1000)

    # === Fixture Config ===

    def get_fixture_dir(self) -> Path:
        return Path(self.get('fixtures.dir', str(DEFAULT_FIXTURE_DIR)))

    def is_fixture_save_enabled(self) -> bool:
        """SAVE_TEST_DATA overrides fixtures.save"""
        env = _env_flag("SAVE_TEST_DATA")
        return env if env is not None else bool(self.get('fixtures.save', False))

    def is_fixture_replay_enabled(self) -> bool:
        """REPLAY_TEST_DATA overrides fixtures.replay"""
        env = _env_flag("REPLAY_TEST_DATA")
        return env if env is not None else bool(self.get('fixtures.replay', False))

    # === Output Config ===

    def get_output_path(self) -> Path:
        """Get output file path with timestamp"""
        template = self.get('output.json_file', 'output/jobs_{timestamp}.json')
        timestamp = datetime.now().strftime('%Y%m%d_%H%M%S')
        return Path(template.replace('{timestamp}', timestamp))

    def get_metrics_template(self) -> str:
        return self.get('output.metrics_file', 'output/run_metrics_{timestamp}.json')

    # === Logging Config ===

    def get_log_level(self) -> str:
        """Get logging level"""
        return self.get('logging.level', 'INFO')

    def get_log_file(self) -> Path:
        """Get log file path with timestamp"""
        template = self.get('logging.log_file', 'logs/spider.log')
        timestamp = datetime.now().strftime('%Y%m%d_%H%M%S')
        return Path(template.replace('{timestamp}', timestamp))

    # === Builders ===

    def build_spider_config(self) -> SpiderConfig:
        return SpiderConfig(
            base_url=self.get_base_url(),
            max_concurrency=int(self.get('spider.max_concurrency', 2)),
            retry_attempts=int(self.get('spider.retry_attempts', 3)),
            retry_delay=float(self.get('spider.retry_delay', 1.0)),
            user_agent=self.get_user_agent(),
            page_size=self.get_page_size(),
            max_pages=self.get('spider.max_pages'),
            headless=self.is_headless(),
            use_stealth=self.use_stealth(),
            launch_timeout_ms=self.get_launch_timeout(),
            navigation_timeout_ms=self.get_navigation_timeout(),
            page_timeout_ms=self.get_page_timeout(),
            card_wait_timeout_ms=self.get_card_wait_timeout(),
            control_timeout_ms=self.get_control_timeout(),
            rate_limit_delay=float(self.get('rate_limit.delay', 2.0)),
            rate_limit_jitter=float(self.get('rate_limit.jitter', 1.0)),
            settle_delay=float(self.get('rate_limit.settle_delay', 2.0)),
        )

    def build_extraction_rules(self) -> ExtractionRules:
        return ExtractionRules.model_validate(self.get('selectors', {}) or {})

    def build_fixture_store(self) -> Optional[FixtureStore]:
        """Fixture store when replay or capture is switched on, else None"""
        replay = self.is_fixture_replay_enabled()
        save = self.is_fixture_save_enabled()
        if not (replay or save):
            return None
        return FixtureStore(self.get_fixture_dir(), replay=replay, save=save)

    def __repr__(self) -> str:
        return f"<Config: base_url={self.get_base_url()}>"


# Convenience function
def load_config(config_path: str = "config/settings.yaml") -> ConfigLoader:
    """Load configuration from file"""
    return ConfigLoader(config_path)
