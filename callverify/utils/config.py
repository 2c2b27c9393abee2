"""Configuration management for call verification environment variables."""
import os
import logging
from typing import Optional, Dict, Any
from pathlib import Path
from dataclasses import dataclass, field

from dotenv import load_dotenv

logger = logging.getLogger(__name__)

DISABLED_VALUES = ("none", "off", "disabled")


@dataclass
class TwilioConfig:
    """Telephony provider credentials and endpoints."""
    account_sid: Optional[str] = None
    auth_token: Optional[str] = None
    api_base_url: str = "https://api.twilio.com"
    caller_number: Optional[str] = None
    request_timeout: float = 30.0


@dataclass
class PortalConfig:
    """Contact-center portal under test."""
    base_url: Optional[str] = None
    supervisor_username: Optional[str] = None
    supervisor_password: Optional[str] = None
    agent_email: Optional[str] = None
    agent_password: Optional[str] = None
    webrtc_password: Optional[str] = None
    stagger_url: Optional[str] = None
    timezone: str = "America/Denver"

    def build_url(self, route: str = "") -> str:
        """Join the portal base URL with a route."""
        if not self.base_url:
            raise ValueError("Portal base URL is not configured (URL / DEFAULT_URL)")
        base = self.base_url.rstrip("/")
        if not route:
            return base
        return f"{base}/{route.lstrip('/')}"


@dataclass
class PollingConfig:
    """Call status and result polling policy."""
    initial_call_wait: float = 20.0
    status_interval: float = 5.0
    status_backoff_factor: float = 1.0
    status_max_interval: float = 30.0
    status_max_attempts: int = 24
    status_timeout: Optional[float] = None
    transcription_wait: float = 30.0
    pending_retry_wait: float = 15.0


@dataclass
class ReportConfig:
    """Cradle to Grave report location policy."""
    display_timezone: str = "America/Denver"
    time_format: str = "%I:%M:%S %p"
    max_retries: int = 5
    refresh_wait: float = 15.0
    settle_wait: float = 3.0
    match_tolerance_seconds: Optional[float] = 10.0
    confirm_timeout_ms: int = 5000


@dataclass
class BrowserConfig:
    """Playwright browser settings."""
    headless: bool = True
    channel: Optional[str] = None
    slow_mo: int = 0
    action_timeout_ms: int = 30000
    navigation_timeout_ms: int = 30000
    expect_timeout_ms: int = 30000
    trace: bool = False
    trace_dir: str = "test-reports"
    fake_media: bool = True


@dataclass
class LoggingConfig:
    """Logging configuration."""
    level: str = "INFO"
    format: str = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"


@dataclass
class DevConfig:
    """Development and testing configuration."""
    debug: bool = False
    live_e2e: bool = False


@dataclass
class AppConfig:
    """Main application configuration."""
    twilio: TwilioConfig = field(default_factory=TwilioConfig)
    portal: PortalConfig = field(default_factory=PortalConfig)
    polling: PollingConfig = field(default_factory=PollingConfig)
    report: ReportConfig = field(default_factory=ReportConfig)
    browser: BrowserConfig = field(default_factory=BrowserConfig)
    logging: LoggingConfig = field(default_factory=LoggingConfig)
    dev: DevConfig = field(default_factory=DevConfig)

    def to_dict(self) -> Dict[str, Any]:
        """Convert configuration to a dictionary with secrets masked."""
        def mask(value: Optional[str]) -> Optional[str]:
            return "***" if value else value

        return {
            "twilio": {
                "account_sid": self.twilio.account_sid,
                "auth_token": mask(self.twilio.auth_token),
                "api_base_url": self.twilio.api_base_url,
                "caller_number": self.twilio.caller_number
            },
            "portal": {
                "base_url": self.portal.base_url,
                "supervisor_username": self.portal.supervisor_username,
                "supervisor_password": mask(self.portal.supervisor_password),
                "agent_email": self.portal.agent_email,
                "timezone": self.portal.timezone
            },
            "polling": {
                "initial_call_wait": self.polling.initial_call_wait,
                "status_interval": self.polling.status_interval,
                "status_max_attempts": self.polling.status_max_attempts,
                "pending_retry_wait": self.polling.pending_retry_wait
            },
            "report": {
                "display_timezone": self.report.display_timezone,
                "max_retries": self.report.max_retries,
                "refresh_wait": self.report.refresh_wait,
                "match_tolerance_seconds": self.report.match_tolerance_seconds
            },
            "browser": {
                "headless": self.browser.headless,
                "action_timeout_ms": self.browser.action_timeout_ms,
                "trace": self.browser.trace
            },
            "logging": {
                "level": self.logging.level,
                "format": self.logging.format
            },
            "dev": {
                "debug": self.dev.debug,
                "live_e2e": self.dev.live_e2e
            }
        }


class ConfigManager:
    """Configuration manager that loads settings from environment variables."""

    def __init__(self, env_file: Optional[str] = None):
        """Initialize configuration manager.

        Args:
            env_file: Path to .env file (optional)
        """
        self.env_file = env_file
        self._load_env_file()

    def _load_env_file(self):
        """Load environment variables from .env file if it exists."""
        if self.env_file and os.path.exists(self.env_file):
            self._load_dotenv(self.env_file)
            return

        possible_paths = [
            ".env",
            "../.env",
            os.path.join(Path(__file__).parent.parent.parent, ".env")
        ]
        for path in possible_paths:
            if os.path.exists(path):
                self._load_dotenv(path)
                break

    def _load_dotenv(self, filepath: str):
        """Load a .env file without overriding variables already set."""
        if load_dotenv(filepath, override=False):
            logger.info(f"Loaded environment variables from {filepath}")
        else:
            logger.warning(f"No variables loaded from .env file {filepath}")

    def _get_env(self, key: str, default: Any = None, cast_type: type = str) -> Any:
        """Get environment variable with optional type casting."""
        value = os.environ.get(key)

        if value is None or value == "":
            return default

        if cast_type == bool:
            return str(value).lower() in ('true', '1', 'yes', 'on')
        elif cast_type == int:
            try:
                return int(value)
            except (ValueError, TypeError):
                logger.warning(f"Invalid integer for {key}: {value!r}, using {default}")
                return default
        elif cast_type == float:
            try:
                return float(value)
            except (ValueError, TypeError):
                logger.warning(f"Invalid number for {key}: {value!r}, using {default}")
                return default
        else:
            return str(value)

    def _get_env_limit(self, key: str, default: Optional[float]) -> Optional[float]:
        """Get an optional numeric limit; 'none', 'off' or 'disabled' switch it off."""
        value = os.environ.get(key)
        if value is not None and value.strip().lower() in DISABLED_VALUES:
            return None
        return self._get_env(key, default, float)

    def load_config(self) -> AppConfig:
        """Load configuration from environment variables."""

        twilio = TwilioConfig(
            account_sid=self._get_env("TWILIO_ACCOUNT_SID"),
            auth_token=self._get_env("TWILIO_AUTH_TOKEN"),
            api_base_url=self._get_env("TWILIO_API_BASE_URL", "https://api.twilio.com"),
            caller_number=self._get_env("TWILIO_NUMBER"),
            request_timeout=self._get_env("TWILIO_REQUEST_TIMEOUT", 30.0, float)
        )

        portal = PortalConfig(
            base_url=self._get_env("URL") or self._get_env("DEFAULT_URL"),
            supervisor_username=self._get_env("SUPERVISOR_USERNAME"),
            supervisor_password=self._get_env("SUPERVISOR_PASSWORD"),
            agent_email=self._get_env("UCAGENT_1_EMAIL"),
            agent_password=self._get_env("UCAGENT_1_PASSWORD"),
            webrtc_password=self._get_env("WEBRTC_PASSWORD"),
            stagger_url=self._get_env("STAGGER_URL"),
            timezone=self._get_env("PORTAL_TIMEZONE", "America/Denver")
        )

        polling = PollingConfig(
            initial_call_wait=self._get_env("CALL_INITIAL_WAIT", 20.0, float),
            status_interval=self._get_env("CALL_STATUS_INTERVAL", 5.0, float),
            status_backoff_factor=self._get_env("CALL_STATUS_BACKOFF", 1.0, float),
            status_max_interval=self._get_env("CALL_STATUS_MAX_INTERVAL", 30.0, float),
            status_max_attempts=self._get_env("CALL_STATUS_MAX_ATTEMPTS", 24, int),
            status_timeout=self._get_env_limit("CALL_STATUS_TIMEOUT", None),
            transcription_wait=self._get_env("TRANSCRIPTION_WAIT", 30.0, float),
            pending_retry_wait=self._get_env("PENDING_RETRY_WAIT", 15.0, float)
        )

        report = ReportConfig(
            display_timezone=self._get_env("REPORT_TIMEZONE", portal.timezone),
            time_format=self._get_env("REPORT_TIME_FORMAT", "%I:%M:%S %p"),
            max_retries=self._get_env("REPORT_MAX_RETRIES", 5, int),
            refresh_wait=self._get_env("REPORT_REFRESH_WAIT", 15.0, float),
            settle_wait=self._get_env("REPORT_SETTLE_WAIT", 3.0, float),
            match_tolerance_seconds=self._get_env_limit("REPORT_MATCH_TOLERANCE", 10.0),
            confirm_timeout_ms=self._get_env("REPORT_CONFIRM_TIMEOUT_MS", 5000, int)
        )

        browser = BrowserConfig(
            headless=self._get_env("HEADLESS", True, bool),
            channel=self._get_env("BROWSER_CHANNEL"),
            slow_mo=self._get_env("BROWSER_SLOW_MO", 0, int),
            action_timeout_ms=self._get_env("ACTION_TIMEOUT_MS", 30000, int),
            navigation_timeout_ms=self._get_env("NAVIGATION_TIMEOUT_MS", 30000, int),
            expect_timeout_ms=self._get_env("EXPECT_TIMEOUT_MS", 30000, int),
            trace=self._get_env("BROWSER_TRACE", False, bool),
            trace_dir=self._get_env("TRACE_DIR", "test-reports"),
            fake_media=self._get_env("FAKE_MEDIA", True, bool)
        )

        logging_config = LoggingConfig(
            level=self._get_env("LOG_LEVEL", "INFO"),
            format=self._get_env("LOG_FORMAT", "%(asctime)s - %(name)s - %(levelname)s - %(message)s")
        )

        dev = DevConfig(
            debug=self._get_env("DEBUG", False, bool),
            live_e2e=self._get_env("LIVE_E2E", False, bool)
        )

        return AppConfig(
            twilio=twilio,
            portal=portal,
            polling=polling,
            report=report,
            browser=browser,
            logging=logging_config,
            dev=dev
        )


# Global configuration instance
_config_manager = None
_app_config = None


def get_config_manager(env_file: Optional[str] = None) -> ConfigManager:
    """Get global configuration manager instance."""
    global _config_manager
    if _config_manager is None:
        _config_manager = ConfigManager(env_file)
    return _config_manager


def get_config(env_file: Optional[str] = None) -> AppConfig:
    """Get global application configuration."""
    global _app_config
    if _app_config is None:
        config_manager = get_config_manager(env_file)
        _app_config = config_manager.load_config()
    return _app_config


def reload_config(env_file: Optional[str] = None) -> AppConfig:
    """Reload configuration from environment."""
    global _config_manager, _app_config
    _config_manager = ConfigManager(env_file)
    _app_config = _config_manager.load_config()
    return _app_config
