"""
Portal extraction configuration models.
"""

from __future__ import annotations

from dataclasses import dataclass, field

STRATEGY_AUTO = "auto"
STRATEGY_FETCH = "fetch"
STRATEGY_BROWSER = "browser"
ALLOWED_STRATEGIES = frozenset({STRATEGY_AUTO, STRATEGY_FETCH, STRATEGY_BROWSER})


@dataclass(frozen=True)
class PortalConfig:
    """
    One dealer portal target configuration.
    """

    name: str
    adapter_type: str
    base_url: str
    login_url: str
    entry_url: str
    endpoints: dict[str, str] = field(default_factory=dict)
    selectors: dict[str, list[str]] = field(default_factory=dict)
    username_env: str | None = None
    password_env: str | None = None
    cookies_env: str | None = None
    strategy: str = STRATEGY_AUTO
    verification_policy: str | None = None
    discovery_term: str | None = None
    deny_list: list[str] = field(default_factory=list)
    enabled: bool = True
    user_agent: str | None = None
    item_delay_seconds: float | None = None
    headers: dict[str, str] = field(default_factory=dict)
    schedule: str | None = None
    inventory_schedule: str | None = None
    warehouse: str | None = None
    vendor_code: str | None = None
    adapter_class: str | None = None


@dataclass(frozen=True)
class PortalScrapingSettings:
    """
    Runtime settings for portal extraction jobs.
    """

    config_path: str
    default_user_agent: str
    headless: bool = True
    navigation_timeout_seconds: float = 30.0
    request_timeout_seconds: float = 30.0
    max_retries: int = 2
    backoff_initial_seconds: float = 0.5
    backoff_multiplier: float = 2.0
    max_redirects: int = 5
    item_delay_seconds: float = 1.0
    consecutive_failure_threshold: int = 10
    max_logged_errors: int = 30
    checkpoint_interval: int = 25
    probe_sample_size: int = 3
    login_settle_seconds: float = 3.0
    inventory_freshness_hours: float = 24.0
    uploads_path: str = "uploads"

    @property
    def navigation_timeout_ms(self) -> float:
        return self.navigation_timeout_seconds * 1000.0
