import json
import logging
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Optional

from hn_feed.constants import (
    ADVANCE_THROTTLE_MS,
    ALGOLIA_API_BASE,
    DEFAULT_BATCH_SIZE,
    HN_API_BASE,
    LIVE_UPDATE_INTERVAL_MS,
    SCROLL_THROTTLE_MS,
    SEARCH_DEBOUNCE_MS,
)
from hn_feed.models import FeedType

logger = logging.getLogger(__name__)

CONFIG_DIR = Path.home() / ".config" / "hn_feed"
CONFIG_FILE = CONFIG_DIR / "config.json"


def load_config() -> dict:
    if not CONFIG_FILE.exists():
        return {}
    try:
        with open(CONFIG_FILE, "r") as f:
            data = json.load(f)
    except Exception:
        return {}
    return data if isinstance(data, dict) else {}


def save_config(key: str, value: Any):
    CONFIG_DIR.mkdir(parents=True, exist_ok=True)
    config = load_config()
    config[key] = value
    with open(CONFIG_FILE, "w") as f:
        json.dump(config, f, indent=2)


@dataclass
class FeedSettings:
    """Tunables for a feed session. Timings are in milliseconds."""

    batch_size: int = DEFAULT_BATCH_SIZE
    advance_throttle_ms: int = ADVANCE_THROTTLE_MS
    scroll_throttle_ms: int = SCROLL_THROTTLE_MS
    live_update_interval_ms: int = LIVE_UPDATE_INTERVAL_MS
    search_debounce_ms: int = SEARCH_DEBOUNCE_MS
    retain_comment_children: bool = False
    default_feed: FeedType = FeedType.STORIES
    api_base: str = HN_API_BASE
    search_base: str = ALGOLIA_API_BASE

    @property
    def advance_window(self) -> float:
        return self.advance_throttle_ms / 1000

    @property
    def scroll_window(self) -> float:
        return self.scroll_throttle_ms / 1000

    @property
    def live_update_interval(self) -> float:
        return self.live_update_interval_ms / 1000

    @property
    def search_debounce(self) -> float:
        return self.search_debounce_ms / 1000


_INT_KEYS = (
    "batch_size",
    "advance_throttle_ms",
    "scroll_throttle_ms",
    "live_update_interval_ms",
    "search_debounce_ms",
)


def get_settings(config: Optional[dict] = None) -> FeedSettings:
    """Settings from the config file (or the given dict) over the defaults."""
    if config is None:
        config = load_config()
    settings = FeedSettings()

    for key in _INT_KEYS:
        if key not in config:
            continue
        value = config[key]
        if isinstance(value, bool) or not isinstance(value, int) or value < 1:
            logger.warning(f"Ignoring invalid config value {key}={value!r}")
            continue
        setattr(settings, key, value)

    if "retain_comment_children" in config:
        value = config["retain_comment_children"]
        if isinstance(value, bool):
            settings.retain_comment_children = value
        else:
            logger.warning(f"Ignoring invalid config value retain_comment_children={value!r}")

    if "default_feed" in config:
        try:
            settings.default_feed = FeedType(config["default_feed"])
        except ValueError:
            logger.warning(f"Ignoring unknown feed type {config['default_feed']!r}")

    for key in ("api_base", "search_base"):
        value = config.get(key)
        if isinstance(value, str) and value:
            setattr(settings, key, value)

    return settings
