"""
Settings for the ingestion and matching components.

Each component receives its settings object at construction. Defaults match
a standard 6x4 phone home screen; every value can be overridden by callers,
and a few common ones through environment variables (see load_settings).
"""

import logging
import os
from typing import Dict, FrozenSet, Optional, Tuple

from pydantic import BaseModel, ConfigDict, Field

logger = logging.getLogger(__name__)


DAY_TERMS = frozenset(
    {
        "sunday", "monday", "tuesday", "wednesday", "thursday", "friday", "saturday",
        "sun", "mon", "tue", "wed", "thu", "fri", "sat",
    }
)

DEFAULT_ALIASES: Dict[str, str] = {
    "google maps": "maps",
    "apple maps": "maps",
    "g maps": "maps",
    "instagram app": "instagram",
    "you tube": "youtube",
    "i message": "messages",
    "message": "messages",
    "mail app": "mail",
    "calendar app": "calendar",
    "photo": "photos",
}

DEFAULT_KNOWN_APPS: Tuple[str, ...] = (
    "App Store", "Books", "Calendar", "Camera", "Clock", "Contacts", "FaceTime", "Files",
    "Find My", "Fitness", "Freeform", "Health", "Home", "Journal", "Mail", "Maps", "Measure",
    "Messages", "Music", "News", "Notes", "Phone", "Photos", "Podcasts", "Reminders",
    "Safari", "Settings", "Shortcuts", "Stocks", "Translate", "TV", "Voice Memos", "Wallet",
    "Weather", "WhatsApp", "X", "YouTube", "Instagram", "TikTok", "Reddit", "Discord",
    "Spotify", "Gmail", "Slack", "Notion", "Google", "Google Drive", "Google Meet", "Zoom",
)


class _Settings(BaseModel):
    model_config = ConfigDict(frozen=True)


class NormalizerSettings(_Settings):
    """Label cleaning rules for plain OCR candidates."""

    stop_terms: FrozenSet[str] = frozenset(
        {
            "search", "edit", "done", "cancel", "settings", "screen time",
            "app library", "today", "yesterday", "battery",
        }
    )
    min_length: int = 2
    max_length: int = 24
    max_words: int = 4
    allowed_punctuation: str = " ._+-&'"


class GridMapperSettings(_Settings):
    """Grid geometry and label filters for the home-screen mapper.

    Vertical positions are fractions of screen height measured from the top.
    """

    rows: int = 6
    columns: int = 4
    app_grid_top_y: float = 0.15
    app_grid_bottom_y: float = 0.80
    dock_top_y: float = 0.84
    dock_bottom_y: float = 0.98
    grid_top_tolerance: float = 0.02
    header_tolerance: float = 0.05
    ignored_exact_terms: FrozenSet[str] = DAY_TERMS | frozenset(
        {
            "today", "tomorrow", "yesterday", "no events today", "no events",
            "search", "edit", "done", "cancel",
        }
    )
    ignored_substrings: Tuple[str, ...] = (
        "no events", "battery", "calendar widget", "screen time",
    )
    widget_vocabulary: FrozenSet[str] = DAY_TERMS | frozenset(
        {
            "today", "tomorrow", "events", "calendar", "weather", "sunny",
            "cloudy", "rain", "showers", "clear", "high", "low", "forecast",
            "january", "february", "march", "april", "may", "june", "july",
            "august", "september", "october", "november", "december",
        }
    )


class MatcherSettings(_Settings):
    """Vocabulary and thresholds for fuzzy app-name matching."""

    aliases: Dict[str, str] = Field(default_factory=lambda: dict(DEFAULT_ALIASES))
    known_apps: Tuple[str, ...] = DEFAULT_KNOWN_APPS
    min_score: float = 0.74
    known_app_min_score: float = 0.87
    usage_match_min_score: float = 0.72


class UsageParserSettings(_Settings):
    """Row grouping and name rules for usage-summary screenshots."""

    stop_terms: FrozenSet[str] = frozenset(
        {
            "daily average", "most used", "show categories", "show apps",
            "see all activity", "notifications", "pickups", "last 7 days",
            "today", "week",
        }
    )
    row_tolerance: float = 0.025
    min_name_length: int = 2
    max_name_length: int = 32


class Settings(_Settings):
    """All component settings in one place."""

    normalizer: NormalizerSettings = Field(default_factory=NormalizerSettings)
    grid: GridMapperSettings = Field(default_factory=GridMapperSettings)
    matcher: MatcherSettings = Field(default_factory=MatcherSettings)
    usage: UsageParserSettings = Field(default_factory=UsageParserSettings)


def _env_number(name: str, cast):
    raw = os.getenv(name)
    if raw is None or raw.strip() == "":
        return None
    try:
        return cast(raw)
    except ValueError:
        logger.warning(f"Ignoring {name}={raw!r}: not a valid {cast.__name__}")
        return None


def load_settings(base: Optional[Settings] = None) -> Settings:
    """
    Build settings, applying environment overrides on top of base.

    Reads from environment:
    - HSO_GRID_ROWS / HSO_GRID_COLUMNS: home-screen grid size
    - HSO_MATCH_MIN_SCORE: generic fuzzy-match threshold
    - HSO_KNOWN_APP_MIN_SCORE: known-app canonicalization threshold
    """
    settings = base or Settings()

    grid_updates = {}
    rows = _env_number("HSO_GRID_ROWS", int)
    if rows is not None:
        grid_updates["rows"] = rows
    columns = _env_number("HSO_GRID_COLUMNS", int)
    if columns is not None:
        grid_updates["columns"] = columns

    matcher_updates = {}
    min_score = _env_number("HSO_MATCH_MIN_SCORE", float)
    if min_score is not None:
        matcher_updates["min_score"] = min_score
    known_min = _env_number("HSO_KNOWN_APP_MIN_SCORE", float)
    if known_min is not None:
        matcher_updates["known_app_min_score"] = known_min

    return settings.model_copy(
        update={
            "grid": settings.grid.model_copy(update=grid_updates),
            "matcher": settings.matcher.model_copy(update=matcher_updates),
        }
    )
