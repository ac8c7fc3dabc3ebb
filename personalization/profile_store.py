"""
In-memory profile store for the content personalization system.

The store owns every user profile, the append-only interaction log and the
content library. Components receive the store explicitly and do all of their
reads and writes under its lock.
"""

import copy
import threading
from datetime import datetime
from typing import Any, Dict, List, Optional, Type, TypeVar

from personalization.engagement import refresh_email_engagement
from personalization.models import (
    AquascapeStyle,
    ContentFormat,
    ContentItem,
    Demographics,
    ExperienceLevel,
    InteractionEvent,
    Language,
    NotFoundError,
    Preferences,
    UserProfile,
)
from util.logging_util import setup_logger

logger = setup_logger(__name__)

E = TypeVar("E")


class ProfileStore:
    """Profiles, interaction history and content library for one engine."""

    def __init__(self):
        self.lock = threading.RLock()
        self._profiles: Dict[str, UserProfile] = {}
        self._history: Dict[str, List[InteractionEvent]] = {}
        self._content: Dict[str, ContentItem] = {}

    def __len__(self) -> int:
        return len(self._profiles)

    # Profiles

    def add_profile(self, profile: UserProfile) -> UserProfile:
        """
        Add a profile, replacing any existing profile with the same id.

        A replaced profile keeps its interaction log, and the new profile's
        email engagement is recomputed from it.
        """
        with self.lock:
            if profile.id in self._profiles:
                logger.warning(f"Replacing existing profile for user {profile.id}")
            history = self._history.get(profile.id)
            if history:
                refresh_email_engagement(profile, history)
            self._profiles[profile.id] = profile
            self._history.setdefault(profile.id, [])
        return profile

    def get_profile(self, user_id: str) -> Optional[UserProfile]:
        """The live profile. Callers must hold the lock while reading or changing it."""
        return self._profiles.get(user_id)

    def snapshot_profile(self, user_id: str) -> Optional[UserProfile]:
        """A deep copy of the profile taken under the lock, safe to read from any thread."""
        with self.lock:
            profile = self._profiles.get(user_id)
            return copy.deepcopy(profile) if profile is not None else None

    def require_profile(self, user_id: str) -> UserProfile:
        profile = self._profiles.get(user_id)
        if profile is None:
            raise NotFoundError(f"User profile not found: {user_id}")
        return profile

    def profiles(self) -> List[UserProfile]:
        """All profiles in registration order."""
        with self.lock:
            return list(self._profiles.values())

    # Interaction history

    def append_event(self, user_id: str, event: InteractionEvent) -> None:
        with self.lock:
            self._history.setdefault(user_id, []).append(event)

    def get_history(self, user_id: str) -> List[InteractionEvent]:
        """A copy of the user's interaction log, oldest first."""
        with self.lock:
            return list(self._history.get(user_id, []))

    # Content library

    def register_content(self, item: ContentItem) -> None:
        with self.lock:
            if item.id in self._content:
                raise ValueError(f"Content already registered: {item.id}")
            self._content[item.id] = item

    def get_content(self, content_id: str) -> Optional[ContentItem]:
        return self._content.get(content_id)

    def require_content(self, content_id: str) -> ContentItem:
        item = self._content.get(content_id)
        if item is None:
            raise NotFoundError(f"Content not found: {content_id}")
        return item

    def content_items(self) -> List[ContentItem]:
        """The content library in registration order."""
        with self.lock:
            return list(self._content.values())


def _parse_enum(enum_cls: Type[E], value: Any) -> E:
    if isinstance(value, enum_cls):
        return value
    try:
        return enum_cls(value)
    except ValueError:
        raise ValueError(f"Invalid {enum_cls.__name__} value: {value!r}")


def _parse_enum_list(enum_cls: Type[E], values: Any) -> List[E]:
    return [_parse_enum(enum_cls, v) for v in values]


def build_profile(user_id: str, initial_data: Dict[str, Any], now: Optional[datetime] = None) -> UserProfile:
    """
    Build a new user profile from a raw signup payload.

    Args:
        user_id: Opaque id the profile is keyed by.
        initial_data: Signup fields (email, styles, experience, tank_sizes, plants,
            brands, content_types, language, country, timezone, source). Missing
            fields fall back to the defaults of a fresh subscriber.
        now: Signup time, defaults to the current time.

    Returns:
        The new profile. It is not added to any store.
    """
    if not user_id:
        raise ValueError("user_id must be non-empty")

    preferences = Preferences()
    if initial_data.get("styles"):
        preferences.aquascaping_styles = _parse_enum_list(AquascapeStyle, initial_data["styles"])
    if initial_data.get("experience"):
        preferences.experience_level = _parse_enum(ExperienceLevel, initial_data["experience"])
    if initial_data.get("tank_sizes"):
        preferences.tank_sizes = list(initial_data["tank_sizes"])
    if initial_data.get("plants"):
        preferences.preferred_plants = list(initial_data["plants"])
    if initial_data.get("brands"):
        preferences.equipment_brands = list(initial_data["brands"])
    if initial_data.get("content_types"):
        preferences.content_types = _parse_enum_list(ContentFormat, initial_data["content_types"])
    if initial_data.get("languages"):
        preferences.languages = _parse_enum_list(Language, initial_data["languages"])
    else:
        preferences.languages = [_parse_enum(Language, initial_data.get("language") or "en")]

    demographics = Demographics(
        signup_date=now or datetime.now(),
        country=initial_data.get("country") or "Unknown",
        timezone=initial_data.get("timezone") or "UTC",
        referral_source=initial_data.get("source") or "direct",
    )

    return UserProfile(
        id=user_id,
        email=initial_data.get("email", ""),
        demographics=demographics,
        preferences=preferences,
    )
