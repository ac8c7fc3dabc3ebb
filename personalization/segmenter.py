"""
User segmentation by experience, style, engagement and tenure.
"""

from datetime import datetime
from typing import Dict, List, Optional

from personalization.constants import (
    HIGH_ENGAGEMENT_THRESHOLD,
    LONG_TIME_SUBSCRIBER_DAYS,
    LOW_ENGAGEMENT_THRESHOLD,
    RECENT_SIGNUP_DAYS,
)
from personalization.models import AquascapeStyle, ExperienceLevel, UserProfile
from personalization.profile_store import ProfileStore
from util.logging_util import setup_logger

logger = setup_logger(__name__)

HIGH_ENGAGEMENT = "high_engagement"
LOW_ENGAGEMENT = "low_engagement"
RECENT_SIGNUPS = "recent_signups"
LONG_TIME_SUBSCRIBERS = "long_time_subscribers"


def experience_segment(level: ExperienceLevel) -> str:
    match level:
        case ExperienceLevel.BEGINNER:
            return "beginners"
        case ExperienceLevel.INTERMEDIATE:
            return "intermediates"
        case ExperienceLevel.ADVANCED:
            return "advanced"
        case ExperienceLevel.EXPERT:
            return "experts"


def style_segment(style: AquascapeStyle) -> str:
    return f"{style.value}_lovers"


def all_segment_names() -> List[str]:
    names = [experience_segment(level) for level in ExperienceLevel]
    names += [style_segment(style) for style in AquascapeStyle]
    names += [HIGH_ENGAGEMENT, LOW_ENGAGEMENT, RECENT_SIGNUPS, LONG_TIME_SUBSCRIBERS]
    return names


def engagement_segment(profile: UserProfile) -> Optional[str]:
    engagement = profile.behavior.email_engagement
    average = (engagement.open_rate + engagement.click_rate) / 2
    if average > HIGH_ENGAGEMENT_THRESHOLD:
        return HIGH_ENGAGEMENT
    if average < LOW_ENGAGEMENT_THRESHOLD:
        return LOW_ENGAGEMENT
    return None


def tenure_segment(profile: UserProfile, now: datetime) -> Optional[str]:
    days_since_signup = (now - profile.demographics.signup_date).total_seconds() / (60 * 60 * 24)
    if days_since_signup < RECENT_SIGNUP_DAYS:
        return RECENT_SIGNUPS
    if days_since_signup > LONG_TIME_SUBSCRIBER_DAYS:
        return LONG_TIME_SUBSCRIBERS
    return None


def classify_profile(profile: UserProfile, now: datetime) -> List[str]:
    """Every segment a single profile belongs to, without duplicates."""
    segments = [experience_segment(profile.preferences.experience_level)]
    for style in dict.fromkeys(profile.preferences.aquascaping_styles):
        segments.append(style_segment(style))

    for segment in (engagement_segment(profile), tenure_segment(profile, now)):
        if segment is not None:
            segments.append(segment)
    return segments


class Segmenter:
    """Partitions a store's profiles into named cohorts."""

    def __init__(self, store: ProfileStore):
        self.store = store

    def segment(self, now: Optional[datetime] = None) -> Dict[str, List[str]]:
        """
        Recompute every segment from scratch.

        Returns:
            Mapping from segment name to user ids, in profile registration
            order. Every known segment name is present, possibly empty.
        """
        now = now or datetime.now()
        segments: Dict[str, List[str]] = {name: [] for name in all_segment_names()}

        with self.store.lock:
            profiles = self.store.profiles()
            for profile in profiles:
                for name in classify_profile(profile, now):
                    segments[name].append(profile.id)

        logger.info(f"Segmented {len(profiles)} profiles into {sum(1 for v in segments.values() if v)} non-empty segments")
        return segments
