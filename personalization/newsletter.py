"""
Newsletter personalization.

Annotates a newsletter template for one subscriber: greeting, recommended
articles, send time, subject line, plant tips and difficulty.
"""

from datetime import datetime
from typing import Any, Dict, List, Optional

from personalization.constants import (
    DEFAULT_NEWSLETTER_TOPIC,
    DEFAULT_SEND_TIME,
    MAX_PLANT_TIPS,
    NEWSLETTER_RECOMMENDATION_LIMIT,
)
from personalization.models import (
    AquascapeStyle,
    ContentType,
    ExperienceLevel,
    NewsletterPersonalization,
    UserProfile,
)
from personalization.profile_store import ProfileStore
from personalization.recommender import Recommender
from util.logging_util import log_newsletter_personalized, setup_logger

logger = setup_logger(__name__)

DEFAULT_EMOJI = "🐠"


def get_time_greeting(hour: int) -> str:
    if hour < 12:
        return "Good morning"
    if hour < 17:
        return "Good afternoon"
    return "Good evening"


def get_experience_address(level: ExperienceLevel) -> str:
    match level:
        case ExperienceLevel.BEGINNER:
            return "fellow aquascaping enthusiast"
        case ExperienceLevel.INTERMEDIATE:
            return "aquascaping hobbyist"
        case ExperienceLevel.ADVANCED:
            return "skilled aquascaper"
        case ExperienceLevel.EXPERT:
            return "aquascaping expert"


def get_style_emoji(style: AquascapeStyle) -> str:
    match style:
        case AquascapeStyle.NATURE:
            return "🌿"
        case AquascapeStyle.IWAGUMI:
            return "🪨"
        case AquascapeStyle.DUTCH:
            return "🌺"
        case AquascapeStyle.BIOTOPE:
            return "🐟"
        case AquascapeStyle.PALUDARIUM:
            return "🌱"


def personalize_greeting(profile: UserProfile, now: datetime) -> str:
    address = get_experience_address(profile.preferences.experience_level)
    return f"{get_time_greeting(now.hour)}, {address}!"


def personalize_subject_line(profile: UserProfile, topic: str) -> str:
    styles = profile.preferences.aquascaping_styles
    emoji = get_style_emoji(styles[0]) if styles else DEFAULT_EMOJI

    match profile.preferences.experience_level:
        case ExperienceLevel.BEGINNER:
            return f"{emoji} Easy {topic} Tips for Beginners"
        case ExperienceLevel.EXPERT:
            return f"{emoji} Advanced {topic} Masterclass"
        case ExperienceLevel.INTERMEDIATE | ExperienceLevel.ADVANCED:
            return f"{emoji} {topic} Secrets Revealed"


def get_plant_tips(preferred_plants: List[str]) -> List[str]:
    """Up to three tips about the user's favourite plants, one per plant known."""
    if not preferred_plants:
        return []
    first = preferred_plants[0]
    second = preferred_plants[1] if len(preferred_plants) > 1 else first
    tips = [
        f"Special care tips for your favorite {first}",
        f"New varieties similar to {second} you might love",
        f"Troubleshooting common {first} problems",
    ]
    return tips[:min(MAX_PLANT_TIPS, len(preferred_plants))]


class NewsletterPersonalizer:
    """Personalizes newsletter templates using a store and its recommender."""

    def __init__(self, store: ProfileStore, recommender: Recommender):
        self.store = store
        self.recommender = recommender

    def personalize(self, user_id: str, template: Dict[str, Any],
                    now: Optional[datetime] = None) -> NewsletterPersonalization:
        """
        Personalize a newsletter template for a user.

        The template is copied, never modified in place.

        Raises:
            NotFoundError: If the user has no profile.
        """
        now = now or datetime.now()
        content = dict(template)
        applied: List[str] = []
        optimization: Dict[str, Any] = {}

        with self.store.lock:
            profile = self.store.require_profile(user_id)

            content["greeting"] = personalize_greeting(profile, now)
            applied.append("greeting")

            recommendations = self.recommender.recommend(
                user_id, NEWSLETTER_RECOMMENDATION_LIMIT, ContentType.NEWSLETTER, now=now
            )
            content["recommended_articles"] = [r.content for r in recommendations]
            applied.append("content_selection")

            send_times = profile.behavior.email_engagement.best_send_times
            optimization["optimal_send_time"] = send_times[0] if send_times else DEFAULT_SEND_TIME
            applied.append("send_time")

            topic = content.get("topic") or DEFAULT_NEWSLETTER_TOPIC
            content["subject_line"] = personalize_subject_line(profile, topic)
            applied.append("subject_line")

            if profile.preferences.preferred_plants:
                content["plant_recommendations"] = get_plant_tips(profile.preferences.preferred_plants)
                applied.append("plant_tips")

            content["content_difficulty"] = profile.preferences.experience_level.value
            applied.append("difficulty_adjustment")

        log_newsletter_personalized(logger, user_id, applied, optimization["optimal_send_time"])
        return NewsletterPersonalization(
            content=content,
            applied_personalizations=applied,
            optimization=optimization,
        )
