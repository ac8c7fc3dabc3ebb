"""
Multi-factor content scoring for a (user, content item) pair.
"""

from datetime import datetime
from typing import FrozenSet, Iterable, List, Optional, Set

from personalization.constants import (
    DIFFICULTY_EXACT_SCORE,
    DIFFICULTY_MIN_SCORE,
    DIFFICULTY_ONE_ABOVE_SCORE,
    DIFFICULTY_ONE_BELOW_SCORE,
    DIFFICULTY_STEP_PENALTY,
    ENGAGEMENT_FALLBACK,
    FACTOR_WEIGHTS,
    STYLE_COMPATIBLE_SCORE,
    STYLE_DEFAULT_SCORE,
    STYLE_EXACT_SCORE,
    TIMING_EXACT_SCORE,
    TIMING_NEAR_HOURS,
    TIMING_NEAR_SCORE,
    TIMING_OFF_SCORE,
    TOPIC_BASE_SCORE,
    TOPIC_FORMAT_BONUS,
    TOPIC_TAG_WEIGHT,
)
from personalization.models import (
    AquascapeStyle,
    ContentItem,
    EventType,
    ExperienceLevel,
    PersonalizationFactors,
    PersonalizationScore,
    UserProfile,
)
from personalization.profile_store import ProfileStore
from util.logging_util import setup_logger

logger = setup_logger(__name__)


def get_compatible_styles(style: AquascapeStyle) -> FrozenSet[AquascapeStyle]:
    """Styles whose fans are likely to enjoy content in the given style."""
    match style:
        case AquascapeStyle.NATURE:
            return frozenset({AquascapeStyle.IWAGUMI, AquascapeStyle.BIOTOPE})
        case AquascapeStyle.IWAGUMI:
            return frozenset({AquascapeStyle.NATURE})
        case AquascapeStyle.DUTCH:
            return frozenset({AquascapeStyle.NATURE})
        case AquascapeStyle.BIOTOPE:
            return frozenset({AquascapeStyle.NATURE, AquascapeStyle.PALUDARIUM})
        case AquascapeStyle.PALUDARIUM:
            return frozenset({AquascapeStyle.BIOTOPE})


def calculate_style_match(profile: UserProfile, content: ContentItem) -> float:
    if content.style is None:
        return STYLE_DEFAULT_SCORE

    user_styles = set(profile.preferences.aquascaping_styles)
    if content.style in user_styles:
        return STYLE_EXACT_SCORE
    if user_styles & get_compatible_styles(content.style):
        return STYLE_COMPATIBLE_SCORE
    return STYLE_DEFAULT_SCORE


def calculate_difficulty_match(user_level: ExperienceLevel, content_level: ExperienceLevel) -> float:
    """Exact match is best, with a slight preference for a step up over a step down."""
    difference = content_level.rank - user_level.rank

    if difference == 0:
        return DIFFICULTY_EXACT_SCORE
    if difference == 1:
        return DIFFICULTY_ONE_ABOVE_SCORE
    if difference == -1:
        return DIFFICULTY_ONE_BELOW_SCORE
    return max(DIFFICULTY_MIN_SCORE, 1.0 - DIFFICULTY_STEP_PENALTY * abs(difference))


def calculate_topic_interest(profile: UserProfile, content: ContentItem, viewed_tags: Set[str]) -> float:
    """
    Interest in a content item based on reading history and format preferences.

    Args:
        profile: The user's profile.
        content: The content being scored.
        viewed_tags: Union of the tags of every registered item the user has viewed.

    Returns:
        Score in [0.5, 1.0].
    """
    score = TOPIC_BASE_SCORE

    tag_matches = sum(1 for tag in content.tags if tag in viewed_tags)
    score += TOPIC_TAG_WEIGHT * (tag_matches / max(len(content.tags), 1))

    if content.content_format is not None and content.content_format in profile.preferences.content_types:
        score += TOPIC_FORMAT_BONUS

    return min(1.0, score)


def _parse_hours(send_times: Iterable[str]) -> List[int]:
    hours = []
    for send_time in send_times:
        try:
            hours.append(int(send_time.split(":")[0]))
        except (ValueError, AttributeError):
            logger.debug(f"Skipping malformed send time {send_time!r}")
    return hours


def calculate_timing_score(profile: UserProfile, now: datetime) -> float:
    best_hours = _parse_hours(profile.behavior.email_engagement.best_send_times)

    if now.hour in best_hours:
        return TIMING_EXACT_SCORE
    if any(abs(now.hour - hour) <= TIMING_NEAR_HOURS for hour in best_hours):
        return TIMING_NEAR_SCORE
    return TIMING_OFF_SCORE


def calculate_language_match(profile: UserProfile, content: ContentItem) -> float:
    return 1.0 if content.language in profile.preferences.languages else 0.0


def calculate_relevance(factors: PersonalizationFactors) -> float:
    values = factors.as_dict()
    return sum(values[name] * weight for name, weight in FACTOR_WEIGHTS.items())


def predict_engagement(profile: UserProfile, content: ContentItem, relevance_score: float) -> float:
    # A zero rate counts as missing, same as an absent engagement score
    base_engagement = profile.behavior.email_engagement.click_rate or ENGAGEMENT_FALLBACK
    content_engagement = content.engagement_score or ENGAGEMENT_FALLBACK
    return min(1.0, (base_engagement + content_engagement + relevance_score) / 3)


class ContentScorer:
    """Scores content items from a store against that store's profiles."""

    def __init__(self, store: ProfileStore):
        self.store = store

    def viewed_tags(self, user_id: str) -> Set[str]:
        tags: Set[str] = set()
        for event in self.store.get_history(user_id):
            if event.type != EventType.CONTENT_VIEW or not event.content_id:
                continue
            viewed = self.store.get_content(event.content_id)
            if viewed is not None:
                tags.update(viewed.tags)
        return tags

    def score(self, user_id: str, content_id: str, now: Optional[datetime] = None) -> PersonalizationScore:
        """
        Score one content item for one user.

        Raises:
            NotFoundError: If the profile or the content item does not exist.
        """
        with self.store.lock:
            profile = self.store.require_profile(user_id)
            content = self.store.require_content(content_id)
            return self.score_item(profile, content, self.viewed_tags(user_id), now or datetime.now())

    def score_item(self, profile: UserProfile, content: ContentItem, viewed_tags: Set[str],
                   now: datetime) -> PersonalizationScore:
        """Score an already-resolved profile/content pair."""
        factors = PersonalizationFactors(
            style_match=calculate_style_match(profile, content),
            difficulty_match=calculate_difficulty_match(
                profile.preferences.experience_level, content.difficulty
            ),
            topic_interest=calculate_topic_interest(profile, content, viewed_tags),
            timing_optimal=calculate_timing_score(profile, now),
            language_match=calculate_language_match(profile, content),
        )
        relevance_score = calculate_relevance(factors)

        return PersonalizationScore(
            user_id=profile.id,
            content_id=content.id,
            relevance_score=relevance_score,
            engagement_prediction=predict_engagement(profile, content, relevance_score),
            personalization_factors=factors,
        )
