"""
Content recommendation: rank the library for a user.
"""

import time
from datetime import datetime
from typing import Dict, List, Optional

from personalization.constants import ENGAGEMENT_RANK_WEIGHT, RELEVANCE_RANK_WEIGHT
from personalization.models import ContentType, PersonalizationScore, Recommendation
from personalization.profile_store import ProfileStore
from personalization.scorer import ContentScorer
from util.logging_util import log_recommendations, setup_logger

logger = setup_logger(__name__)

RECOMMENDATION_EXPLANATIONS = {
    "style_match": "Matches your preferred aquascaping style",
    "difficulty_match": "Perfect for your experience level",
    "topic_interest": "Based on your reading history",
    "timing_optimal": "Recommended at your optimal time",
    "language_match": "Available in your preferred language",
}


def ranking_score(score: PersonalizationScore) -> float:
    """Blend of relevance and predicted engagement used to order recommendations."""
    return RELEVANCE_RANK_WEIGHT * score.relevance_score + ENGAGEMENT_RANK_WEIGHT * score.engagement_prediction


def explain_recommendation(factors: Dict[str, float]) -> str:
    """Human-readable reason for a recommendation, from its strongest factor."""
    if not factors:
        return "Recommended for you"
    # max() keeps the first of equal values, so ties resolve in factor order
    top_factor = max(factors, key=lambda name: factors[name])
    return RECOMMENDATION_EXPLANATIONS.get(top_factor, "Recommended for you")


class Recommender:
    """Ranks a store's content library for a user with a ContentScorer."""

    def __init__(self, store: ProfileStore, scorer: ContentScorer):
        self.store = store
        self.scorer = scorer

    def recommend(self, user_id: str, limit: int = 10, content_type: Optional[ContentType] = None,
                  now: Optional[datetime] = None) -> List[Recommendation]:
        """
        Recommend the best content for a user.

        Content of another type (when content_type is given) or in a language
        the user does not read is excluded before scoring.

        Args:
            user_id: The user to recommend for.
            limit: Maximum number of recommendations.
            content_type: Only consider content of this type.
            now: Time used for timing scores, defaults to the current time.

        Returns:
            Recommendations, best first. Equal scores keep library order.

        Raises:
            NotFoundError: If the user has no profile.
        """
        start_time = time.time()
        now = now or datetime.now()

        with self.store.lock:
            profile = self.store.require_profile(user_id)
            languages = set(profile.preferences.languages)

            candidates = self.store.content_items()
            if content_type is not None:
                candidates = [c for c in candidates if c.type == content_type]
            candidates = [c for c in candidates if c.language in languages]

            viewed_tags = self.scorer.viewed_tags(user_id)
            scored = [
                Recommendation(content=c, score=self.scorer.score_item(profile, c, viewed_tags, now))
                for c in candidates
            ]

        scored.sort(key=lambda r: ranking_score(r.score), reverse=True)
        recommendations = scored[:max(limit, 0)]

        duration_ms = (time.time() - start_time) * 1000
        log_recommendations(logger, user_id, [r.content_id for r in recommendations], len(candidates), duration_ms)
        return recommendations
