"""
Personalization engine facade.

Wires the behavior aggregator, scorer, recommender, newsletter personalizer and
segmenter over a single profile store, and provides the signup, newsletter and
homepage flows built on top of them.
"""

import time
from datetime import datetime
from typing import Any, Dict, List, Optional

from personalization.behavior import BehaviorAggregator
from personalization.constants import DEFAULT_HOMEPAGE_LIMIT
from personalization.models import (
    ContentItem,
    ContentType,
    InteractionEvent,
    NewsletterPersonalization,
    PersonalizationScore,
    Recommendation,
    UserProfile,
)
from personalization.newsletter import NewsletterPersonalizer
from personalization.profile_store import ProfileStore, build_profile
from personalization.recommender import Recommender, explain_recommendation
from personalization.scorer import ContentScorer
from personalization.segmenter import Segmenter
from util.logging_util import setup_logger

logger = setup_logger(__name__)

WEEKLY_TEMPLATE_SECTIONS = ["featured_article", "plant_spotlight", "community_showcase", "tips"]


class PersonalizationEngine:
    """Entry point for callers. Each engine owns an isolated store."""

    def __init__(self, store: Optional[ProfileStore] = None):
        self.store = store if store is not None else ProfileStore()
        self.behavior = BehaviorAggregator(self.store)
        self.scorer = ContentScorer(self.store)
        self.recommender = Recommender(self.store, self.scorer)
        self.newsletter = NewsletterPersonalizer(self.store, self.recommender)
        self.segmenter = Segmenter(self.store)

    def build_user_profile(self, user_id: str, initial_data: Dict[str, Any],
                           now: Optional[datetime] = None) -> UserProfile:
        """Build and store a profile, returning a copy of what was stored."""
        profile = build_profile(user_id, initial_data, now)
        with self.store.lock:
            self.store.add_profile(profile)
            stored = self.store.snapshot_profile(user_id)
        logger.info(f"Built profile for user {user_id} ({profile.preferences.experience_level.value})")
        return stored

    def get_profile(self, user_id: str) -> Optional[UserProfile]:
        """A consistent copy of the user's profile. Changes to it are not stored."""
        return self.store.snapshot_profile(user_id)

    def register_content(self, item: ContentItem) -> None:
        self.store.register_content(item)

    def record_interaction(self, user_id: str, event: InteractionEvent) -> None:
        self.behavior.record_interaction(user_id, event)

    def score_content(self, user_id: str, content_id: str,
                      now: Optional[datetime] = None) -> PersonalizationScore:
        return self.scorer.score(user_id, content_id, now)

    def recommend_content(self, user_id: str, limit: int = 10, content_type: Optional[ContentType] = None,
                          now: Optional[datetime] = None) -> List[Recommendation]:
        return self.recommender.recommend(user_id, limit, content_type, now)

    def personalize_newsletter(self, user_id: str, template: Dict[str, Any],
                               now: Optional[datetime] = None) -> NewsletterPersonalization:
        return self.newsletter.personalize(user_id, template, now)

    def create_segments(self, now: Optional[datetime] = None) -> Dict[str, List[str]]:
        return self.segmenter.segment(now)

    def initialize_from_waitlist(self, email: str, signup_data: Dict[str, Any],
                                 now: Optional[datetime] = None) -> UserProfile:
        """Create a profile for a waitlist signup under a generated user id."""
        with self.store.lock:
            base_id = f"user_{int(time.time() * 1000)}"
            user_id = base_id
            suffix = 1
            while self.store.get_profile(user_id) is not None:
                user_id = f"{base_id}_{suffix}"
                suffix += 1

            return self.build_user_profile(user_id, {
                "email": email,
                "experience": signup_data.get("experience_level") or "beginner",
                "styles": signup_data.get("interested_styles") or ["nature"],
                "tank_sizes": signup_data.get("tank_sizes") or ["60cm"],
                "plants": signup_data.get("plants"),
                "language": signup_data.get("language") or "en",
                "country": signup_data.get("country") or "Unknown",
                "timezone": signup_data.get("timezone"),
                "source": "waitlist",
            }, now)

    def generate_personalized_newsletter(self, user_id: str, topic: str = "Weekly Aquascaping Update",
                                         now: Optional[datetime] = None) -> Dict[str, Any]:
        """Personalize the weekly newsletter template and flatten the result."""
        template = {"topic": topic, "sections": list(WEEKLY_TEMPLATE_SECTIONS)}
        personalized = self.personalize_newsletter(user_id, template, now)

        newsletter = dict(personalized.content)
        newsletter["send_time"] = personalized.optimization["optimal_send_time"]
        newsletter["personalization_score"] = len(personalized.applied_personalizations)
        return newsletter

    def homepage_recommendations(self, user_id: str, limit: int = DEFAULT_HOMEPAGE_LIMIT,
                                 now: Optional[datetime] = None) -> List[Dict[str, Any]]:
        """Recommendations for any content type, each with a short explanation."""
        results = []
        for rec in self.recommend_content(user_id, limit, now=now):
            results.append({
                "content": rec.content,
                "relevance_score": rec.score.relevance_score,
                "why_recommended": explain_recommendation(rec.score.personalization_factors.as_dict()),
            })
        return results
