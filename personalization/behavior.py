"""
Behavior aggregation for user profiles.

Folds interaction events into a profile's engagement statistics. Every derived
rate is recomputed from the full interaction log after each event, so the log
is the single source of truth.
"""

import math
from typing import Dict, List, Optional

from personalization.constants import (
    MIN_TRACKED_WEIGHT,
    MOST_VIEWED_CATEGORY_COUNT,
    VIEW_WEIGHT_DECAY,
    VIEW_WEIGHT_INCREMENT,
)
from personalization.engagement import refresh_email_engagement
from personalization.models import (
    ContentInteraction,
    ContentItem,
    EventType,
    InteractionEvent,
    UserProfile,
)
from personalization.profile_store import ProfileStore
from util.logging_util import setup_logger

logger = setup_logger(__name__)


def _decay_and_bump(weights: Dict[str, float], keys: List[str]) -> None:
    for key in list(weights):
        weights[key] *= VIEW_WEIGHT_DECAY
        if weights[key] < MIN_TRACKED_WEIGHT:
            del weights[key]
    for key in keys:
        weights[key] = weights.get(key, 0.0) + VIEW_WEIGHT_INCREMENT


def update_content_preferences(interaction: ContentInteraction, content: ContentItem) -> None:
    """
    Learn from a content view with exponentially decaying weights.

    All existing weights shrink by VIEW_WEIGHT_DECAY, then the viewed item's
    style, tags and topic each gain VIEW_WEIGHT_INCREMENT.
    """
    _decay_and_bump(interaction.style_weights, [content.style.value] if content.style else [])
    _decay_and_bump(interaction.tag_weights, list(dict.fromkeys(content.tags)))
    _decay_and_bump(interaction.topic_weights, [content.topic] if content.topic else [])

    ranked_topics = sorted(interaction.topic_weights.items(), key=lambda x: x[1], reverse=True)
    interaction.most_viewed_categories = [topic for topic, _ in ranked_topics[:MOST_VIEWED_CATEGORY_COUNT]]


def parse_time_spent(event: InteractionEvent) -> Optional[float]:
    """Seconds spent on a viewed item, or None if the metadata has no usable value."""
    time_spent = event.metadata.get("time_spent")
    if time_spent is None:
        return None
    try:
        seconds = float(time_spent)
    except (TypeError, ValueError):
        seconds = math.nan
    if not math.isfinite(seconds):
        logger.debug(f"Ignoring unparseable time_spent {time_spent!r}")
        return None
    return seconds


def _update_time_spent(interaction: ContentInteraction, time_spent: Optional[float]) -> None:
    if time_spent is None:
        return
    # content_views has already been incremented for this event
    n = interaction.content_views
    interaction.avg_time_spent += (time_spent - interaction.avg_time_spent) / n


def _update_purchase_history(profile: UserProfile, event: InteractionEvent) -> None:
    purchases = profile.behavior.purchase_history
    category = event.metadata.get("category")
    brand = event.metadata.get("brand")
    if category and category not in purchases.categories:
        purchases.categories.append(category)
    if brand and brand not in purchases.brands:
        purchases.brands.append(brand)
    if event.metadata.get("price_range"):
        purchases.price_range = event.metadata["price_range"]

    month = f"{event.timestamp.month:02d}"
    purchases.seasonal_patterns[month] = purchases.seasonal_patterns.get(month, 0) + 1


class BehaviorAggregator:
    """Applies interaction events to the profiles held by a store."""

    def __init__(self, store: ProfileStore):
        self.store = store

    def record_interaction(self, user_id: str, event: InteractionEvent) -> None:
        """
        Append an event to the user's history and refresh derived statistics.

        Events for users without a profile are ignored, so out-of-order
        delivery never fails. Metadata is parsed before anything is changed.
        """
        time_spent = parse_time_spent(event) if event.type == EventType.CONTENT_VIEW else None

        with self.store.lock:
            profile = self.store.get_profile(user_id)
            if profile is None:
                logger.debug(f"Ignoring {event.type.value} for unknown user {user_id}")
                return

            self.store.append_event(user_id, event)
            history = self.store.get_history(user_id)
            interaction = profile.behavior.content_interaction

            if event.type == EventType.CONTENT_VIEW:
                interaction.content_views += 1
                _update_time_spent(interaction, time_spent)
                content = self.store.get_content(event.content_id) if event.content_id else None
                if content is not None:
                    update_content_preferences(interaction, content)
            elif event.type == EventType.SHARE:
                interaction.sharing_frequency += 1
            elif event.type == EventType.COMMENT:
                interaction.comment_engagement += 1
            elif event.type == EventType.PURCHASE:
                _update_purchase_history(profile, event)

            refresh_email_engagement(profile, history)

        logger.debug(f"Recorded {event.type.value} for user {user_id} ({len(history)} events)")
