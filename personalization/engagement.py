"""
Email engagement statistics derived from a user's interaction log.
"""

from typing import Dict, List

from personalization.constants import BEST_SEND_TIME_COUNT
from personalization.models import EventType, InteractionEvent, UserProfile


def calculate_engagement_rate(positive: int, total: int) -> float:
    """Ratio of positive events to opportunity events, 0 when there were none."""
    if total == 0:
        return 0.0
    return min(1.0, positive / total)


def count_events(history: List[InteractionEvent], event_type: EventType) -> int:
    return sum(1 for event in history if event.type == event_type)


def compute_best_send_times(history: List[InteractionEvent], count: int = BEST_SEND_TIME_COUNT) -> List[str]:
    """
    Most frequent engagement hours as "HH:00" strings.

    Only email opens and clicks count. Ties keep the order in which the hour
    was first seen. Returns an empty list if there was no engagement.
    """
    heatmap: Dict[str, int] = {}
    for event in history:
        if event.type not in (EventType.EMAIL_OPEN, EventType.EMAIL_CLICK):
            continue
        hour = f"{event.timestamp.hour:02d}:00"
        heatmap[hour] = heatmap.get(hour, 0) + 1

    ranked = sorted(heatmap.items(), key=lambda x: x[1], reverse=True)
    return [hour for hour, _ in ranked[:count]]


def refresh_email_engagement(profile: UserProfile, history: List[InteractionEvent]) -> None:
    """Recompute open rate, click rate and best send times from the full log."""
    engagement = profile.behavior.email_engagement
    opens = count_events(history, EventType.EMAIL_OPEN)
    engagement.open_rate = calculate_engagement_rate(opens, count_events(history, EventType.EMAIL_SENT))
    engagement.click_rate = calculate_engagement_rate(count_events(history, EventType.EMAIL_CLICK), opens)

    best_times = compute_best_send_times(history)
    if best_times:
        engagement.best_send_times = best_times
