"""Tests for profile building and the in-memory profile store."""

import threading
from datetime import datetime

import pytest

from personalization.models import (
    AquascapeStyle,
    ContentFormat,
    ContentItem,
    ContentType,
    EventType,
    ExperienceLevel,
    InteractionEvent,
    Language,
    NotFoundError,
    SendFrequency,
)
from personalization.profile_store import ProfileStore, build_profile


NOW = datetime(2026, 10, 17, 9, 0)


def _content(content_id: str) -> ContentItem:
    return ContentItem(
        id=content_id,
        type=ContentType.BLOG_ARTICLE,
        topic="plants",
        difficulty=ExperienceLevel.BEGINNER,
        language=Language.EN,
        created_at=NOW,
    )


class TestBuildProfile:
    """Tests for building profiles from signup payloads."""

    def test_defaults(self):
        profile = build_profile("u1", {"email": "a@example.com"}, now=NOW)

        assert profile.id == "u1"
        assert profile.email == "a@example.com"
        assert profile.preferences.aquascaping_styles == [AquascapeStyle.NATURE]
        assert profile.preferences.experience_level == ExperienceLevel.BEGINNER
        assert profile.preferences.tank_sizes == ["60cm"]
        assert profile.preferences.preferred_plants == []
        assert profile.preferences.content_types == [ContentFormat.HOW_TO, ContentFormat.INSPIRATION]
        assert profile.preferences.languages == [Language.EN]
        assert profile.behavior.email_engagement.open_rate == 0.0
        assert profile.behavior.email_engagement.click_rate == 0.0
        assert profile.behavior.email_engagement.best_send_times == ["09:00", "19:00"]
        assert profile.behavior.email_engagement.preferred_frequency == SendFrequency.WEEKLY
        assert profile.behavior.purchase_history.price_range == "mid"
        assert profile.demographics.signup_date == NOW
        assert profile.demographics.country == "Unknown"
        assert profile.demographics.timezone == "UTC"
        assert profile.demographics.referral_source == "direct"

    def test_payload_values(self):
        profile = build_profile("u2", {
            "email": "b@example.com",
            "styles": ["iwagumi", "dutch"],
            "experience": "advanced",
            "plants": ["Monte Carlo", "Rotala"],
            "brands": ["ADA"],
            "content_types": ["troubleshooting"],
            "language": "bg",
            "country": "Bulgaria",
            "timezone": "Europe/Sofia",
            "source": "instagram",
        }, now=NOW)

        assert profile.preferences.aquascaping_styles == [AquascapeStyle.IWAGUMI, AquascapeStyle.DUTCH]
        assert profile.preferences.experience_level == ExperienceLevel.ADVANCED
        assert profile.preferences.preferred_plants == ["Monte Carlo", "Rotala"]
        assert profile.preferences.equipment_brands == ["ADA"]
        assert profile.preferences.content_types == [ContentFormat.TROUBLESHOOTING]
        assert profile.preferences.languages == [Language.BG]
        assert profile.demographics.country == "Bulgaria"
        assert profile.demographics.referral_source == "instagram"

    def test_language_list_is_never_empty(self):
        profile = build_profile("u3", {"language": None}, now=NOW)
        assert profile.preferences.languages == [Language.EN]

    def test_invalid_experience_raises(self):
        with pytest.raises(ValueError):
            build_profile("u4", {"experience": "grandmaster"}, now=NOW)

    def test_invalid_style_raises(self):
        with pytest.raises(ValueError):
            build_profile("u5", {"styles": ["zen"]}, now=NOW)

    def test_empty_user_id_raises(self):
        with pytest.raises(ValueError):
            build_profile("", {}, now=NOW)


class TestProfileStore:
    """Tests for ProfileStore bookkeeping."""

    def test_add_and_get_profile(self):
        store = ProfileStore()
        profile = store.add_profile(build_profile("u1", {}, now=NOW))

        assert store.get_profile("u1") is profile
        assert len(store) == 1

    def test_require_missing_profile_raises(self):
        store = ProfileStore()
        with pytest.raises(NotFoundError):
            store.require_profile("nobody")

    def test_require_missing_content_raises(self):
        store = ProfileStore()
        with pytest.raises(NotFoundError):
            store.require_content("missing")

    def test_profiles_keep_registration_order(self):
        store = ProfileStore()
        for user_id in ["c", "a", "b"]:
            store.add_profile(build_profile(user_id, {}, now=NOW))
        assert [p.id for p in store.profiles()] == ["c", "a", "b"]

    def test_readding_profile_replaces_it(self):
        store = ProfileStore()
        store.add_profile(build_profile("u1", {"experience": "beginner"}, now=NOW))
        store.add_profile(build_profile("u1", {"experience": "expert"}, now=NOW))

        assert len(store) == 1
        assert store.get_profile("u1").preferences.experience_level == ExperienceLevel.EXPERT

    def test_readding_profile_recomputes_engagement_from_history(self):
        store = ProfileStore()
        store.add_profile(build_profile("u1", {}, now=NOW))
        for event_type, hour in [(EventType.EMAIL_SENT, 9), (EventType.EMAIL_SENT, 9), (EventType.EMAIL_OPEN, 20)]:
            store.append_event("u1", InteractionEvent(type=event_type, timestamp=NOW.replace(hour=hour)))

        store.add_profile(build_profile("u1", {"experience": "expert"}, now=NOW))

        engagement = store.get_profile("u1").behavior.email_engagement
        assert len(store.get_history("u1")) == 3
        assert engagement.open_rate == 0.5
        assert engagement.click_rate == 0.0
        assert engagement.best_send_times == ["20:00"]

    def test_new_profile_keeps_its_own_rates(self):
        store = ProfileStore()
        profile = build_profile("u1", {}, now=NOW)
        profile.behavior.email_engagement.open_rate = 0.7

        store.add_profile(profile)

        assert store.get_profile("u1").behavior.email_engagement.open_rate == 0.7

    def test_snapshot_profile_is_a_deep_copy(self):
        store = ProfileStore()
        store.add_profile(build_profile("u1", {"styles": ["nature"]}, now=NOW))

        snapshot = store.snapshot_profile("u1")
        snapshot.behavior.email_engagement.open_rate = 0.9
        snapshot.preferences.aquascaping_styles.append(AquascapeStyle.DUTCH)

        live = store.get_profile("u1")
        assert snapshot is not live
        assert live.behavior.email_engagement.open_rate == 0.0
        assert live.preferences.aquascaping_styles == [AquascapeStyle.NATURE]
        assert store.snapshot_profile("nobody") is None

    def test_snapshot_profile_waits_for_lock(self):
        store = ProfileStore()
        store.add_profile(build_profile("u1", {}, now=NOW))
        results = []

        with store.lock:
            reader = threading.Thread(target=lambda: results.append(store.snapshot_profile("u1")))
            reader.start()
            reader.join(timeout=0.2)
            assert reader.is_alive()
            assert results == []

        reader.join()
        assert results[0].id == "u1"

    def test_history_is_a_copy(self):
        store = ProfileStore()
        store.add_profile(build_profile("u1", {}, now=NOW))
        store.append_event("u1", InteractionEvent(type=EventType.EMAIL_SENT, timestamp=NOW))

        history = store.get_history("u1")
        history.clear()

        assert len(store.get_history("u1")) == 1

    def test_register_content_keeps_order(self):
        store = ProfileStore()
        for content_id in ["z", "x", "y"]:
            store.register_content(_content(content_id))
        assert [c.id for c in store.content_items()] == ["z", "x", "y"]

    def test_register_duplicate_content_raises(self):
        store = ProfileStore()
        store.register_content(_content("c1"))
        with pytest.raises(ValueError):
            store.register_content(_content("c1"))

    def test_stores_are_isolated(self):
        store_a = ProfileStore()
        store_b = ProfileStore()
        store_a.add_profile(build_profile("u1", {}, now=NOW))

        assert store_b.get_profile("u1") is None
