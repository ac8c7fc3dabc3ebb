from datetime import datetime

import pytest
from hypothesis import given, strategies as st

from personalization.models import (
    AquascapeStyle,
    ContentFormat,
    ContentItem,
    ContentType,
    Demographics,
    EventType,
    ExperienceLevel,
    InteractionEvent,
    Language,
    NotFoundError,
    PersonalizationFactors,
    Preferences,
    UserProfile,
)
from personalization.profile_store import ProfileStore
from personalization.scorer import (
    ContentScorer,
    calculate_difficulty_match,
    calculate_language_match,
    calculate_relevance,
    calculate_style_match,
    calculate_timing_score,
    calculate_topic_interest,
    get_compatible_styles,
    predict_engagement,
)

NOW = datetime(2026, 10, 17, 9, 30)


def _profile(styles=(AquascapeStyle.NATURE,), level=ExperienceLevel.BEGINNER,
             languages=(Language.EN,), content_types=(ContentFormat.HOW_TO,),
             best_send_times=("09:00", "19:00"), click_rate=0.0, user_id="u1") -> UserProfile:
    profile = UserProfile(
        id=user_id,
        email=f"{user_id}@example.com",
        demographics=Demographics(signup_date=datetime(2026, 1, 1)),
        preferences=Preferences(
            aquascaping_styles=list(styles),
            experience_level=level,
            languages=list(languages),
            content_types=list(content_types),
        ),
    )
    profile.behavior.email_engagement.best_send_times = list(best_send_times)
    profile.behavior.email_engagement.click_rate = click_rate
    return profile


def _content(content_id="c1", style=AquascapeStyle.NATURE, difficulty=ExperienceLevel.BEGINNER,
             tags=("co2", "lighting"), language=Language.EN, engagement_score=0.5,
             content_format=ContentFormat.HOW_TO, content_type=ContentType.NEWSLETTER) -> ContentItem:
    return ContentItem(
        id=content_id,
        type=content_type,
        topic="plants",
        difficulty=difficulty,
        language=language,
        created_at=datetime(2026, 1, 1),
        style=style,
        tags=list(tags),
        engagement_score=engagement_score,
        content_format=content_format,
    )


profiles = st.builds(
    _profile,
    styles=st.lists(st.sampled_from(list(AquascapeStyle)), unique=True),
    level=st.sampled_from(list(ExperienceLevel)),
    languages=st.lists(st.sampled_from(list(Language)), min_size=1, unique=True),
    content_types=st.lists(st.sampled_from(list(ContentFormat)), unique=True),
    best_send_times=st.lists(st.integers(0, 23).map(lambda h: f"{h:02d}:00"), max_size=2),
    click_rate=st.floats(0, 1),
)

contents = st.builds(
    _content,
    style=st.one_of(st.none(), st.sampled_from(list(AquascapeStyle))),
    difficulty=st.sampled_from(list(ExperienceLevel)),
    tags=st.lists(st.sampled_from(["co2", "lighting", "moss", "rocks", "shrimp"]), max_size=4),
    language=st.sampled_from(list(Language)),
    engagement_score=st.one_of(st.none(), st.floats(0, 1)),
    content_format=st.one_of(st.none(), st.sampled_from(list(ContentFormat))),
)


class TestStyleMatch:

    def test_exact_match(self):
        assert calculate_style_match(_profile(), _content(style=AquascapeStyle.NATURE)) == 1.0

    def test_compatible_match(self):
        profile = _profile(styles=[AquascapeStyle.NATURE])
        assert calculate_style_match(profile, _content(style=AquascapeStyle.DUTCH)) == 0.6
        assert calculate_style_match(profile, _content(style=AquascapeStyle.IWAGUMI)) == 0.6

    def test_incompatible_match(self):
        profile = _profile(styles=[AquascapeStyle.DUTCH])
        assert calculate_style_match(profile, _content(style=AquascapeStyle.PALUDARIUM)) == 0.2

    def test_compatibility_is_keyed_on_content_style(self):
        # paludarium content is compatible with biotope fans, not nature fans
        assert calculate_style_match(
            _profile(styles=[AquascapeStyle.BIOTOPE]), _content(style=AquascapeStyle.PALUDARIUM)
        ) == 0.6
        assert calculate_style_match(
            _profile(styles=[AquascapeStyle.NATURE]), _content(style=AquascapeStyle.PALUDARIUM)
        ) == 0.2

    def test_content_without_style(self):
        assert calculate_style_match(_profile(), _content(style=None)) == 0.2

    def test_every_style_has_compatibility_entry(self):
        for style in AquascapeStyle:
            assert get_compatible_styles(style)

    @given(profiles, contents)
    def test_style_match_values(self, profile, content):
        assert calculate_style_match(profile, content) in {1.0, 0.6, 0.2}


class TestDifficultyMatch:

    def test_exact(self):
        for level in ExperienceLevel:
            assert calculate_difficulty_match(level, level) == 1.0

    def test_one_above(self):
        assert calculate_difficulty_match(ExperienceLevel.BEGINNER, ExperienceLevel.INTERMEDIATE) == 0.8

    def test_one_below(self):
        assert calculate_difficulty_match(ExperienceLevel.ADVANCED, ExperienceLevel.INTERMEDIATE) == 0.7

    def test_two_apart(self):
        assert calculate_difficulty_match(ExperienceLevel.BEGINNER, ExperienceLevel.ADVANCED) == pytest.approx(0.4)
        assert calculate_difficulty_match(ExperienceLevel.EXPERT, ExperienceLevel.INTERMEDIATE) == pytest.approx(0.4)

    def test_three_apart_floors(self):
        assert calculate_difficulty_match(ExperienceLevel.EXPERT, ExperienceLevel.BEGINNER) == 0.2
        assert calculate_difficulty_match(ExperienceLevel.BEGINNER, ExperienceLevel.EXPERT) == 0.2

    @given(st.sampled_from(list(ExperienceLevel)), st.sampled_from(list(ExperienceLevel)))
    def test_in_range(self, user_level, content_level):
        assert 0.2 <= calculate_difficulty_match(user_level, content_level) <= 1.0


class TestTopicInterest:

    def test_base_score(self):
        profile = _profile(content_types=[])
        assert calculate_topic_interest(profile, _content(), set()) == 0.5

    def test_partial_tag_overlap(self):
        profile = _profile(content_types=[])
        assert calculate_topic_interest(profile, _content(tags=["co2", "moss"]), {"co2"}) == pytest.approx(0.75)

    def test_format_bonus(self):
        profile = _profile(content_types=[ContentFormat.HOW_TO])
        assert calculate_topic_interest(profile, _content(), set()) == pytest.approx(0.8)

    def test_no_bonus_for_other_format(self):
        profile = _profile(content_types=[ContentFormat.HOW_TO])
        content = _content(content_format=ContentFormat.PRODUCT_REVIEW)
        assert calculate_topic_interest(profile, content, set()) == 0.5

    def test_clamped(self):
        profile = _profile(content_types=[ContentFormat.HOW_TO])
        assert calculate_topic_interest(profile, _content(), {"co2", "lighting"}) == 1.0

    def test_content_without_tags(self):
        profile = _profile(content_types=[])
        assert calculate_topic_interest(profile, _content(tags=[]), {"co2"}) == 0.5


class TestTimingScore:

    def test_exact_hour(self):
        assert calculate_timing_score(_profile(), datetime(2026, 1, 1, 19, 45)) == 1.0

    def test_within_two_hours(self):
        assert calculate_timing_score(_profile(), datetime(2026, 1, 1, 11, 0)) == 0.7
        assert calculate_timing_score(_profile(), datetime(2026, 1, 1, 7, 0)) == 0.7

    def test_far_from_best_times(self):
        assert calculate_timing_score(_profile(), datetime(2026, 1, 1, 14, 0)) == 0.3

    def test_no_best_times(self):
        assert calculate_timing_score(_profile(best_send_times=[]), NOW) == 0.3


def test_language_match_is_binary():
    profile = _profile(languages=[Language.EN, Language.HU])
    assert calculate_language_match(profile, _content(language=Language.HU)) == 1.0
    assert calculate_language_match(profile, _content(language=Language.BG)) == 0.0


def test_relevance_weights():
    factors = PersonalizationFactors(
        style_match=1.0, difficulty_match=0.0, topic_interest=0.0, timing_optimal=0.0, language_match=0.0
    )
    assert calculate_relevance(factors) == pytest.approx(0.25)

    factors = PersonalizationFactors(1.0, 1.0, 1.0, 1.0, 1.0)
    assert calculate_relevance(factors) == pytest.approx(1.0)


class TestPredictEngagement:

    def test_fallbacks(self):
        profile = _profile(click_rate=0.0)
        content = _content(engagement_score=None)
        assert predict_engagement(profile, content, 0.9) == pytest.approx((0.05 + 0.05 + 0.9) / 3)

    def test_uses_rates(self):
        profile = _profile(click_rate=0.4)
        content = _content(engagement_score=0.8)
        assert predict_engagement(profile, content, 0.6) == pytest.approx(0.6)


class TestContentScorer:

    @pytest.fixture
    def store(self):
        store = ProfileStore()
        store.add_profile(_profile())
        store.register_content(_content("c1"))
        store.register_content(_content("c2", tags=["co2", "moss"], content_format=None))
        return store

    def test_score(self, store):
        score = ContentScorer(store).score("u1", "c1", now=NOW)

        assert score.user_id == "u1"
        assert score.content_id == "c1"
        factors = score.personalization_factors
        assert factors.style_match == 1.0
        assert factors.difficulty_match == 1.0
        assert factors.topic_interest == pytest.approx(0.8)
        assert factors.timing_optimal == 1.0
        assert factors.language_match == 1.0
        assert score.relevance_score == pytest.approx(0.94)
        assert score.engagement_prediction == pytest.approx((0.05 + 0.5 + 0.94) / 3)

    def test_topic_interest_uses_viewed_content(self, store):
        store.append_event("u1", InteractionEvent(type=EventType.CONTENT_VIEW, timestamp=NOW, content_id="c1"))

        score = ContentScorer(store).score("u1", "c2", now=NOW)
        assert score.personalization_factors.topic_interest == pytest.approx(0.75)

    def test_missing_user(self, store):
        with pytest.raises(NotFoundError):
            ContentScorer(store).score("nobody", "c1", now=NOW)

    def test_missing_content(self, store):
        with pytest.raises(NotFoundError):
            ContentScorer(store).score("u1", "missing", now=NOW)

    @given(profiles, contents)
    def test_scores_in_range_and_deterministic(self, profile, content):
        store = ProfileStore()
        store.add_profile(profile)
        store.register_content(content)
        scorer = ContentScorer(store)

        first = scorer.score(profile.id, content.id, now=NOW)
        second = scorer.score(profile.id, content.id, now=NOW)

        assert first == second
        assert 0.0 <= first.relevance_score <= 1.0 + 1e-9
        assert 0.0 <= first.engagement_prediction <= 1.0
        for value in first.personalization_factors.as_dict().values():
            assert 0.0 <= value <= 1.0
