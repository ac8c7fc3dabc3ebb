"""
Data models for the content personalization system.
"""

from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from typing import Any, Dict, List, Optional


class NotFoundError(LookupError):
    """Raised when a referenced user profile or content item does not exist."""


class AquascapeStyle(Enum):
    NATURE = "nature"
    IWAGUMI = "iwagumi"
    DUTCH = "dutch"
    BIOTOPE = "biotope"
    PALUDARIUM = "paludarium"


class ExperienceLevel(Enum):
    BEGINNER = "beginner"
    INTERMEDIATE = "intermediate"
    ADVANCED = "advanced"
    EXPERT = "expert"

    @property
    def rank(self) -> int:
        """0-based position in the beginner < ... < expert ordering."""
        return list(ExperienceLevel).index(self)


class ContentFormat(Enum):
    HOW_TO = "how_to"
    INSPIRATION = "inspiration"
    PRODUCT_REVIEW = "product_review"
    TROUBLESHOOTING = "troubleshooting"


class Language(Enum):
    EN = "en"
    BG = "bg"
    HU = "hu"


class ContentType(Enum):
    NEWSLETTER = "newsletter"
    SOCIAL_POST = "social_post"
    BLOG_ARTICLE = "blog_article"
    PRODUCT_FEATURE = "product_feature"


class SendFrequency(Enum):
    DAILY = "daily"
    WEEKLY = "weekly"
    BIWEEKLY = "biweekly"
    MONTHLY = "monthly"


class EventType(Enum):
    EMAIL_OPEN = "email_open"
    EMAIL_CLICK = "email_click"
    EMAIL_SENT = "email_sent"
    CONTENT_VIEW = "content_view"
    SHARE = "share"
    COMMENT = "comment"
    PURCHASE = "purchase"


@dataclass
class Preferences:
    aquascaping_styles: List[AquascapeStyle] = field(default_factory=lambda: [AquascapeStyle.NATURE])
    experience_level: ExperienceLevel = ExperienceLevel.BEGINNER
    tank_sizes: List[str] = field(default_factory=lambda: ["60cm"])
    preferred_plants: List[str] = field(default_factory=list)
    equipment_brands: List[str] = field(default_factory=list)
    content_types: List[ContentFormat] = field(
        default_factory=lambda: [ContentFormat.HOW_TO, ContentFormat.INSPIRATION]
    )
    languages: List[Language] = field(default_factory=lambda: [Language.EN])


@dataclass
class EmailEngagement:
    open_rate: float = 0.0
    click_rate: float = 0.0
    best_send_times: List[str] = field(default_factory=lambda: ["09:00", "19:00"])
    preferred_frequency: SendFrequency = SendFrequency.WEEKLY


@dataclass
class ContentInteraction:
    """View/share/comment statistics plus the learned preference weights."""
    most_viewed_categories: List[str] = field(default_factory=list)
    avg_time_spent: float = 0.0
    sharing_frequency: int = 0
    comment_engagement: int = 0
    content_views: int = 0
    style_weights: Dict[str, float] = field(default_factory=dict)
    tag_weights: Dict[str, float] = field(default_factory=dict)
    topic_weights: Dict[str, float] = field(default_factory=dict)


@dataclass
class PurchaseHistory:
    categories: List[str] = field(default_factory=list)
    brands: List[str] = field(default_factory=list)
    price_range: str = "mid"
    seasonal_patterns: Dict[str, int] = field(default_factory=dict)


@dataclass
class Behavior:
    email_engagement: EmailEngagement = field(default_factory=EmailEngagement)
    content_interaction: ContentInteraction = field(default_factory=ContentInteraction)
    purchase_history: PurchaseHistory = field(default_factory=PurchaseHistory)


@dataclass
class Demographics:
    signup_date: datetime
    country: str = "Unknown"
    timezone: str = "UTC"
    referral_source: str = "direct"


@dataclass
class UserProfile:
    id: str
    email: str
    demographics: Demographics
    preferences: Preferences = field(default_factory=Preferences)
    behavior: Behavior = field(default_factory=Behavior)


@dataclass
class ContentItem:
    """A piece of content in the library. Immutable once registered."""
    id: str
    type: ContentType
    topic: str
    difficulty: ExperienceLevel
    language: Language
    created_at: datetime
    style: Optional[AquascapeStyle] = None
    tags: List[str] = field(default_factory=list)
    engagement_score: Optional[float] = None
    content_format: Optional[ContentFormat] = None


@dataclass
class InteractionEvent:
    type: EventType
    timestamp: datetime
    content_id: Optional[str] = None
    metadata: Dict[str, Any] = field(default_factory=dict)


@dataclass
class PersonalizationFactors:
    style_match: float
    difficulty_match: float
    topic_interest: float
    timing_optimal: float
    language_match: float

    def as_dict(self) -> Dict[str, float]:
        return {
            "style_match": self.style_match,
            "difficulty_match": self.difficulty_match,
            "topic_interest": self.topic_interest,
            "timing_optimal": self.timing_optimal,
            "language_match": self.language_match,
        }


@dataclass
class PersonalizationScore:
    user_id: str
    content_id: str
    relevance_score: float
    engagement_prediction: float
    personalization_factors: PersonalizationFactors


@dataclass
class Recommendation:
    content: ContentItem
    score: PersonalizationScore

    @property
    def content_id(self) -> str:
        return self.content.id


@dataclass
class NewsletterPersonalization:
    """Result of personalizing a newsletter template for one user."""
    content: Dict[str, Any]
    applied_personalizations: List[str]
    optimization: Dict[str, Any]
