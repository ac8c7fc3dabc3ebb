"""
SQLAlchemy ORM models for personalization snapshots.

These models are internal to the database layer. The public interface
uses the dataclass models from models.py.
"""

import json
from datetime import datetime
from typing import Any, Dict, List, Optional

from sqlalchemy import DateTime, Float, Index, Integer, Text
from sqlalchemy.orm import DeclarativeBase, Mapped, mapped_column
from sqlalchemy.types import TypeDecorator

from personalization.models import (
    AquascapeStyle,
    Behavior,
    ContentFormat,
    ContentInteraction,
    ContentItem,
    ContentType,
    Demographics,
    EmailEngagement,
    EventType,
    ExperienceLevel,
    InteractionEvent,
    Language,
    Preferences,
    PurchaseHistory,
    SendFrequency,
    UserProfile,
)


class JSONText(TypeDecorator):
    """Stores a JSON-serializable list or dict as text."""

    impl = Text
    cache_ok = True

    def process_bind_param(self, value: Any, dialect) -> Optional[str]:
        if value is None:
            return None
        return json.dumps(value)

    def process_result_value(self, value: Optional[str], dialect) -> Any:
        if value is None:
            return None
        return json.loads(value)


class Base(DeclarativeBase):
    pass


class UserProfileORM(Base):
    """SQLAlchemy model for user_profiles table."""

    __tablename__ = "user_profiles"

    user_id: Mapped[str] = mapped_column(Text, primary_key=True)
    email: Mapped[str] = mapped_column(Text, nullable=False, default="")
    preferences: Mapped[dict] = mapped_column(JSONText, nullable=False)
    behavior: Mapped[dict] = mapped_column(JSONText, nullable=False)
    signup_date: Mapped[datetime] = mapped_column(DateTime, nullable=False)
    country: Mapped[str] = mapped_column(Text, nullable=False)
    timezone: Mapped[str] = mapped_column(Text, nullable=False)
    referral_source: Mapped[str] = mapped_column(Text, nullable=False)
    position: Mapped[int] = mapped_column(Integer, nullable=False, default=0)


class InteractionEventORM(Base):
    """SQLAlchemy model for interaction_events table."""

    __tablename__ = "interaction_events"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    user_id: Mapped[str] = mapped_column(Text, nullable=False)
    event_type: Mapped[str] = mapped_column(Text, nullable=False)
    content_id: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    timestamp: Mapped[datetime] = mapped_column(DateTime, nullable=False)
    # 'metadata' is reserved in SQLAlchemy, so we use 'metadata_' as the Python attribute
    metadata_: Mapped[Optional[dict]] = mapped_column("metadata", JSONText, nullable=True)

    __table_args__ = (
        Index("idx_interaction_events_user_id", "user_id"),
    )


class ContentItemORM(Base):
    """SQLAlchemy model for content_items table."""

    __tablename__ = "content_items"

    content_id: Mapped[str] = mapped_column(Text, primary_key=True)
    content_type: Mapped[str] = mapped_column(Text, nullable=False)
    topic: Mapped[str] = mapped_column(Text, nullable=False)
    style: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    difficulty: Mapped[str] = mapped_column(Text, nullable=False)
    tags: Mapped[Optional[List[str]]] = mapped_column(JSONText, nullable=True)
    language: Mapped[str] = mapped_column(Text, nullable=False)
    engagement_score: Mapped[Optional[float]] = mapped_column(Float, nullable=True)
    content_format: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    created_at: Mapped[datetime] = mapped_column(DateTime, nullable=False)
    position: Mapped[int] = mapped_column(Integer, nullable=False, default=0)


# Conversion functions between ORM models and dataclasses


def preferences_to_dict(preferences: Preferences) -> Dict[str, Any]:
    return {
        "aquascaping_styles": [s.value for s in preferences.aquascaping_styles],
        "experience_level": preferences.experience_level.value,
        "tank_sizes": list(preferences.tank_sizes),
        "preferred_plants": list(preferences.preferred_plants),
        "equipment_brands": list(preferences.equipment_brands),
        "content_types": [c.value for c in preferences.content_types],
        "languages": [lang.value for lang in preferences.languages],
    }


def preferences_from_dict(data: Dict[str, Any]) -> Preferences:
    return Preferences(
        aquascaping_styles=[AquascapeStyle(s) for s in data.get("aquascaping_styles", [])],
        experience_level=ExperienceLevel(data["experience_level"]),
        tank_sizes=data.get("tank_sizes", []),
        preferred_plants=data.get("preferred_plants", []),
        equipment_brands=data.get("equipment_brands", []),
        content_types=[ContentFormat(c) for c in data.get("content_types", [])],
        languages=[Language(lang) for lang in data.get("languages", ["en"])],
    )


def behavior_to_dict(behavior: Behavior) -> Dict[str, Any]:
    email = behavior.email_engagement
    interaction = behavior.content_interaction
    purchases = behavior.purchase_history
    return {
        "email_engagement": {
            "open_rate": email.open_rate,
            "click_rate": email.click_rate,
            "best_send_times": list(email.best_send_times),
            "preferred_frequency": email.preferred_frequency.value,
        },
        "content_interaction": {
            "most_viewed_categories": list(interaction.most_viewed_categories),
            "avg_time_spent": interaction.avg_time_spent,
            "sharing_frequency": interaction.sharing_frequency,
            "comment_engagement": interaction.comment_engagement,
            "content_views": interaction.content_views,
            "style_weights": dict(interaction.style_weights),
            "tag_weights": dict(interaction.tag_weights),
            "topic_weights": dict(interaction.topic_weights),
        },
        "purchase_history": {
            "categories": list(purchases.categories),
            "brands": list(purchases.brands),
            "price_range": purchases.price_range,
            "seasonal_patterns": dict(purchases.seasonal_patterns),
        },
    }


def behavior_from_dict(data: Dict[str, Any]) -> Behavior:
    email = dict(data.get("email_engagement", {}))
    if "preferred_frequency" in email:
        email["preferred_frequency"] = SendFrequency(email["preferred_frequency"])
    return Behavior(
        email_engagement=EmailEngagement(**email),
        content_interaction=ContentInteraction(**data.get("content_interaction", {})),
        purchase_history=PurchaseHistory(**data.get("purchase_history", {})),
    )


def profile_dataclass_to_orm(profile: UserProfile, position: int) -> UserProfileORM:
    """Convert a UserProfile dataclass to a UserProfileORM instance."""
    return UserProfileORM(
        user_id=profile.id,
        email=profile.email,
        preferences=preferences_to_dict(profile.preferences),
        behavior=behavior_to_dict(profile.behavior),
        signup_date=profile.demographics.signup_date,
        country=profile.demographics.country,
        timezone=profile.demographics.timezone,
        referral_source=profile.demographics.referral_source,
        position=position,
    )


def profile_orm_to_dataclass(orm: UserProfileORM) -> UserProfile:
    """Convert a UserProfileORM instance to a UserProfile dataclass."""
    return UserProfile(
        id=orm.user_id,
        email=orm.email,
        demographics=Demographics(
            signup_date=orm.signup_date,
            country=orm.country,
            timezone=orm.timezone,
            referral_source=orm.referral_source,
        ),
        preferences=preferences_from_dict(orm.preferences),
        behavior=behavior_from_dict(orm.behavior),
    )


def event_dataclass_to_orm(user_id: str, event: InteractionEvent) -> InteractionEventORM:
    """Convert an InteractionEvent dataclass to an InteractionEventORM instance."""
    return InteractionEventORM(
        user_id=user_id,
        event_type=event.type.value,
        content_id=event.content_id,
        timestamp=event.timestamp,
        metadata_=event.metadata if event.metadata else None,
    )


def event_orm_to_dataclass(orm: InteractionEventORM) -> InteractionEvent:
    """Convert an InteractionEventORM instance to an InteractionEvent dataclass."""
    return InteractionEvent(
        type=EventType(orm.event_type),
        timestamp=orm.timestamp,
        content_id=orm.content_id,
        metadata=orm.metadata_ or {},
    )


def content_dataclass_to_orm(item: ContentItem, position: int) -> ContentItemORM:
    """Convert a ContentItem dataclass to a ContentItemORM instance."""
    return ContentItemORM(
        content_id=item.id,
        content_type=item.type.value,
        topic=item.topic,
        style=item.style.value if item.style else None,
        difficulty=item.difficulty.value,
        tags=list(item.tags) if item.tags else None,
        language=item.language.value,
        engagement_score=item.engagement_score,
        content_format=item.content_format.value if item.content_format else None,
        created_at=item.created_at,
        position=position,
    )


def content_orm_to_dataclass(orm: ContentItemORM) -> ContentItem:
    """Convert a ContentItemORM instance to a ContentItem dataclass."""
    return ContentItem(
        id=orm.content_id,
        type=ContentType(orm.content_type),
        topic=orm.topic,
        difficulty=ExperienceLevel(orm.difficulty),
        language=Language(orm.language),
        created_at=orm.created_at,
        style=AquascapeStyle(orm.style) if orm.style else None,
        tags=orm.tags or [],
        engagement_score=orm.engagement_score,
        content_format=ContentFormat(orm.content_format) if orm.content_format else None,
    )
