"""
Snapshot persistence for personalization stores.

Uses SQLAlchemy ORM for database access. The public API works with the
ProfileStore and the dataclass models, with conversion to/from ORM models
handled internally.
"""

from typing import List, Optional

from sqlalchemy import delete, func, select

from personalization.db_engine import get_engine, get_session
from personalization.models import ContentItem, InteractionEvent
from personalization.orm_models import (
    Base,
    ContentItemORM,
    InteractionEventORM,
    UserProfileORM,
    content_dataclass_to_orm,
    content_orm_to_dataclass,
    event_dataclass_to_orm,
    event_orm_to_dataclass,
    profile_dataclass_to_orm,
    profile_orm_to_dataclass,
)
from personalization.profile_store import ProfileStore
from util.logging_util import setup_logger

logger = setup_logger(__name__)


def init_db():
    """Initialize the database schema."""
    engine = get_engine()
    Base.metadata.create_all(engine)


def save_store(store: ProfileStore) -> int:
    """Replace the stored snapshot with the contents of a store.

    Returns the number of profiles saved.
    """
    with store.lock:
        profiles = store.profiles()
        content = store.content_items()
        histories = {profile.id: store.get_history(profile.id) for profile in profiles}

    with get_session() as session:
        session.execute(delete(InteractionEventORM))
        session.execute(delete(UserProfileORM))
        session.execute(delete(ContentItemORM))

        for position, item in enumerate(content):
            session.add(content_dataclass_to_orm(item, position))
        for position, profile in enumerate(profiles):
            session.add(profile_dataclass_to_orm(profile, position))
            for event in histories[profile.id]:
                session.add(event_dataclass_to_orm(profile.id, event))

    n_events = sum(len(h) for h in histories.values())
    logger.info(f"Saved snapshot: {len(profiles)} profiles, {len(content)} content items, {n_events} events")
    return len(profiles)


def load_store() -> ProfileStore:
    """Rebuild a store from the stored snapshot.

    Derived behavior statistics are restored as saved, not recomputed.
    """
    store = ProfileStore()
    with get_session() as session:
        content_orms = session.execute(
            select(ContentItemORM).order_by(ContentItemORM.position)
        ).scalars().all()
        for orm in content_orms:
            store.register_content(content_orm_to_dataclass(orm))

        profile_orms = session.execute(
            select(UserProfileORM).order_by(UserProfileORM.position)
        ).scalars().all()
        for orm in profile_orms:
            store.add_profile(profile_orm_to_dataclass(orm))

        event_orms = session.execute(
            select(InteractionEventORM).order_by(InteractionEventORM.id)
        ).scalars().all()
        for orm in event_orms:
            store.append_event(orm.user_id, event_orm_to_dataclass(orm))

    logger.info(f"Loaded snapshot: {len(store)} profiles, {len(content_orms)} content items")
    return store


def get_content_item(content_id: str) -> Optional[ContentItem]:
    """Get a stored content item by id."""
    with get_session() as session:
        orm = session.get(ContentItemORM, content_id)
        if orm is None:
            return None
        return content_orm_to_dataclass(orm)


def save_content_item(item: ContentItem) -> None:
    """Insert or replace a single content item, appending new items to the library order."""
    with get_session() as session:
        existing = session.get(ContentItemORM, item.id)
        if existing is not None:
            position = existing.position
        else:
            max_position = session.execute(select(func.max(ContentItemORM.position))).scalar()
            position = 0 if max_position is None else max_position + 1
        session.merge(content_dataclass_to_orm(item, position))


def get_events_for_user(user_id: str) -> List[InteractionEvent]:
    """Get a user's stored interaction events, oldest first."""
    with get_session() as session:
        stmt = (
            select(InteractionEventORM)
            .where(InteractionEventORM.user_id == user_id)
            .order_by(InteractionEventORM.id)
        )
        orms = session.execute(stmt).scalars().all()
        return [event_orm_to_dataclass(orm) for orm in orms]
