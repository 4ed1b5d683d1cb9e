"""Create the schema and seed the default rooms."""

import logging

from sqlalchemy.orm import Session

from parlor.db.session import SessionLocal, create_tables
from parlor.models import ChatRoom

logger = logging.getLogger(__name__)

DEFAULT_ROOMS = (
    ("General", "General discussion", "Anything goes"),
    ("Crypto", "Digital assets and markets", "Crypto"),
    ("Day Trades", "Intraday setups and calls", "Trading"),
)


def seed_rooms(db: Session) -> int:
    """Insert the default rooms that do not exist yet.

    Returns:
        Number of rooms created.
    """
    existing = {name for (name,) in db.query(ChatRoom.name).all()}
    created = 0
    for name, description, topic in DEFAULT_ROOMS:
        if name in existing:
            continue
        db.add(ChatRoom(name=name, description=description, topic=topic, is_active=True))
        created += 1
    db.commit()
    return created


def init_db() -> None:
    """Initialize the database by creating all tables and default rooms."""
    create_tables()
    with SessionLocal() as db:
        created = seed_rooms(db)
    logger.info("Database initialized; %s room(s) seeded", created)


if __name__ == "__main__":
    logging.basicConfig(level=logging.INFO)
    init_db()
