"""Swap latitude/longitude on properties saved with the pair reversed."""

import logging

from app.db.session import SessionLocal
from app.models.property import Property

logger = logging.getLogger(__name__)


def fix_coordinates(db) -> int:
    # A latitude outside [-90, 90] can only be a longitude
    props = (
        db.query(Property)
        .filter(Property.latitude != None, (Property.latitude > 90) | (Property.latitude < -90))  # noqa: E711
        .all()
    )
    logger.info("Fixing wrong coordinates: %d", len(props))

    for p in props:
        p.latitude, p.longitude = p.longitude, p.latitude
        logger.info("Fixed %s", p.id)

    db.commit()
    return len(props)


if __name__ == "__main__":
    logging.basicConfig(level=logging.INFO)
    db = SessionLocal()
    try:
        fix_coordinates(db)
    finally:
        db.close()
    logger.info("All done!")
