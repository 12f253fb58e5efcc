"""
Dependencies for database sessions and affiliate lookup.
"""
from typing import Generator
from fastapi import Depends
from sqlalchemy.orm import Session
from app.database import SessionLocal, LedgerSessionLocal
from app.models.db import Affiliate
from app.services.affiliate_store import get_by_line_user_id
from app.utils import get_logger

logger = get_logger(__name__)

def get_db() -> Generator[Session, None, None]:
    """
    Local store session dependency.
    Ensures proper session lifecycle management with automatic cleanup.

    Yields:
        Session: SQLAlchemy session bound to the local/event store
    """
    db = SessionLocal()
    try:
        yield db
    except Exception as e:
        logger.error("Database session error", store="local", error=str(e), exc_info=True)
        db.rollback()
        raise
    finally:
        db.close()

def get_ledger_db() -> Generator[Session, None, None]:
    """Ledger ("main system") store session dependency."""
    db = LedgerSessionLocal()
    try:
        yield db
    except Exception as e:
        logger.error("Database session error", store="ledger", error=str(e), exc_info=True)
        db.rollback()
        raise
    finally:
        db.close()

def get_affiliate_for_user(user_id: str, db: Session = Depends(get_db)) -> Affiliate:
    """
    Resolve the affiliate linked to an external login id.

    Raises:
        NotFoundError: If no affiliate is linked to ``user_id``
    """
    affiliate = get_by_line_user_id(db, user_id)
    logger.debug("Affiliate resolved for user", user_id=user_id, affiliate_code=affiliate.affiliate_code)
    return affiliate
