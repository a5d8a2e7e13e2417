"""
Database helper utilities for School Results Management System
"""

from database import db
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from utils.app_logger import get_logger

logger = get_logger('db')

def safe_add_and_commit(obj):
    """Safely add object to database with error handling"""
    try:
        db.session.add(obj)
        db.session.commit()
        return True, "Record added successfully"
    except IntegrityError as e:
        db.session.rollback()
        logger.warning("Integrity error adding %r: %s", obj, e)
        if 'UNIQUE constraint failed' in str(e):
            return False, "Record with this identifier already exists"
        return False, "Database constraint violation"
    except SQLAlchemyError as e:
        db.session.rollback()
        logger.exception("Error adding %r", obj)
        return False, f"Database error: {str(e)}"

def safe_update_and_commit():
    """Safely commit database changes with error handling"""
    try:
        db.session.commit()
        return True, "Records updated successfully"
    except IntegrityError as e:
        db.session.rollback()
        logger.warning("Integrity error on commit: %s", e)
        if 'UNIQUE constraint failed' in str(e):
            return False, "Duplicate entry found"
        return False, "Database constraint violation"
    except SQLAlchemyError as e:
        db.session.rollback()
        logger.exception("Error committing changes")
        return False, f"Database error: {str(e)}"

def get_or_none(model, object_id):
    """Get object by primary key or None"""
    if object_id is None:
        return None
    return db.session.get(model, object_id)
