"""
Database configuration and initialization for School Results Management System
"""

from flask_sqlalchemy import SQLAlchemy
from sqlalchemy import event
from sqlalchemy.engine import Engine
import sqlite3

from utils.app_logger import get_logger

logger = get_logger('database')

# Initialize SQLAlchemy instance
db = SQLAlchemy()

@event.listens_for(Engine, "connect")
def set_sqlite_pragma(dbapi_connection, connection_record):
    """Enable foreign key constraints for SQLite"""
    if isinstance(dbapi_connection, sqlite3.Connection):
        cursor = dbapi_connection.cursor()
        cursor.execute("PRAGMA foreign_keys=ON")
        cursor.close()

def init_db(app):
    """Initialize database with application context"""
    with app.app_context():
        # Import all models to ensure they are registered
        from models import (
            School, AcademicYear, Semester, SchoolClass, Subject, Teacher,
            Student, TeachingAssignment, AssessmentType, AssessmentWeight,
            Mark, GradeSubmission, WeightTemplate, PromotionCriteria, SemesterResult,
            SubjectResult, Roster
        )

        # Create all tables
        db.create_all()

        logger.info("Database initialized at %s", app.config.get('SQLALCHEMY_DATABASE_URI'))

class DatabaseError(Exception):
    """Custom exception for database operations"""
    pass

def handle_db_error(func):
    """Decorator to handle database errors gracefully"""
    def wrapper(*args, **kwargs):
        try:
            return func(*args, **kwargs)
        except Exception as e:
            db.session.rollback()
            logger.exception("Database operation %s failed", func.__name__)
            raise DatabaseError(f"Database operation failed: {str(e)}")
    wrapper.__name__ = func.__name__
    wrapper.__doc__ = func.__doc__
    return wrapper
