"""
Configuration settings for School Results Management System
"""

import os

class Config:
    """Base configuration class"""

    # Flask settings
    SECRET_KEY = os.environ.get('SECRET_KEY') or 'school-results-secret-key-2024'

    # Database settings
    SQLALCHEMY_DATABASE_URI = os.environ.get('DATABASE_URL') or 'sqlite:///school_results.db'
    SQLALCHEMY_TRACK_MODIFICATIONS = False

    # Logging settings
    LOG_LEVEL = os.environ.get('LOG_LEVEL', 'INFO').upper()

    # Grade compilation settings
    SCORE_DECIMALS = 2
    COMPILE_LOCK_TIMEOUT = float(os.environ.get('COMPILE_LOCK_TIMEOUT', 30))  # seconds
    COMPILE_REQUIRE_SUBMISSION = True  # Only submitted/approved grade sheets count
    COUNTED_SUBMISSION_STATUSES = ('submitted', 'approved')


class TestingConfig(Config):
    """Configuration used by the unit tests"""

    TESTING = True
    SQLALCHEMY_DATABASE_URI = 'sqlite:///:memory:'
    COMPILE_LOCK_TIMEOUT = 1
