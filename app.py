"""
School Results Management System
Flask application factory hosting the grade compilation services
"""

from flask import Flask
from config import Config
from database import db, init_db
from utils.app_logger import setup_logging

def create_app(config_class=Config):
    """Application factory pattern"""
    app = Flask(__name__)
    app.config.from_object(config_class)

    setup_logging(app.config.get('LOG_LEVEL'))

    # Initialize extensions with app
    db.init_app(app)

    # Initialize database
    init_db(app)

    return app

if __name__ == '__main__':
    app = create_app()
    app.run(host='0.0.0.0', port=8000, debug=True, use_reloader=False)
