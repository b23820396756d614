"""
KM Media Training Institute API
Application factory
"""

import os
from flask import Flask, jsonify
from flask_cors import CORS
from werkzeug.exceptions import HTTPException
from kmmedia.models import db
from kmmedia.routes import (
    auth_bp, users_bp, courses_bp, registrations_bp, payments_bp, materials_bp,
    assessments_bp, dashboard_bp, notifications_bp, enquiries_bp, health_bp, stories_bp, trainers_bp
)
from kmmedia.utils import KMMediaException, setup_logging, log_info, log_error, create_response


def register_error_handlers(app: Flask) -> None:
    """Errors that escape a route still come back in the standard envelope"""

    @app.errorhandler(KMMediaException)
    def handle_app_error(e):
        db.session.rollback()
        return jsonify(create_response(False, str(e))), e.status_code

    @app.errorhandler(HTTPException)
    def handle_http_error(e):
        return jsonify(create_response(False, e.description or e.name)), e.code

    @app.errorhandler(Exception)
    def handle_unexpected_error(e):
        db.session.rollback()
        log_error("Unhandled error", e)
        return jsonify(create_response(False, "An unexpected error occurred")), 500


def create_app(config_name: str = None) -> Flask:
    """
    Application factory

    Args:
        config_name: Configuration name (development, production, testing)

    Returns:
        Flask application instance
    """
    app = Flask(__name__)

    # Load configuration
    if config_name is None:
        config_name = os.environ.get('FLASK_ENV', 'development')

    # Import and set configuration
    from config import config
    config_class = config.get(config_name, config['default'])
    app.config.from_object(config_class)
    config_class.init_app(app)

    # Initialize extensions
    db.init_app(app)
    CORS(app, origins=[app.config['CLIENT_URL'], 'http://localhost:3000'], supports_credentials=True)

    # Setup logging
    with app.app_context():
        setup_logging()
        log_info(f"Application initialized ({config_name})")

    # Register blueprints
    app.register_blueprint(auth_bp, url_prefix='/api/auth')
    app.register_blueprint(users_bp, url_prefix='/api/admin/users')
    app.register_blueprint(courses_bp, url_prefix='/api/courses')
    app.register_blueprint(registrations_bp, url_prefix='/api/registrations')
    app.register_blueprint(payments_bp, url_prefix='/api/payments')
    app.register_blueprint(materials_bp, url_prefix='/api')
    app.register_blueprint(assessments_bp, url_prefix='/api')
    app.register_blueprint(dashboard_bp, url_prefix='/api/dashboard')
    app.register_blueprint(notifications_bp, url_prefix='/api/notifications')
    app.register_blueprint(enquiries_bp, url_prefix='/api/enquiries')
    app.register_blueprint(stories_bp, url_prefix='/api/stories')
    app.register_blueprint(trainers_bp, url_prefix='/api/trainers')
    app.register_blueprint(health_bp, url_prefix='/api')

    register_error_handlers(app)

    # Create database tables
    with app.app_context():
        db.create_all()
        log_info("Database tables ready")

    return app
