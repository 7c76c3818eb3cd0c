#!/usr/bin/env python3
"""
Flask Application Factory

This module provides the create_app factory function for creating
configured Flask application instances.
"""

from datetime import timedelta

from flask import Flask, jsonify, make_response, request
from werkzeug.exceptions import HTTPException

from vmguardian import config as settings
from vmguardian.exceptions import VMGuardianError

# Initialize logging
from vmguardian.utils.logging import configure_logging, get_logger

configure_logging()
logger = get_logger(__name__)


def create_app(config=None):
    """Create and configure the Flask application.

    Args:
        config: Optional configuration dictionary to override defaults

    Returns:
        Configured Flask application instance
    """
    app = Flask(__name__)

    # Configure secret key and session lifetime
    app.secret_key = settings.SECRET_KEY
    app.config['PERMANENT_SESSION_LIFETIME'] = timedelta(hours=settings.SESSION_LIFETIME_HOURS)
    app.config['SESSION_COOKIE_HTTPONLY'] = True
    app.config['SESSION_COOKIE_SAMESITE'] = 'Lax'

    app.config.update(settings.as_flask_config())
    if settings.DATABASE_URL:
        app.config['SQLALCHEMY_DATABASE_URI'] = settings.DATABASE_URL

    # Apply any additional config
    if config:
        app.config.update(config)
        if 'SECRET_KEY' in config:
            app.secret_key = config['SECRET_KEY']

    # Initialize database (SQLAlchemy)
    from vmguardian.models import init_db
    init_db(app)
    logger.info("Database initialized")

    # Register blueprints
    from vmguardian.routes import register_blueprints
    register_blueprints(app)

    @app.errorhandler(VMGuardianError)
    def handle_service_error(error):
        """Service errors carry their HTTP status; API callers get JSON."""
        from vmguardian.models import db

        # Drop any half-applied changes from the failed operation
        db.session.rollback()
        logger.info("%s on %s %s: %s", type(error).__name__, request.method, request.path, error)
        return jsonify({
            'ok': False,
            'error': str(error),
            'type': type(error).__name__
        }), error.code

    # Global error handler for API routes to return JSON instead of HTML
    @app.errorhandler(Exception)
    def handle_api_error(error):
        """Return JSON for API errors instead of HTML."""
        if isinstance(error, HTTPException):
            if not request.path.startswith('/api/'):
                # For non-API routes, use default Flask error handling
                return error
            return jsonify({
                'ok': False,
                'error': error.description,
                'type': type(error).__name__
            }), error.code

        # Log unexpected errors with the URL that caused them
        logger.error(f"Error on {request.method} {request.path}: {error}", exc_info=True)

        if request.path.startswith('/api/'):
            return jsonify({
                'ok': False,
                'error': 'Internal server error',
                'type': type(error).__name__
            }), 500

        return jsonify({'ok': False, 'error': 'Internal server error'}), 500

    # Add favicon route to prevent 404 errors
    @app.route('/favicon.ico')
    def favicon():
        """Favicon endpoint - return 204 No Content to prevent errors."""
        response = make_response('', 204)
        response.headers['Cache-Control'] = 'public, max-age=86400'
        return response

    logger.info("Flask app created successfully (backend=%s)", app.config.get('VM_BACKEND'))
    return app
