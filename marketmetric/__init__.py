"""
MarketMetric Application Factory
"""
import os
from datetime import datetime, timezone
from flask import Flask, jsonify
from flask_sqlalchemy import SQLAlchemy
from config import config

db = SQLAlchemy()

# Version info
APP_VERSION = os.environ.get("APP_VERSION", "2026.10")
BUILD_TIME = os.environ.get("BUILD_TIME", "")
GIT_COMMIT = os.environ.get("GIT_COMMIT", "")


def init_llm(app):
    """Build the LLM client once; a missing key is remembered, not raised."""
    from marketmetric.errors import ConfigurationError
    from marketmetric.services.llm_service import init_client

    app.extensions['llm_client'] = None
    app.extensions['llm_error'] = None
    try:
        app.extensions['llm_client'] = init_client(app.config.get('LLM_API_KEY', ''), app.config.get('LLM_BASE_URL'))
    except ConfigurationError as e:
        app.extensions['llm_error'] = e
        app.logger.error('LLM client not initialized: %s', e.message)


def create_app(config_name='default'):
    app = Flask(__name__)
    app.config.from_object(config[config_name])

    # Initialize extensions
    db.init_app(app)

    from marketmetric.services.storage_service import storage_from_config
    app.extensions['storage'] = storage_from_config(app.config)
    init_llm(app)

    # Register blueprints
    from marketmetric.api import api_bp
    app.register_blueprint(api_bp)

    # Health check endpoint
    @app.route('/healthz')
    def healthz():
        """Health check for load balancers and monitoring"""
        try:
            from sqlalchemy import text
            db.session.execute(text('SELECT 1'))
            db_status = "ok"
        except Exception as e:
            db_status = f"error: {e}"

        return jsonify({
            "status": "ok" if db_status == "ok" else "degraded",
            "version": APP_VERSION,
            "database": db_status,
            "llm_ready": app.extensions['llm_client'] is not None,
            "timestamp": datetime.now(timezone.utc).isoformat()
        })

    # Version endpoint
    @app.route('/version')
    def version():
        """Version and build info"""
        return jsonify({
            "version": APP_VERSION,
            "build_time": BUILD_TIME,
            "git_commit": GIT_COMMIT,
            "features": {
                "scorecard": True,
                "summary": True,
                "mock_mode": bool(app.config.get('USE_MOCK_DATA')),
                "default_mode": app.config.get('ANALYSIS_MODE'),
            }
        })

    with app.app_context():
        from sqlalchemy import inspect
        from marketmetric import models  # noqa: F401  registers tables

        # Only create tables if they don't exist (safe for existing DB)
        inspector = inspect(db.engine)
        if not inspector.get_table_names():
            app.logger.info('No tables found, creating...')
            db.create_all()

    return app
