"""choreloop Flask application - Main entry point."""

import argparse
import os
import sys
import logging
from pathlib import Path
from flask import Flask, jsonify
from flask_migrate import Migrate
from sqlalchemy import text
from sqlalchemy.exc import SQLAlchemyError

# Configure logging for the entire application
logging.basicConfig(
    level=logging.INFO,
    format='%(asctime)s - %(name)s - %(levelname)s - %(message)s',
    stream=sys.stdout
)

# Import db from models (models.py creates the SQLAlchemy instance)
from models import db
from chore_config import load_chore_config
from errors import ConfigError, StoreError
from jobs.chore_generator import WATERMARK_POLICIES

# Initialize Flask-Migrate
migrate = Migrate()

logger = logging.getLogger(__name__)


def create_app(config_name=None, chore_settings=None):
    """Application factory pattern for Flask app creation.

    Args:
        config_name: Key into config.config (defaults to FLASK_ENV)
        chore_settings: Parsed ChoreSettings; loaded from CHORES_CONFIG if omitted

    Raises:
        ConfigError: chores file or generator settings are invalid
        StoreError: the database could not be initialized
    """
    app = Flask(__name__)

    # Load configuration
    if config_name is None:
        config_name = os.environ.get('FLASK_ENV', 'default')

    from config import config
    if config_name not in config:
        raise ConfigError(f"Unknown configuration: {config_name}")
    app.config.from_object(config[config_name])

    if app.config['WATERMARK_POLICY'] not in WATERMARK_POLICIES:
        raise ConfigError(
            f"WATERMARK_POLICY must be one of {', '.join(WATERMARK_POLICIES)}, "
            f"got {app.config['WATERMARK_POLICY']!r}"
        )

    if chore_settings is None:
        chore_settings = load_chore_config(app.config['CHORES_CONFIG'])
    app.config['CHORE_SETTINGS'] = chore_settings

    # Ensure data directory exists (skip for in-memory database)
    if app.config['SQLALCHEMY_DATABASE_URI'] != "sqlite:///:memory:":
        data_dir = Path(app.config['DATA_DIR'])
        data_dir.mkdir(parents=True, exist_ok=True)

    # Initialize extensions with app
    db.init_app(app)
    migrate.init_app(app, db)

    with app.app_context():
        try:
            db.create_all()
        except SQLAlchemyError as e:
            raise StoreError(f"Could not initialize database: {e}") from e

    # Register routes
    register_routes(app)

    # Initialize background generator
    from scheduler import init_scheduler
    init_scheduler(app, chore_settings)

    return app


def register_routes(app):
    """Register all application routes."""

    from routes import chores_bp, generator_bp

    app.register_blueprint(chores_bp)
    app.register_blueprint(generator_bp)

    @app.route('/health')
    def health():
        """Health check endpoint for monitoring."""
        from scheduler import get_generator

        try:
            # Check database connectivity
            db.session.execute(text('SELECT 1'))
            db_status = 'healthy'
        except SQLAlchemyError as e:
            db.session.rollback()
            db_status = f'unhealthy: {str(e)}'

        generator = get_generator(app)
        return jsonify({
            'status': 'healthy' if db_status == 'healthy' else 'degraded',
            'database': db_status,
            'generator': {
                'running': generator.running,
                'tick_count': generator.tick_count,
                'last_error': generator.last_error,
            }
        })


def main(argv=None):
    """Run the chores web server with the background generator."""
    parser = argparse.ArgumentParser(description='Recurring chore tracker')
    parser.add_argument('--config-path', default=os.environ.get('CHORES_CONFIG', 'config.json'),
                        help='Chores config file to load from')
    parser.add_argument('--host', default='0.0.0.0', help='Interface to listen on')
    parser.add_argument('--port', type=int, default=None,
                        help='Port to listen on (defaults to the config file port)')
    parser.add_argument('--env', default=os.environ.get('FLASK_ENV', 'production'),
                        help='Flask configuration name (defaults to production)')
    args = parser.parse_args(argv)

    try:
        settings = load_chore_config(args.config_path)
        app = create_app(args.env, chore_settings=settings)
    except (ConfigError, StoreError) as e:
        logger.critical(f"Startup failed: {e.message}")
        return 1

    port = args.port or settings.port
    logger.info(f"Listening on {args.host}:{port}")
    app.run(host=args.host, port=port, use_reloader=False)
    return 0


if __name__ == '__main__':
    sys.exit(main())
