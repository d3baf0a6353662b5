import os
import logging
import argparse
import traceback
from flask import Flask, jsonify, request
from flask_migrate import Migrate
from werkzeug.exceptions import HTTPException

# Import db from models
from models import db
# Import database migration function
from db_migrations import check_and_update_database

# Configure logging level from environment variable
def configure_logging():
    """Configure logging based on environment settings"""
    log_level = os.environ.get('LOG_LEVEL', 'WARNING').upper()

    # Map string levels to logging constants
    level_mapping = {
        'DEBUG': logging.DEBUG,
        'INFO': logging.INFO,
        'WARNING': logging.WARNING,
        'ERROR': logging.ERROR,
        'CRITICAL': logging.CRITICAL
    }

    actual_level = level_mapping.get(log_level, logging.WARNING)

    # Setup logging
    logging.basicConfig(
        filename=os.environ.get('LOG_FILE', 'app.log'),
        level=actual_level,
        format='%(asctime)s - %(name)s - %(levelname)s - %(message)s'
    )

    return actual_level

def create_app(test_config=None):
    app = Flask(__name__)

    # Get the absolute path to the current directory
    base_dir = os.path.abspath(os.path.dirname(__file__))
    default_db_uri = f'sqlite:///{os.path.join(base_dir, "instance", "attainment_data.db")}'

    # Configuration
    app.config['SECRET_KEY'] = os.environ.get('SECRET_KEY', 'dev_key_for_local_use')
    app.config['SQLALCHEMY_DATABASE_URI'] = os.environ.get('DATABASE_URL', default_db_uri)
    app.config['SQLALCHEMY_TRACK_MODIFICATIONS'] = False
    app.config['SEED_DEFAULT_SCORING_CONFIG'] = True

    if test_config:
        app.config.update(test_config)

    # Ensure instance folder exists for the default SQLite database
    if app.config['SQLALCHEMY_DATABASE_URI'] == default_db_uri:
        os.makedirs(os.path.join(base_dir, 'instance'), exist_ok=True)

    # Configure logging
    log_level = configure_logging()

    # Log the current configuration
    if log_level <= logging.INFO:
        logging.info(f"Application started with log level: {logging.getLevelName(log_level)}")

    # Initialize extensions with app
    db.init_app(app)
    Migrate(app, db)

    # Register blueprints
    from routes.attainment_routes import attainment_bp
    from routes.config_routes import config_bp
    from routes.semester_routes import semester_bp
    from routes.survey_routes import survey_bp

    app.register_blueprint(attainment_bp)
    app.register_blueprint(config_bp)
    app.register_blueprint(semester_bp)
    app.register_blueprint(survey_bp)

    # Create tables if they don't exist - moved after imports
    with app.app_context():
        db.create_all()
        # Run database migrations to update schema for existing installations
        check_and_update_database(app)
        # Initialize the default scoring policy if none was ever stored
        if app.config['SEED_DEFAULT_SCORING_CONFIG']:
            from attainment.config_resolver import ensure_default_scoring_config
            ensure_default_scoring_config()

    # Error handlers
    @app.errorhandler(404)
    def page_not_found(e):
        return jsonify({'success': False, 'error': 'Not found'}), 404

    @app.errorhandler(Exception)
    def handle_uncaught_exception(e):
        # Pass through HTTP errors (400, 405, ...) with their own status
        if isinstance(e, HTTPException):
            return jsonify({'success': False, 'error': e.description}), e.code

        # Get detailed error information
        error_traceback = traceback.format_exc()
        error_message = str(e)

        # Log the error
        logging.error(f"Uncaught exception on {request.path}: {error_message}\n{error_traceback}")

        return jsonify({
            'success': False,
            'error': error_message
        }), 500

    return app

if __name__ == '__main__':
    # Parse command line arguments
    parser = argparse.ArgumentParser(description='CO/PO Attainment Engine')
    parser.add_argument('port', nargs='?', type=int, default=5000, help='Port to run the application on')
    args = parser.parse_args()

    app = create_app()

    print("=" * 70)
    print(f"Server started! Access the API at: http://localhost:{args.port}")
    print("=" * 70)

    app.run(debug=False, port=args.port)
