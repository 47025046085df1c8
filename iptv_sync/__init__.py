import logging
from flask import Flask, request, jsonify
from werkzeug.exceptions import HTTPException
from flask_sqlalchemy import SQLAlchemy
from flask_wtf.csrf import CSRFProtect
from apscheduler.schedulers.background import BackgroundScheduler
from apscheduler.jobstores.sqlalchemy import SQLAlchemyJobStore
from .config import Config

# --- Initialize Extensions ---
db = SQLAlchemy()
csrf = CSRFProtect()
scheduler = BackgroundScheduler(daemon=True, timezone="UTC")

def create_app(config_class=Config):
    """
    Creates and configures the Flask application instance.
    This is the application factory pattern.
    """
    app = Flask(
        __name__,
        instance_path=config_class.INSTANCE_PATH
    )
    app.config.from_object(config_class)

    # --- Logging Setup ---
    logging.basicConfig(level=logging.INFO, format='%(asctime)s %(levelname)s [%(name)s.%(funcName)s]: %(message)s')
    logging.getLogger('apscheduler').setLevel(logging.WARNING)
    logging.getLogger('sqlalchemy.engine').setLevel(logging.WARNING)

    app.logger.info(f"Instance path set to: {app.instance_path}")

    # --- Initialize Flask Extensions with the App ---
    db.init_app(app)
    csrf.init_app(app)

    # One HTTP session per process, shared by every sync.
    from .http import shared_session
    app.extensions['iptv_http'] = shared_session(app.config['HTTP_USER_AGENT'])

    with app.app_context():
        # --- Import and Register Blueprints ---
        from .routes.playlists import playlists_bp
        from .routes.epg import epg_bp
        from .routes.catalog import catalog_bp

        app.register_blueprint(playlists_bp, url_prefix='/playlists')
        app.register_blueprint(epg_bp, url_prefix='/epg')
        app.register_blueprint(catalog_bp, url_prefix='/catalog')

        app.logger.info("Blueprints registered.")

        # --- Database and Scheduler Initialization ---
        initialize_database_and_scheduler(app)

    @app.errorhandler(Exception)
    def handle_exception(e):
        if isinstance(e, HTTPException):
            return jsonify({'status': 'error', 'message': e.description}), e.code
        app.logger.error(f"Unhandled exception on {request.path} [{request.method}]", exc_info=e)
        if app.debug:
            raise e
        return jsonify({'status': 'error', 'message': 'Internal server error. The error has been logged.'}), 500

    return app

def initialize_database_and_scheduler(app):
    """
    Ensures database tables exist and initializes/starts the scheduler.
    """
    app.logger.info("Application initialization: Ensuring database tables exist...")
    try:
        from . import models
        db.create_all()
        app.logger.info("SQLAlchemy tables checked/created.")
    except Exception as e:
        app.logger.error(f"Error during initial db.create_all(): {e}", exc_info=True)

    if not app.config.get('SCHEDULER_ENABLED', True):
        app.logger.info("Scheduler disabled by configuration.")
        return

    if not scheduler.running:
        jobstore_url = app.config['SQLALCHEMY_DATABASE_URI']
        scheduler.add_jobstore(SQLAlchemyJobStore(url=jobstore_url), 'default')

        app.logger.info("Reloading and scheduling background jobs...")
        from . import scheduler_jobs

        scheduler.remove_all_jobs()
        scheduler.add_job(
            func=scheduler_jobs.scheduled_cleanup_job,
            trigger='cron', hour=4, minute=5, id='daily_cleanup_job',
            name='Daily Cleanup of Expired Programmes', replace_existing=True
        )
        app.logger.info("Scheduled daily cleanup job.")

        scheduler_jobs.schedule_all_playlist_refreshes()
        scheduler_jobs.schedule_epg_refresh_job(app.config['EPG_REFRESH_HOURS'])

        try:
            scheduler.start()
            app.logger.info("APScheduler started successfully.")
        except Exception as e:
            app.logger.error(f"APScheduler failed to start: {e}", exc_info=True)
    else:
        app.logger.info("APScheduler is already running.")
