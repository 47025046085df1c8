# setup_db.py
import sys
from pathlib import Path

# Add the project root to the Python path to allow for package imports
project_root = Path(__file__).parent
sys.path.insert(0, str(project_root))

from iptv_sync import create_app, db
from iptv_sync.config import Config

class SetupConfig(Config):
    SCHEDULER_ENABLED = False

def init_db():
    """
    Creates the catalog schema (playlists, channels, movies, series, episodes
    and EPG programmes) without starting the background scheduler.
    """
    print("Creating Flask app for database initialization...")
    app = create_app(SetupConfig)

    with app.app_context():
        print(f"Initializing database schema at: {app.config['SQLALCHEMY_DATABASE_URI']}")
        db.create_all()
        print("Database schema ensured.")

    print("Database initialization complete.")

if __name__ == '__main__':
    init_db()
