import os
from pathlib import Path

# Define the base directory of the application
basedir = os.path.abspath(os.path.dirname(__file__))

class Config:
    """Base configuration class."""
    SECRET_KEY = os.environ.get('FLASK_SECRET_KEY', 'a-very-secret-dev-key-that-should-be-changed')

    # --- Database Configuration ---
    DATABASE_FILENAME = 'catalog.db'

    # DATA_DIR overrides the instance path, e.g. a mounted /config volume in Docker.
    INSTANCE_PATH = os.environ.get('DATA_DIR', os.path.join(basedir, 'instance'))

    DATABASE_PATH = os.path.join(INSTANCE_PATH, DATABASE_FILENAME)

    # Ensure the instance directory exists
    try:
        Path(INSTANCE_PATH).mkdir(parents=True, exist_ok=True)
    except Exception as e:
        print(f"Warning: Could not create instance directory at {INSTANCE_PATH}: {e}")

    SQLALCHEMY_DATABASE_URI = os.environ.get('DATABASE_URL', f"sqlite:///{DATABASE_PATH}")
    SQLALCHEMY_TRACK_MODIFICATIONS = False
    SQLALCHEMY_ECHO = False

    # --- Network ---
    HTTP_CONNECT_TIMEOUT = 30
    HTTP_READ_TIMEOUT = 60
    HTTP_USER_AGENT = 'IPTV-Sync/1.0'

    # --- Sync Settings ---
    DEFAULT_PLAYLIST_REFRESH_HOURS = 24
    EPG_REFRESH_HOURS = 12
    SYNC_MAX_RETRIES = 3
    SYNC_RETRY_BASE_MINUTES = 60

    # Programmes are kept this many hours after they ended.
    EPG_DATA_RETENTION_HOURS = 0

    # Background jobs (interval refreshes, retries, cleanup)
    SCHEDULER_ENABLED = os.environ.get('SCHEDULER_ENABLED', 'true').lower() == 'true'


class TestConfig(Config):
    """Configuration used by the test suite."""
    TESTING = True
    SQLALCHEMY_DATABASE_URI = 'sqlite://'
    WTF_CSRF_ENABLED = False
    SCHEDULER_ENABLED = False
