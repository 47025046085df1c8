# run.py
import os
from iptv_sync import create_app

# Create the Flask app instance using the app factory
app = create_app()

if __name__ == '__main__':
    use_debug = os.environ.get('FLASK_DEBUG', 'false').lower() == 'true'
    host = os.environ.get('FLASK_RUN_HOST', '0.0.0.0')
    port = int(os.environ.get('FLASK_RUN_PORT', 5000))

    # The reloader would start a second scheduler in the child process.
    use_reloader = False

    app.logger.info(" --- Starting IPTV Sync --- ")
    app.logger.info(f" Config: debug={use_debug}, host={host}, port={port}, reloader={use_reloader}")
    app.logger.info(f" Database: {app.config.get('SQLALCHEMY_DATABASE_URI')}")

    app.run(host=host, port=port, debug=use_debug, threaded=True, use_reloader=use_reloader)
