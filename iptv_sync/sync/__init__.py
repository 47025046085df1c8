from flask import current_app

from .. import db
from .epg import EpgSyncOrchestrator
from .playlists import PlaylistSyncOrchestrator, SyncCounts


def _timeout(app):
    return (app.config['HTTP_CONNECT_TIMEOUT'], app.config['HTTP_READ_TIMEOUT'])


def playlist_sync():
    """Orchestrator wired to the current app's session and HTTP client."""
    app = current_app._get_current_object()
    return PlaylistSyncOrchestrator(db.session, app.extensions['iptv_http'], timeout=_timeout(app))


def epg_sync():
    app = current_app._get_current_object()
    return EpgSyncOrchestrator(db.session, app.extensions['iptv_http'], timeout=_timeout(app))
