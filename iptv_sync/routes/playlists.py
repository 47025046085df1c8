# iptv_sync/routes/playlists.py
from flask import Blueprint, request, jsonify, current_app
from .. import db, catalog
from ..models import PlaylistSource
from ..forms import PlaylistForm, XtreamPlaylistForm, UpdateIntervalForm
from ..scheduler_jobs import (
    schedule_playlist_refresh_job, unschedule_playlist_refresh_job, trigger_playlist_sync_now
)

playlists_bp = Blueprint('playlists', __name__)

def _form_errors(form):
    return jsonify({'status': 'error', 'errors': form.errors}), 400

def _schedule_if_enabled(source):
    if current_app.config.get('SCHEDULER_ENABLED') and source.enabled and source.auto_refresh:
        schedule_playlist_refresh_job(source.id, source.refresh_interval_hours)

@playlists_bp.route('/')
def list_playlists():
    sources = PlaylistSource.query.order_by(PlaylistSource.id).all()
    return jsonify([source.to_dict() for source in sources])

@playlists_bp.route('/add', methods=['POST'])
def add_playlist():
    """Adds an M3U playlist and schedules its refresh."""
    form = PlaylistForm()
    if not form.validate_on_submit():
        return _form_errors(form)
    if PlaylistSource.query.filter_by(url=form.url.data).first():
        return jsonify({'status': 'error', 'message': 'Playlist URL already exists.'}), 409

    source = catalog.add_playlist(form.name.data, form.url.data, epg_url=form.epg_url.data or None,
                                  refresh_interval_hours=form.interval.data)
    _schedule_if_enabled(source)
    current_app.logger.info(f"Added playlist {source.id}: {source.url}")
    return jsonify(source.to_dict()), 201

@playlists_bp.route('/add_xtream', methods=['POST'])
def add_xtream_playlist():
    form = XtreamPlaylistForm()
    if not form.validate_on_submit():
        return _form_errors(form)
    if PlaylistSource.query.filter_by(url=form.server.data).first():
        return jsonify({'status': 'error', 'message': 'Server already exists.'}), 409

    source = catalog.add_xtream_playlist(form.name.data, form.server.data, form.username.data, form.password.data,
                                         epg_url=form.epg_url.data or None,
                                         refresh_interval_hours=form.interval.data)
    _schedule_if_enabled(source)
    current_app.logger.info(f"Added Xtream account {source.id}: {source.url}")
    return jsonify(source.to_dict()), 201

@playlists_bp.route('/delete/<int:source_id>', methods=['POST'])
def delete_playlist(source_id):
    source = PlaylistSource.query.get_or_404(source_id)
    if current_app.config.get('SCHEDULER_ENABLED'):
        unschedule_playlist_refresh_job(source_id)
    catalog.delete_playlist(source)
    return jsonify({'status': 'success', 'message': 'Playlist deleted and job unscheduled.'})

@playlists_bp.route('/toggle/<int:source_id>', methods=['POST'])
def toggle_playlist(source_id):
    source = PlaylistSource.query.get_or_404(source_id)
    catalog.set_playlist_enabled(source, not source.enabled)
    if source.enabled:
        _schedule_if_enabled(source)
    elif current_app.config.get('SCHEDULER_ENABLED'):
        unschedule_playlist_refresh_job(source_id)
    return jsonify(source.to_dict())

@playlists_bp.route('/refresh/<int:source_id>', methods=['POST'])
def force_refresh_playlist(source_id):
    source = PlaylistSource.query.get_or_404(source_id)
    if not source.enabled:
        return jsonify({'status': 'error', 'message': 'Cannot refresh a disabled playlist. Please enable it first.'}), 409
    trigger_playlist_sync_now(source.id)
    return jsonify({'status': 'queued', 'message': f'Manual refresh for playlist {source.id} has been triggered.'}), 202

@playlists_bp.route('/update_interval/<int:source_id>', methods=['POST'])
def update_playlist_interval(source_id):
    source = PlaylistSource.query.get_or_404(source_id)
    form = UpdateIntervalForm(request.form)
    if not form.validate():
        return jsonify({'status': 'error', 'message': 'Invalid interval selected.'}), 400
    source.refresh_interval_hours = form.interval.data
    db.session.commit()
    _schedule_if_enabled(source)
    return jsonify(source.to_dict())
