# iptv_sync/routes/epg.py
from flask import Blueprint, jsonify
from ..scheduler_jobs import trigger_epg_refresh_now
from ..sync import epg_sync

epg_bp = Blueprint('epg', __name__)

@epg_bp.route('/refresh', methods=['POST'])
def refresh_epg():
    """Queues an EPG import for every enabled playlist with an EPG URL."""
    trigger_epg_refresh_now()
    return jsonify({'status': 'queued', 'message': 'EPG refresh has been triggered.'}), 202

@epg_bp.route('/<path:channel_id>/now')
def now_and_next(channel_id):
    orchestrator = epg_sync()
    current = orchestrator.get_current_program(channel_id)
    upcoming = orchestrator.get_next_program(channel_id)
    return jsonify({
        'channel_id': channel_id,
        'current': current.to_dict() if current else None,
        'next': upcoming.to_dict() if upcoming else None,
    })

@epg_bp.route('/stats')
def epg_stats():
    stats = epg_sync().stats()
    for key in ('earliest_start', 'latest_end'):
        if stats[key] is not None:
            stats[key] = stats[key].isoformat()
    return jsonify(stats)
