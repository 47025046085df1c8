# iptv_sync/routes/catalog.py
from flask import Blueprint, request, jsonify, abort
from .. import catalog
from ..models import Channel, Episode, Series

catalog_bp = Blueprint('catalog', __name__)

def _favorites_only():
    return request.args.get('favorite') in ('1', 'true')

@catalog_bp.route('/channels')
def list_channels():
    """Channels filtered by ?group=, ?country=, ?q=, ?source_id= and ?favorite=1."""
    query = catalog.channels_query(
        source_id=request.args.get('source_id', type=int),
        group=request.args.get('group'),
        country=request.args.get('country'),
        search=request.args.get('q'),
        favorites_only=_favorites_only(),
    )
    return jsonify([channel.to_dict() for channel in query.all()])

@catalog_bp.route('/channels/groups')
def list_groups():
    return jsonify(catalog.channel_groups())

@catalog_bp.route('/channels/countries')
def list_countries():
    return jsonify(catalog.channel_countries())

@catalog_bp.route('/channels/<int:channel_id>/stream')
def channel_stream(channel_id):
    channel = Channel.query.get_or_404(channel_id)
    stream = catalog.stream_request(channel)
    return jsonify({'url': stream.url, 'headers': stream.headers})

@catalog_bp.route('/<kind>/<int:item_id>/favorite', methods=['POST'])
def toggle_favorite(kind, item_id):
    model = catalog.FAVORITE_KINDS.get(kind)
    if model is None:
        abort(404, description=f"Unknown catalog kind '{kind}'.")
    item = model.query.get_or_404(item_id)
    return jsonify({'id': item.id, 'is_favorite': catalog.toggle_favorite(item)})

@catalog_bp.route('/movies')
def list_movies():
    query = catalog.movies_query(
        source_id=request.args.get('source_id', type=int),
        genre=request.args.get('genre'),
        year=request.args.get('year', type=int),
        search=request.args.get('q'),
        favorites_only=_favorites_only(),
    )
    return jsonify([movie.to_dict() for movie in query.all()])

@catalog_bp.route('/series')
def list_series():
    query = catalog.series_query(
        source_id=request.args.get('source_id', type=int),
        genre=request.args.get('genre'),
        search=request.args.get('q'),
        favorites_only=_favorites_only(),
    )
    return jsonify([series.to_dict() for series in query.all()])

@catalog_bp.route('/series/<int:series_id>/episodes')
def list_episodes(series_id):
    """Episodes of a series, optionally narrowed to ?season=."""
    Series.query.get_or_404(series_id)
    episodes = catalog.episodes_for(series_id, season=request.args.get('season', type=int))
    return jsonify({
        'seasons': catalog.season_numbers(series_id),
        'episodes': [episode.to_dict() for episode in episodes],
    })

@catalog_bp.route('/episodes/<int:episode_id>/stream')
def episode_stream(episode_id):
    stream = catalog.stream_request(Episode.query.get_or_404(episode_id))
    return jsonify({'url': stream.url, 'headers': stream.headers})

@catalog_bp.route('/<kind>/<int:item_id>/watched', methods=['POST'])
def mark_watched(kind, item_id):
    model = catalog.WATCHABLE_KINDS.get(kind)
    if model is None:
        abort(404, description=f"Unknown catalog kind '{kind}'.")
    item = model.query.get_or_404(item_id)
    catalog.mark_watched(item, position_ms=request.form.get('position_ms', type=int))
    return jsonify({'id': item.id, 'last_watched_at': item.last_watched_at.isoformat()})
