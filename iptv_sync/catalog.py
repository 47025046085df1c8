"""
Read-side accessors over the catalog, and the playlist bookkeeping the
management routes need. Only the sync orchestrators write channels, movies,
series and episodes.
"""
import json
from dataclasses import dataclass, field
from typing import Dict

from sqlalchemy import or_

from . import db
from .models import Channel, Episode, Movie, PlaylistSource, Series, SourceKind, utcnow

FAVORITE_KINDS = {'channels': Channel, 'movies': Movie, 'series': Series}
WATCHABLE_KINDS = {'channels': Channel, 'movies': Movie, 'series': Series, 'episodes': Episode}


@dataclass(frozen=True)
class StreamRequest:
    """What the player needs to open a stream."""
    url: str
    headers: Dict[str, str] = field(default_factory=dict)


def decode_headers(raw):
    if not raw:
        return {}
    try:
        headers = json.loads(raw)
    except ValueError:
        return {}
    return {str(k): str(v) for k, v in headers.items()} if isinstance(headers, dict) else {}


def stream_request(item):
    """StreamRequest for a Channel, Movie or Episode row."""
    return StreamRequest(url=item.stream_url, headers=decode_headers(getattr(item, 'headers', None)))


# --- Playlist sources ---

def add_playlist(name, url, epg_url=None, refresh_interval_hours=24):
    source = PlaylistSource(name=name, url=url, kind=SourceKind.M3U, epg_url=epg_url,
                            refresh_interval_hours=refresh_interval_hours)
    db.session.add(source)
    db.session.commit()
    return source


def add_xtream_playlist(name, server, username, password, epg_url=None, refresh_interval_hours=24):
    source = PlaylistSource(name=name, url=server, kind=SourceKind.XTREAM_API, epg_url=epg_url,
                            xtream_username=username, xtream_password=password,
                            refresh_interval_hours=refresh_interval_hours)
    db.session.add(source)
    db.session.commit()
    return source


def delete_playlist(source):
    """Deletes the source; its channels, movies, series and episodes go with it."""
    db.session.delete(source)
    db.session.commit()


def set_playlist_enabled(source, enabled):
    source.enabled = enabled
    db.session.commit()


# --- Channels ---

def channels_query(source_id=None, group=None, country=None, search=None, favorites_only=False):
    query = Channel.query
    if favorites_only:
        query = query.filter_by(is_favorite=True)
    if source_id is not None:
        query = query.filter(Channel.source_id == source_id)
    if group:
        query = query.filter(or_(Channel.group_title == group, Channel.category == group))
    if country:
        query = query.filter(Channel.country == country)
    if search:
        query = query.filter(or_(Channel.name.ilike(f"%{search}%"), Channel.tvg_name.ilike(f"%{search}%")))
    return query.order_by(Channel.sort_order, Channel.name)


def channel_groups():
    rows = db.session.query(Channel.group_title).filter(Channel.group_title.isnot(None)).distinct()
    return sorted(row[0] for row in rows)


def channel_countries():
    rows = db.session.query(Channel.country).filter(Channel.country.isnot(None)).distinct()
    return sorted(row[0] for row in rows)


# --- Movies / Series ---

def movies_query(source_id=None, genre=None, year=None, search=None, favorites_only=False):
    query = Movie.query
    if favorites_only:
        query = query.filter_by(is_favorite=True)
    if source_id is not None:
        query = query.filter(Movie.source_id == source_id)
    if genre:
        query = query.filter(Movie.genre.ilike(f"%{genre}%"))
    if year is not None:
        query = query.filter(Movie.year == year)
    if search:
        query = query.filter(Movie.title.ilike(f"%{search}%"))
    return query.order_by(Movie.title)


def series_query(source_id=None, genre=None, search=None, favorites_only=False):
    query = Series.query
    if favorites_only:
        query = query.filter_by(is_favorite=True)
    if source_id is not None:
        query = query.filter(Series.source_id == source_id)
    if genre:
        query = query.filter(Series.genre.ilike(f"%{genre}%"))
    if search:
        query = query.filter(Series.name.ilike(f"%{search}%"))
    return query.order_by(Series.name)


def episodes_for(series_id, season=None):
    query = Episode.query.filter(Episode.series_id == series_id)
    if season is not None:
        query = query.filter(Episode.season_number == season)
    return query.order_by(Episode.season_number, Episode.episode_number).all()


def season_numbers(series_id):
    rows = db.session.query(Episode.season_number).filter(Episode.series_id == series_id).distinct()
    return sorted(row[0] for row in rows)


# --- User state ---

def toggle_favorite(item):
    item.is_favorite = not item.is_favorite
    db.session.commit()
    return item.is_favorite


def mark_watched(item, position_ms=None):
    """Stamps last_watched_at; movies and episodes also keep a resume position."""
    item.last_watched_at = utcnow()
    if position_ms is not None and hasattr(item, 'last_play_position'):
        item.last_play_position = position_ms
    db.session.commit()
