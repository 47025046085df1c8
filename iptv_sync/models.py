import enum
import sqlite3
from datetime import datetime, timezone
from sqlalchemy import event
from sqlalchemy.engine import Engine
from . import db


def utcnow():
    """Naive UTC timestamp, the form every DateTime column stores."""
    return datetime.now(timezone.utc).replace(tzinfo=None)


@event.listens_for(Engine, "connect")
def _enable_sqlite_foreign_keys(dbapi_connection, connection_record):
    if isinstance(dbapi_connection, sqlite3.Connection):
        cursor = dbapi_connection.cursor()
        cursor.execute("PRAGMA foreign_keys = ON;")
        cursor.close()


class SourceKind(enum.Enum):
    M3U = 'M3U'
    XTREAM_API = 'XTREAM_API'


class SyncStatus(enum.Enum):
    PENDING = 'PENDING'
    SYNCING = 'SYNCING'
    SUCCESS = 'SUCCESS'
    FAILED = 'FAILED'


class PlaylistSource(db.Model):
    __tablename__ = 'playlist_sources'
    id = db.Column(db.Integer, primary_key=True)
    name = db.Column(db.String, nullable=False)
    url = db.Column(db.String, nullable=False, unique=True)
    kind = db.Column(db.Enum(SourceKind), nullable=False, default=SourceKind.M3U)
    enabled = db.Column(db.Boolean, nullable=False, default=True, index=True)
    auto_refresh = db.Column(db.Boolean, nullable=False, default=True)
    refresh_interval_hours = db.Column(db.Integer, nullable=False, default=24)
    epg_url = db.Column(db.String)

    # Xtream Codes credentials
    xtream_username = db.Column(db.String)
    xtream_password = db.Column(db.String)

    last_sync_at = db.Column(db.DateTime)
    last_sync_status = db.Column(db.Enum(SyncStatus), nullable=False, default=SyncStatus.PENDING)
    last_sync_error = db.Column(db.Text)

    channel_count = db.Column(db.Integer, nullable=False, default=0)
    movie_count = db.Column(db.Integer, nullable=False, default=0)
    series_count = db.Column(db.Integer, nullable=False, default=0)

    created_at = db.Column(db.DateTime, default=utcnow)
    updated_at = db.Column(db.DateTime, default=utcnow, onupdate=utcnow)

    # Relationships
    channels = db.relationship('Channel', backref='source', lazy=True, cascade="all, delete-orphan", passive_deletes=True)
    movies = db.relationship('Movie', backref='source', lazy=True, cascade="all, delete-orphan", passive_deletes=True)
    series = db.relationship('Series', backref='source', lazy=True, cascade="all, delete-orphan", passive_deletes=True)

    @property
    def credentials(self):
        """XtreamCredentials for an Xtream source, None when incomplete."""
        if self.kind is not SourceKind.XTREAM_API or not self.xtream_username or not self.xtream_password:
            return None
        from .xtream import XtreamCredentials
        return XtreamCredentials(server=self.url, username=self.xtream_username, password=self.xtream_password)

    def to_dict(self):
        return {
            'id': self.id,
            'name': self.name,
            'url': self.url,
            'kind': self.kind.value,
            'enabled': self.enabled,
            'auto_refresh': self.auto_refresh,
            'refresh_interval_hours': self.refresh_interval_hours,
            'epg_url': self.epg_url,
            'last_sync_at': self.last_sync_at.isoformat() if self.last_sync_at else None,
            'last_sync_status': self.last_sync_status.value,
            'last_sync_error': self.last_sync_error,
            'channel_count': self.channel_count,
            'movie_count': self.movie_count,
            'series_count': self.series_count,
        }


class Channel(db.Model):
    __tablename__ = 'channels'
    id = db.Column(db.Integer, primary_key=True)
    source_id = db.Column(db.Integer, db.ForeignKey('playlist_sources.id', ondelete='CASCADE'), nullable=False, index=True)
    name = db.Column(db.String, nullable=False, index=True)
    stream_url = db.Column(db.String, nullable=False)
    logo_url = db.Column(db.String)
    tvg_id = db.Column(db.String, index=True) # EPG mapping ID
    tvg_name = db.Column(db.String)
    group_title = db.Column(db.String, index=True)
    category = db.Column(db.String)
    country = db.Column(db.String, index=True)
    language = db.Column(db.String)
    headers = db.Column(db.Text) # JSON encoded header map
    is_favorite = db.Column(db.Boolean, nullable=False, default=False)
    sort_order = db.Column(db.Integer, nullable=False, default=0)
    last_watched_at = db.Column(db.DateTime)
    created_at = db.Column(db.DateTime, default=utcnow)

    def to_dict(self):
        return {
            'id': self.id,
            'source_id': self.source_id,
            'name': self.name,
            'stream_url': self.stream_url,
            'logo_url': self.logo_url,
            'tvg_id': self.tvg_id,
            'group_title': self.group_title,
            'country': self.country,
            'language': self.language,
            'is_favorite': self.is_favorite,
        }


class Movie(db.Model):
    __tablename__ = 'movies'
    id = db.Column(db.Integer, primary_key=True)
    source_id = db.Column(db.Integer, db.ForeignKey('playlist_sources.id', ondelete='CASCADE'), nullable=False, index=True)
    title = db.Column(db.String, nullable=False, index=True)
    stream_url = db.Column(db.String, nullable=False)
    poster_url = db.Column(db.String)
    backdrop_url = db.Column(db.String)
    description = db.Column(db.Text)
    genre = db.Column(db.String, index=True)
    country = db.Column(db.String, index=True)
    year = db.Column(db.Integer, index=True)
    duration = db.Column(db.Integer) # minutes
    rating = db.Column(db.Float)
    headers = db.Column(db.Text)
    is_favorite = db.Column(db.Boolean, nullable=False, default=False)
    last_play_position = db.Column(db.Integer, nullable=False, default=0) # milliseconds
    last_watched_at = db.Column(db.DateTime)
    created_at = db.Column(db.DateTime, default=utcnow)

    def to_dict(self):
        return {
            'id': self.id,
            'source_id': self.source_id,
            'title': self.title,
            'stream_url': self.stream_url,
            'poster_url': self.poster_url,
            'genre': self.genre,
            'year': self.year,
            'rating': self.rating,
            'is_favorite': self.is_favorite,
            'last_play_position': self.last_play_position,
        }


class Series(db.Model):
    __tablename__ = 'series'
    id = db.Column(db.Integer, primary_key=True)
    source_id = db.Column(db.Integer, db.ForeignKey('playlist_sources.id', ondelete='CASCADE'), nullable=False, index=True)
    name = db.Column(db.String, nullable=False, index=True)
    poster_url = db.Column(db.String)
    backdrop_url = db.Column(db.String)
    description = db.Column(db.Text)
    genre = db.Column(db.String, index=True)
    country = db.Column(db.String, index=True)
    year = db.Column(db.Integer)
    rating = db.Column(db.Float)
    season_count = db.Column(db.Integer, nullable=False, default=0)
    episode_count = db.Column(db.Integer, nullable=False, default=0)
    is_favorite = db.Column(db.Boolean, nullable=False, default=False)
    last_watched_at = db.Column(db.DateTime)
    created_at = db.Column(db.DateTime, default=utcnow)

    episodes = db.relationship('Episode', backref='series', lazy=True, cascade="all, delete-orphan", passive_deletes=True)

    def to_dict(self):
        return {
            'id': self.id,
            'source_id': self.source_id,
            'name': self.name,
            'poster_url': self.poster_url,
            'genre': self.genre,
            'rating': self.rating,
            'season_count': self.season_count,
            'episode_count': self.episode_count,
            'is_favorite': self.is_favorite,
        }


class Episode(db.Model):
    __tablename__ = 'episodes'
    __table_args__ = (db.Index('ix_episodes_season_episode', 'season_number', 'episode_number'),)
    id = db.Column(db.Integer, primary_key=True)
    series_id = db.Column(db.Integer, db.ForeignKey('series.id', ondelete='CASCADE'), nullable=False, index=True)
    title = db.Column(db.String, nullable=False)
    stream_url = db.Column(db.String, nullable=False)
    thumbnail_url = db.Column(db.String)
    season_number = db.Column(db.Integer, nullable=False, default=1)
    episode_number = db.Column(db.Integer, nullable=False, default=0)
    description = db.Column(db.Text)
    duration = db.Column(db.Integer)
    headers = db.Column(db.Text)
    last_play_position = db.Column(db.Integer, nullable=False, default=0)
    last_watched_at = db.Column(db.DateTime)
    created_at = db.Column(db.DateTime, default=utcnow)

    def to_dict(self):
        return {
            'id': self.id,
            'series_id': self.series_id,
            'title': self.title,
            'season_number': self.season_number,
            'episode_number': self.episode_number,
            'stream_url': self.stream_url,
            'last_play_position': self.last_play_position,
        }


class EpgProgramme(db.Model):
    __tablename__ = 'epg_programmes'
    __table_args__ = (db.Index('ix_epg_programmes_channel_start', 'channel_id', 'start_time'),)
    id = db.Column(db.Integer, primary_key=True)
    channel_id = db.Column(db.String, nullable=False, index=True) # tvg-id, not a foreign key
    title = db.Column(db.String, nullable=False)
    description = db.Column(db.Text)
    category = db.Column(db.String)
    sub_title = db.Column(db.String)
    episode_num = db.Column(db.String)
    icon = db.Column(db.String)
    rating = db.Column(db.String)
    start_time = db.Column(db.DateTime, nullable=False, index=True)
    end_time = db.Column(db.DateTime, nullable=False, index=True)
    created_at = db.Column(db.DateTime, default=utcnow)

    def to_dict(self):
        return {
            'channel_id': self.channel_id,
            'title': self.title,
            'description': self.description,
            'category': self.category,
            'sub_title': self.sub_title,
            'episode_num': self.episode_num,
            'icon': self.icon,
            'rating': self.rating,
            'start_time': self.start_time.isoformat(),
            'end_time': self.end_time.isoformat(),
        }
