"""
Playlist synchronization.

A sync downloads (M3U) or queries (Xtream) a source, replaces the source's
channels, movies and series, and records the outcome on the source row. The
status goes to SYNCING before any network I/O. The purge and every insert
are committed in a single transaction together with the SUCCESS status, so a
failed or interrupted sync leaves the previous catalog in place.
"""
import json
import logging
import threading
from dataclasses import dataclass, field
from typing import Dict, List

from sqlalchemy import delete, select
from sqlalchemy.exc import SQLAlchemyError

from ..http import DEFAULT_TIMEOUT, DownloadError, download_text
from ..models import Channel, Episode, Movie, PlaylistSource, Series, SourceKind, SyncStatus, utcnow
from ..parsers.classifier import ContentType
from ..parsers.m3u import M3uParser
from ..result import ErrorKind, Result
from ..xtream import XtreamClient

logger = logging.getLogger(__name__)

UNKNOWN_SERIES = 'Unknown Series'
DEFAULT_CONTAINER = 'mkv'

_source_locks = {}
_source_locks_guard = threading.Lock()


def _lock_for(source_id):
    with _source_locks_guard:
        return _source_locks.setdefault(source_id, threading.Lock())


@dataclass(frozen=True)
class SyncCounts:
    channels: int = 0
    movies: int = 0
    series: int = 0


@dataclass
class XtreamCatalog:
    """Everything one Xtream sync reads from the server, fetched before any write."""
    live_categories: Dict[str, str] = field(default_factory=dict)
    live_streams: List = field(default_factory=list)
    vod_categories: Dict[str, str] = field(default_factory=dict)
    vod_streams: List = field(default_factory=list)
    series_categories: Dict[str, str] = field(default_factory=dict)
    series: List = field(default_factory=list)
    series_info: Dict = field(default_factory=dict)


def encode_headers(headers):
    return json.dumps(headers, sort_keys=True) if headers else None


class PlaylistSyncOrchestrator:

    def __init__(self, session, http, xtream=None, parser=None, timeout=DEFAULT_TIMEOUT):
        self.session = session
        self.http = http
        self.timeout = timeout
        self.xtream = xtream or XtreamClient(http, timeout=timeout)
        self.parser = parser or M3uParser()

    def sync(self, source_id):
        """Runs one sync of `source_id` and returns Result[SyncCounts]."""
        lock = _lock_for(source_id)
        if not lock.acquire(blocking=False):
            logger.warning(f"[Playlist-Sync:{source_id}] Already running, request ignored.")
            return Result.fail(ErrorKind.BUSY, "A sync of this playlist is already running")
        try:
            return self._sync(source_id)
        finally:
            lock.release()

    def _sync(self, source_id):
        source = self.session.get(PlaylistSource, source_id)
        if source is None:
            return Result.fail(ErrorKind.NOT_FOUND, "Playlist not found")

        logger.info(f"[Playlist-Sync:{source_id}] Starting {source.kind.value} sync for: {source.url}")
        try:
            source.last_sync_status = SyncStatus.SYNCING
            source.last_sync_at = utcnow()
            source.last_sync_error = None
            self.session.commit()
        except SQLAlchemyError as e:
            self.session.rollback()
            logger.error(f"[Playlist-Sync:{source_id}] Could not mark the playlist as syncing: {e}")
            result = Result.fail(ErrorKind.STORAGE, f"Could not update the playlist status: {e}")
            self._record_failure(source_id, result.message)
            return result

        try:
            if source.kind is SourceKind.XTREAM_API:
                result = self._sync_xtream(source)
            else:
                result = self._sync_m3u(source)
            if result.is_ok:
                self._record_success(source, result.value)
        except DownloadError as e:
            result = Result.fail(ErrorKind.HTTP if e.status_code else ErrorKind.NETWORK, str(e))
        except Exception as e:
            logger.error(f"[Playlist-Sync:{source_id}] Unexpected error: {e}", exc_info=True)
            result = Result.fail(ErrorKind.STORAGE, str(e) or e.__class__.__name__)

        if not result.is_ok:
            self._record_failure(source_id, result.message)
        return result

    def _record_success(self, source, counts):
        source.last_sync_status = SyncStatus.SUCCESS
        source.last_sync_at = utcnow()
        source.channel_count = counts.channels
        source.movie_count = counts.movies
        source.series_count = counts.series
        self.session.commit()
        logger.info(f"[Playlist-Sync:{source.id}] Finished: {counts.channels} channels, "
                    f"{counts.movies} movies, {counts.series} series.")

    def _record_failure(self, source_id, message):
        self.session.rollback()
        logger.error(f"[Playlist-Sync:{source_id}] Failed: {message}")
        try:
            source = self.session.get(PlaylistSource, source_id)
            if source is None:
                return
            source.last_sync_status = SyncStatus.FAILED
            source.last_sync_at = utcnow()
            source.last_sync_error = message
            self.session.commit()
        except SQLAlchemyError as e:
            self.session.rollback()
            logger.error(f"[Playlist-Sync:{source_id}] Could not record the failure: {e}")

    def _purge(self, source_id):
        series_ids = select(Series.id).where(Series.source_id == source_id)
        self.session.execute(delete(Episode).where(Episode.series_id.in_(series_ids)))
        self.session.execute(delete(Series).where(Series.source_id == source_id))
        self.session.execute(delete(Movie).where(Movie.source_id == source_id))
        self.session.execute(delete(Channel).where(Channel.source_id == source_id))

    # --- M3U ---

    def _sync_m3u(self, source):
        content = download_text(self.http, source.url, self.timeout)
        entries = self.parser.parse(content)

        self._purge(source.id)

        channels = []
        movies = []
        series_entries = {}
        for entry in entries:
            if entry.content_type is ContentType.MOVIE:
                movies.append(self._entry_to_movie(entry, source.id))
            elif entry.content_type in (ContentType.EPISODE, ContentType.SERIES):
                series_name = entry.series_name or entry.group_title or UNKNOWN_SERIES
                series_entries.setdefault(series_name, []).append(entry)
            else:
                # LIVE_TV, and UNKNOWN which is stored as a channel
                channels.append(self._entry_to_channel(entry, source.id))

        self.session.add_all(channels)
        self.session.add_all(movies)

        for series_name, episode_entries in series_entries.items():
            first = episode_entries[0]
            series = Series(
                source_id=source.id,
                name=series_name,
                poster_url=first.logo_url,
                genre=first.group_title,
                episode_count=len(episode_entries),
                season_count=len({e.season_number for e in episode_entries if e.season_number is not None}),
            )
            series.episodes = [
                Episode(
                    title=entry.name,
                    stream_url=entry.url,
                    thumbnail_url=entry.logo_url,
                    season_number=entry.season_number if entry.season_number is not None else 1,
                    episode_number=entry.episode_number if entry.episode_number is not None else 0,
                    headers=encode_headers(entry.headers),
                )
                for entry in episode_entries
            ]
            self.session.add(series)

        self.session.flush()
        return Result.ok(SyncCounts(channels=len(channels), movies=len(movies), series=len(series_entries)))

    @staticmethod
    def _entry_to_channel(entry, source_id):
        return Channel(
            source_id=source_id,
            name=entry.name,
            stream_url=entry.url,
            logo_url=entry.logo_url,
            tvg_id=entry.tvg_id,
            tvg_name=entry.tvg_name,
            group_title=entry.group_title,
            category=entry.category,
            country=entry.country_code,
            language=entry.tvg_language,
            headers=encode_headers(entry.headers),
        )

    @staticmethod
    def _entry_to_movie(entry, source_id):
        return Movie(
            source_id=source_id,
            title=entry.name,
            stream_url=entry.url,
            poster_url=entry.logo_url,
            genre=entry.group_title,
            country=entry.country_code,
            year=entry.year,
            rating=entry.rating,
            headers=encode_headers(entry.headers),
        )

    # --- Xtream Codes ---

    def _sync_xtream(self, source):
        credentials = source.credentials
        if credentials is None:
            return Result.fail(ErrorKind.AUTH, "Missing Xtream credentials")

        auth = self.xtream.authenticate(credentials)
        if not auth.is_ok:
            return auth

        # Every API call happens before the purge so no write transaction is
        # open while the server is being queried.
        fetched = self._fetch_xtream(credentials)

        self._purge(source.id)
        channels = self._xtream_channels(source.id, credentials, fetched)
        movies = self._xtream_movies(source.id, credentials, fetched)
        series_count = self._xtream_series(source.id, credentials, fetched)

        self.session.flush()
        return Result.ok(SyncCounts(channels=channels, movies=movies, series=series_count))

    def _fetch_xtream(self, credentials):
        fetched = XtreamCatalog(
            live_categories=_category_names(self.xtream.get_live_categories(credentials)),
            live_streams=self.xtream.get_live_streams(credentials).value_or([]),
            vod_categories=_category_names(self.xtream.get_vod_categories(credentials)),
            vod_streams=self.xtream.get_vod_streams(credentials).value_or([]),
            series_categories=_category_names(self.xtream.get_series_categories(credentials)),
            series=self.xtream.get_series(credentials).value_or([]),
        )
        for item in fetched.series:
            if item.series_id is None:
                continue
            info = self.xtream.get_series_info(credentials, item.series_id)
            if info.is_ok:
                fetched.series_info[item.series_id] = info.value
            else:
                logger.warning(f"Episodes of series {item.series_id} unavailable: {info.message}")
        return fetched

    def _xtream_channels(self, source_id, credentials, fetched):
        channels = []
        for stream in fetched.live_streams:
            category = fetched.live_categories.get(stream.category_id)
            channels.append(Channel(
                source_id=source_id,
                name=stream.name or 'Unknown',
                stream_url=credentials.live_stream_url(stream.stream_id or 0),
                logo_url=stream.stream_icon,
                tvg_id=stream.epg_channel_id,
                group_title=category,
                category=category,
            ))
        self.session.add_all(channels)
        return len(channels)

    def _xtream_movies(self, source_id, credentials, fetched):
        movies = [
            Movie(
                source_id=source_id,
                title=stream.name or 'Unknown',
                stream_url=credentials.vod_stream_url(stream.stream_id or 0, stream.container_extension or DEFAULT_CONTAINER),
                poster_url=stream.stream_icon,
                genre=fetched.vod_categories.get(stream.category_id),
                rating=stream.rating_5based,
            )
            for stream in fetched.vod_streams
        ]
        self.session.add_all(movies)
        return len(movies)

    def _xtream_series(self, source_id, credentials, fetched):
        for item in fetched.series:
            series = Series(
                source_id=source_id,
                name=item.name or 'Unknown',
                poster_url=item.cover,
                backdrop_url=item.backdrop_path[0] if item.backdrop_path else None,
                genre=item.genre or fetched.series_categories.get(item.category_id),
                description=item.plot,
                rating=item.rating_5based,
            )
            info = fetched.series_info.get(item.series_id)
            if info is not None:
                series.episodes = self._xtream_episodes(credentials, info)
            series.episode_count = len(series.episodes)
            series.season_count = len({e.season_number for e in series.episodes})
            self.session.add(series)
        return len(fetched.series)

    @staticmethod
    def _xtream_episodes(credentials, series_info):
        episodes = []
        for season_key, season_episodes in series_info.episodes.items():
            for ep in season_episodes:
                season = ep.season if ep.season is not None else (_season_from_key(season_key) or 1)
                episodes.append(Episode(
                    title=ep.title or f"Episode {ep.episode_num}",
                    stream_url=credentials.series_stream_url(ep.id or 0, ep.container_extension or DEFAULT_CONTAINER),
                    thumbnail_url=ep.movie_image,
                    season_number=season,
                    episode_number=ep.episode_num or 0,
                    description=ep.plot,
                    duration=ep.duration_secs // 60 if ep.duration_secs else None,
                ))
        return episodes


def _season_from_key(key):
    try:
        return int(key)
    except (TypeError, ValueError):
        return None


def _category_names(result):
    return {c.category_id: c.category_name for c in result.value_or([])}
