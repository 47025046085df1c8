"""
Client for Xtream Codes compatible IPTV servers.

All catalog calls go to `{server}/player_api.php` with the account's
username/password and an `action` parameter; authentication is the same
call without `action`. Servers are inconsistent about numbers arriving as
strings, so payloads are read leniently.
"""
import logging
from dataclasses import dataclass, field
from typing import Dict, List, Optional

import requests

from .http import DEFAULT_TIMEOUT
from .result import ErrorKind, Result

logger = logging.getLogger(__name__)


def _to_int(value):
    if value is None or value == '':
        return None
    try:
        return int(float(value))
    except (TypeError, ValueError):
        return None


def _to_float(value):
    if value is None or value == '':
        return None
    try:
        return float(value)
    except (TypeError, ValueError):
        return None


def _to_str(value):
    if value is None:
        return None
    return str(value)


@dataclass(frozen=True)
class XtreamCredentials:
    server: str
    username: str
    password: str

    @property
    def base_url(self):
        return self.server.rstrip('/')

    @property
    def player_api_url(self):
        return f"{self.base_url}/player_api.php"

    def live_stream_url(self, stream_id, extension='ts'):
        return f"{self.base_url}/{self.username}/{self.password}/{stream_id}.{extension}"

    def vod_stream_url(self, stream_id, extension):
        return f"{self.base_url}/movie/{self.username}/{self.password}/{stream_id}.{extension}"

    def series_stream_url(self, stream_id, extension):
        return f"{self.base_url}/series/{self.username}/{self.password}/{stream_id}.{extension}"


@dataclass
class XtreamUserInfo:
    username: Optional[str] = None
    status: Optional[str] = None
    auth: Optional[int] = None
    message: Optional[str] = None
    exp_date: Optional[str] = None
    is_trial: Optional[str] = None
    active_cons: Optional[str] = None
    max_connections: Optional[str] = None
    allowed_output_formats: List[str] = field(default_factory=list)
    server_info: Dict = field(default_factory=dict)

    @classmethod
    def from_json(cls, data):
        user = data.get('user_info') or {}
        return cls(
            username=_to_str(user.get('username')),
            status=_to_str(user.get('status')),
            auth=_to_int(user.get('auth')),
            message=_to_str(user.get('message')),
            exp_date=_to_str(user.get('exp_date')),
            is_trial=_to_str(user.get('is_trial')),
            active_cons=_to_str(user.get('active_cons')),
            max_connections=_to_str(user.get('max_connections')),
            allowed_output_formats=list(user.get('allowed_output_formats') or []),
            server_info=dict(data.get('server_info') or {}),
        )

    @property
    def is_authenticated(self):
        return self.auth == 1 or self.status == 'Active'


@dataclass
class XtreamCategory:
    category_id: str
    category_name: str
    parent_id: Optional[int] = None

    @classmethod
    def from_json(cls, data):
        return cls(
            category_id=_to_str(data.get('category_id')),
            category_name=_to_str(data.get('category_name')) or '',
            parent_id=_to_int(data.get('parent_id')),
        )


@dataclass
class XtreamLiveStream:
    name: Optional[str] = None
    stream_id: Optional[int] = None
    stream_icon: Optional[str] = None
    epg_channel_id: Optional[str] = None
    category_id: Optional[str] = None
    num: Optional[int] = None
    tv_archive: Optional[int] = None
    tv_archive_duration: Optional[int] = None
    direct_source: Optional[str] = None

    @classmethod
    def from_json(cls, data):
        return cls(
            name=_to_str(data.get('name')),
            stream_id=_to_int(data.get('stream_id')),
            stream_icon=_to_str(data.get('stream_icon')) or None,
            epg_channel_id=_to_str(data.get('epg_channel_id')) or None,
            category_id=_to_str(data.get('category_id')),
            num=_to_int(data.get('num')),
            tv_archive=_to_int(data.get('tv_archive')),
            tv_archive_duration=_to_int(data.get('tv_archive_duration')),
            direct_source=_to_str(data.get('direct_source')) or None,
        )


@dataclass
class XtreamVodStream:
    name: Optional[str] = None
    stream_id: Optional[int] = None
    stream_icon: Optional[str] = None
    rating: Optional[str] = None
    rating_5based: Optional[float] = None
    category_id: Optional[str] = None
    container_extension: Optional[str] = None
    added: Optional[str] = None

    @classmethod
    def from_json(cls, data):
        return cls(
            name=_to_str(data.get('name')),
            stream_id=_to_int(data.get('stream_id')),
            stream_icon=_to_str(data.get('stream_icon')) or None,
            rating=_to_str(data.get('rating')),
            rating_5based=_to_float(data.get('rating_5based')),
            category_id=_to_str(data.get('category_id')),
            container_extension=_to_str(data.get('container_extension')) or None,
            added=_to_str(data.get('added')),
        )


@dataclass
class XtreamSeries:
    name: Optional[str] = None
    series_id: Optional[int] = None
    cover: Optional[str] = None
    plot: Optional[str] = None
    cast: Optional[str] = None
    director: Optional[str] = None
    genre: Optional[str] = None
    release_date: Optional[str] = None
    rating: Optional[str] = None
    rating_5based: Optional[float] = None
    backdrop_path: List[str] = field(default_factory=list)
    category_id: Optional[str] = None

    @classmethod
    def from_json(cls, data):
        backdrop = data.get('backdrop_path') or []
        if isinstance(backdrop, str):
            backdrop = [backdrop]
        return cls(
            name=_to_str(data.get('name')),
            series_id=_to_int(data.get('series_id')),
            cover=_to_str(data.get('cover')) or None,
            plot=_to_str(data.get('plot')) or None,
            cast=_to_str(data.get('cast')) or None,
            director=_to_str(data.get('director')) or None,
            genre=_to_str(data.get('genre')) or None,
            release_date=_to_str(data.get('release_date') or data.get('releaseDate')) or None,
            rating=_to_str(data.get('rating')),
            rating_5based=_to_float(data.get('rating_5based')),
            backdrop_path=list(backdrop),
            category_id=_to_str(data.get('category_id')),
        )


@dataclass
class XtreamSeason:
    season_number: int
    name: Optional[str] = None
    cover: Optional[str] = None
    episode_count: Optional[int] = None

    @classmethod
    def from_json(cls, data):
        return cls(
            season_number=_to_int(data.get('season_number')) or 0,
            name=_to_str(data.get('name')),
            cover=_to_str(data.get('cover')) or None,
            episode_count=_to_int(data.get('episode_count')),
        )


@dataclass
class XtreamEpisode:
    id: Optional[int] = None
    episode_num: Optional[int] = None
    title: Optional[str] = None
    container_extension: Optional[str] = None
    season: Optional[int] = None
    movie_image: Optional[str] = None
    plot: Optional[str] = None
    duration_secs: Optional[int] = None

    @classmethod
    def from_json(cls, data):
        info = data.get('info') or {}
        if not isinstance(info, dict):
            info = {}
        return cls(
            id=_to_int(data.get('id')),
            episode_num=_to_int(data.get('episode_num')),
            title=_to_str(data.get('title')) or None,
            container_extension=_to_str(data.get('container_extension')) or None,
            season=_to_int(data.get('season')),
            movie_image=_to_str(info.get('movie_image')) or None,
            plot=_to_str(info.get('plot')) or None,
            duration_secs=_to_int(info.get('duration_secs')),
        )


@dataclass
class XtreamSeriesInfo:
    seasons: List[XtreamSeason] = field(default_factory=list)
    info: Optional[XtreamSeries] = None
    episodes: Dict[str, List[XtreamEpisode]] = field(default_factory=dict)

    @classmethod
    def from_json(cls, data):
        raw_episodes = data.get('episodes') or {}
        episodes = {}
        if isinstance(raw_episodes, dict):
            for season_key, items in raw_episodes.items():
                episodes[str(season_key)] = [XtreamEpisode.from_json(item) for item in items or []]
        else:
            # Some panels send a flat list instead of a map keyed by season.
            for item in raw_episodes:
                episode = XtreamEpisode.from_json(item)
                episodes.setdefault(str(episode.season or 1), []).append(episode)

        info = data.get('info')
        return cls(
            seasons=[XtreamSeason.from_json(season) for season in data.get('seasons') or []],
            info=XtreamSeries.from_json(info) if isinstance(info, dict) else None,
            episodes=episodes,
        )


class XtreamClient:
    """Thin request/response wrapper around `player_api.php`."""

    def __init__(self, session, timeout=DEFAULT_TIMEOUT):
        self.session = session
        self.timeout = timeout

    def authenticate(self, credentials):
        result = self._request(credentials)
        if not result.is_ok:
            return Result.fail(result.kind, f"Could not connect to the server: {result.message}")
        if not isinstance(result.value, dict):
            return Result.fail(ErrorKind.DECODE, "Unexpected authentication response from the server")

        try:
            user_info = XtreamUserInfo.from_json(result.value)
        except (AttributeError, TypeError, ValueError) as e:
            return Result.fail(ErrorKind.DECODE, f"Unreadable authentication response: {e}")
        if user_info.is_authenticated:
            return Result.ok(user_info)
        return Result.fail(ErrorKind.AUTH, f"Authentication failed: {user_info.message or 'invalid credentials'}")

    def get_live_categories(self, credentials):
        return self._fetch_list(credentials, 'get_live_categories', XtreamCategory)

    def get_live_streams(self, credentials):
        return self._fetch_list(credentials, 'get_live_streams', XtreamLiveStream)

    def get_vod_categories(self, credentials):
        return self._fetch_list(credentials, 'get_vod_categories', XtreamCategory)

    def get_vod_streams(self, credentials):
        return self._fetch_list(credentials, 'get_vod_streams', XtreamVodStream)

    def get_series_categories(self, credentials):
        return self._fetch_list(credentials, 'get_series_categories', XtreamCategory)

    def get_series(self, credentials):
        return self._fetch_list(credentials, 'get_series', XtreamSeries)

    def get_series_info(self, credentials, series_id):
        result = self._request(credentials, 'get_series_info', series_id=series_id)
        if not result.is_ok:
            return result
        if not isinstance(result.value, dict):
            return Result.fail(ErrorKind.DECODE, f"Unexpected get_series_info payload for series {series_id}")
        try:
            return Result.ok(XtreamSeriesInfo.from_json(result.value))
        except (AttributeError, TypeError, ValueError) as e:
            return Result.fail(ErrorKind.DECODE, f"Unreadable get_series_info payload: {e}")

    def _fetch_list(self, credentials, action, item_type):
        result = self._request(credentials, action)
        if not result.is_ok:
            return result
        payload = result.value
        # Empty catalogs come back as [] from most panels and {} or null from some.
        if not payload:
            return Result.ok([])
        if not isinstance(payload, list):
            return Result.fail(ErrorKind.DECODE, f"Unexpected {action} payload ({type(payload).__name__})")
        try:
            return Result.ok([item_type.from_json(item) for item in payload if isinstance(item, dict)])
        except (AttributeError, TypeError, ValueError) as e:
            return Result.fail(ErrorKind.DECODE, f"Unreadable {action} payload: {e}")

    def _request(self, credentials, action=None, **extra):
        params = {'username': credentials.username, 'password': credentials.password}
        if action:
            params['action'] = action
        params.update(extra)

        try:
            response = self.session.get(credentials.player_api_url, params=params, timeout=self.timeout)
        except requests.RequestException as e:
            logger.warning(f"Xtream request {action or 'authenticate'} failed: {e}")
            return Result.fail(ErrorKind.NETWORK, str(e))

        if not 200 <= response.status_code < 300:
            logger.warning(f"Xtream request {action or 'authenticate'} returned HTTP {response.status_code}")
            return Result.fail(ErrorKind.HTTP, f"Server error: HTTP {response.status_code}")

        try:
            return Result.ok(response.json())
        except ValueError as e:
            return Result.fail(ErrorKind.DECODE, f"Invalid JSON from server (HTTP {response.status_code}): {e}")
