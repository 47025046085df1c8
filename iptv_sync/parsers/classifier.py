"""Content-type inference for playlist entries."""
import enum
import re


class ContentType(enum.Enum):
    LIVE_TV = 'LIVE_TV'
    MOVIE = 'MOVIE'
    SERIES = 'SERIES'
    EPISODE = 'EPISODE'
    UNKNOWN = 'UNKNOWN'


EPISODE_MARKER = re.compile(r's\d{1,2}e\d{1,2}|(?:season|saison)\s*\d+.*?(?:episode|épisode)\s*\d+', re.IGNORECASE)
SEASON_EPISODE = re.compile(r's(\d{1,2})\s*e(\d{1,2})', re.IGNORECASE)
VERBOSE_SEASON_EPISODE = re.compile(r'(?:season|saison)\s*(\d+).*?(?:episode|épisode)\s*(\d+)', re.IGNORECASE)
YEAR = re.compile(r'\((\d{4})\)|\[(\d{4})\]')

SERIES_GROUP_WORDS = ('series', 'séries', 'shows')
MOVIE_GROUP_WORDS = ('vod', 'movie', 'film', 'cinema', 'cinéma')
MOVIE_URL_PARTS = ('/movie/', '/vod/', '/films/')
EPISODE_URL_PARTS = ('/series/', '/episode/')
LIVE_URL_SUFFIXES = ('.m3u8', '.ts')
LIVE_URL_PARTS = (':8080/', '/live/')


def classify(group_title, name, url):
    """
    Maps an entry to a ContentType. The first matching rule wins:
    episode marker in the name or group, series group, movie group,
    movie URL path, series URL path, then live TV.
    """
    group = (group_title or '').lower()
    title = (name or '').lower()
    link = (url or '').lower()

    if EPISODE_MARKER.search(title) or EPISODE_MARKER.search(group):
        return ContentType.EPISODE
    if any(word in group for word in SERIES_GROUP_WORDS):
        return ContentType.SERIES
    if any(word in group for word in MOVIE_GROUP_WORDS):
        return ContentType.MOVIE
    if any(part in link for part in MOVIE_URL_PARTS):
        return ContentType.MOVIE
    if any(part in link for part in EPISODE_URL_PARTS):
        return ContentType.EPISODE
    if link.endswith(LIVE_URL_SUFFIXES) or any(part in link for part in LIVE_URL_PARTS):
        return ContentType.LIVE_TV
    return ContentType.LIVE_TV


def extract_series_info(name, content_type):
    """Returns (series_name, season, episode); all None unless the entry is an episode or series."""
    if content_type not in (ContentType.EPISODE, ContentType.SERIES) or not name:
        return None, None, None

    for pattern in (SEASON_EPISODE, VERBOSE_SEASON_EPISODE):
        match = pattern.search(name)
        if match:
            series_name = name[:match.start()].strip().rstrip('-: ')
            return series_name or None, int(match.group(1)), int(match.group(2))

    return None, None, None


def extract_year(name):
    match = YEAR.search(name or '')
    if not match:
        return None
    return int(match.group(1) or match.group(2))
