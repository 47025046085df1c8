import pytest

from iptv_sync.parsers.classifier import ContentType, classify, extract_series_info, extract_year


@pytest.mark.parametrize('group, name, url, expected', [
    ('Movies', 'Breaking Bad S01E02', 'http://x/movie/1.mkv', ContentType.EPISODE),
    ('Saison 2 Episode 5', 'Whatever', None, ContentType.EPISODE),
    ('Drama Series', 'Some Show', 'http://x/movie/1.mkv', ContentType.SERIES),
    ('TV Shows', 'Some Show', None, ContentType.SERIES),
    ('VOD | Action', 'Heat', 'http://x/live/1.ts', ContentType.MOVIE),
    ('Cinéma', 'Amélie', None, ContentType.MOVIE),
    ('Misc', 'Heat', 'http://x/vod/1.mp4', ContentType.MOVIE),
    ('Misc', 'Pilot', 'http://x/series/u/p/9.mkv', ContentType.EPISODE),
    ('News', 'CNN', 'http://x/stream.m3u8', ContentType.LIVE_TV),
    ('News', 'CNN', 'http://host:8080/u/p/1', ContentType.LIVE_TV),
])
def test_classification_precedence(group, name, url, expected):
    assert classify(group, name, url) is expected


def test_classify_is_total():
    assert classify(None, None, None) is ContentType.LIVE_TV
    assert classify('', '', '') is ContentType.LIVE_TV


def test_verbose_episode_pattern_in_title():
    assert classify(None, 'Dark Season 1 Episode 3', None) is ContentType.EPISODE


@pytest.mark.parametrize('name, series', [
    ('Breaking Bad S01E02', 'Breaking Bad'),
    ('Breaking Bad - S01E02', 'Breaking Bad'),
    ('Breaking Bad: S01 E02', 'Breaking Bad'),
])
def test_extract_series_info_trims_separators(name, series):
    assert extract_series_info(name, ContentType.EPISODE) == (series, 1, 2)


def test_extract_series_info_verbose_pattern():
    assert extract_series_info('Dark - Season 2 Episode 7', ContentType.SERIES) == ('Dark', 2, 7)


def test_extract_series_info_ignores_other_types():
    assert extract_series_info('Breaking Bad S01E02', ContentType.MOVIE) == (None, None, None)


def test_extract_year():
    assert extract_year('Heat (1995)') == 1995
    assert extract_year('Heat [1995] (2001)') == 1995
    assert extract_year('Blade Runner 2049') is None
    assert extract_year(None) is None
