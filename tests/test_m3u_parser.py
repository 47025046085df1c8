import io

from iptv_sync.catalog import decode_headers
from iptv_sync.parsers import ContentType, M3uParser
from iptv_sync.parsers.m3u import parse_header_option
from iptv_sync.sync.playlists import encode_headers

PLAYLIST = """#EXTM3U
#EXTINF:-1 tvg-id="bbc1.uk" tvg-name="BBC One" tvg-logo="http://logo/bbc1.png" tvg-country="uk" tvg-language="English" group-title="UK: News",BBC One HD
http://provider.example/live/u/p/1.ts

#EXTINF:-1 tvg-id="x" group-title="Movies",Title (2020)
http://provider.example/movie/u/p/2.mkv
#EXTINF:-1 group-title="Series",Breaking Bad - S01E02
http://provider.example/series/u/p/3.mkv
"""


def test_parses_all_entries_in_order():
    entries = M3uParser().parse(PLAYLIST)
    assert [e.name for e in entries] == ['BBC One HD', 'Title (2020)', 'Breaking Bad - S01E02']


def test_live_entry_attributes():
    channel = M3uParser().parse(PLAYLIST)[0]
    assert channel.tvg_id == 'bbc1.uk'
    assert channel.tvg_name == 'BBC One'
    assert channel.logo_url == 'http://logo/bbc1.png'
    assert channel.tvg_language == 'English'
    assert channel.content_type is ContentType.LIVE_TV
    assert channel.country_code == 'UK'
    assert channel.category == 'News'


def test_movie_entry():
    movie = M3uParser().parse(PLAYLIST)[1]
    assert movie.duration == -1
    assert movie.tvg_id == 'x'
    assert movie.group_title == 'Movies'
    assert movie.name == 'Title (2020)'
    assert movie.content_type is ContentType.MOVIE
    assert movie.year == 2020


def test_episode_entry():
    episode = M3uParser().parse(PLAYLIST)[2]
    assert episode.content_type is ContentType.EPISODE
    assert (episode.series_name, episode.season_number, episode.episode_number) == ('Breaking Bad', 1, 2)
    assert episode.display_name == 'Breaking Bad - S01E02'


def test_bytes_and_text_streams_parse_the_same():
    from_text = M3uParser().parse(PLAYLIST)
    from_bytes = M3uParser().parse(PLAYLIST.encode('utf-8'))
    from_file = M3uParser().parse(io.BytesIO(PLAYLIST.encode('utf-8')))
    assert from_text == from_bytes == from_file


def test_duration_is_read():
    entries = M3uParser().parse('#EXTM3U\n#EXTINF:3600,Long Show\nhttp://a/b.ts\n')
    assert entries[0].duration == 3600


def test_headers_are_folded_and_canonicalized():
    playlist = """#EXTM3U
#EXTINF:-1,Protected
#EXTVLCOPT:http-user-agent=Mozilla/5.0
#EXTVLCOPT:http-referrer=https://ref.example/
#KODIPROP:inputstream.adaptive.stream_headers.origin=https://origin.example
#EXTVLCOPT:network-caching=1000
https://cdn.example/stream.m3u8
#EXTINF:-1,Open
https://cdn.example/open.m3u8
"""
    protected, open_entry = M3uParser().parse(playlist)
    assert protected.headers == {
        'User-Agent': 'Mozilla/5.0',
        'Referer': 'https://ref.example/',
        'Origin': 'https://origin.example',
    }
    assert open_entry.headers == {}


def test_header_map_survives_storage():
    playlist = '#EXTINF:-1,Ch\n#EXTVLCOPT:http-user-agent=VLC/3.0\n#EXTVLCOPT:http-referrer=http://r/\nhttp://s/1.ts\n'
    entry = M3uParser().parse(playlist)[0]
    assert decode_headers(encode_headers(entry.headers)) == entry.headers


def test_parse_header_option():
    assert parse_header_option('#EXTVLCOPT:http-user-agent=UA') == ('User-Agent', 'UA')
    assert parse_header_option('#EXTVLCOPT:http-origin=https://o') == ('Origin', 'https://o')
    assert parse_header_option('#EXTVLCOPT:network-caching=1000') is None
    assert parse_header_option('#EXTVLCOPT:no-value') is None


def test_extgrp_supplies_group_when_attribute_missing():
    playlist = '#EXTINF:-1,Ch\n#EXTGRP:Sports\nhttp://s/1.ts\n#EXTINF:-1,Next\nhttp://s/2.ts\n'
    first, second = M3uParser().parse(playlist)
    assert first.group_title == 'Sports'
    assert second.group_title is None


def test_group_title_attribute_wins_over_extgrp():
    playlist = '#EXTINF:-1 group-title="News",Ch\n#EXTGRP:Sports\nhttp://s/1.ts\n'
    assert M3uParser().parse(playlist)[0].group_title == 'News'


def test_url_without_metadata_or_scheme_is_dropped():
    playlist = """#EXTM3U
http://orphan.example/1.ts
#EXTINF:-1,Bad Scheme
ftp://files.example/2.ts
http://after-reset.example/3.ts
#EXTINF:-1,Good
http://ok.example/4.ts
"""
    entries = M3uParser().parse(playlist)
    assert [e.name for e in entries] == ['Good']


def test_unknown_directives_are_ignored():
    playlist = '#EXTM3U\n#EXTINF:-1,Ch\n#EXT-X-SOMETHING:1\n# comment\nhttp://s/1.ts\n'
    assert len(M3uParser().parse(playlist)) == 1


def test_unbalanced_quotes_do_not_stop_the_parse():
    playlist = """#EXTM3U
#EXTINF:-1 tvg-name="Broken,Name
http://s/1.ts
#EXTINF:-1 tvg-id="ok",Valid
http://s/2.ts
"""
    entries = M3uParser().parse(playlist)
    assert entries[-1].name == 'Valid'
    assert entries[0].name == 'Name'


def test_entry_without_title_is_dropped():
    playlist = '#EXTINF:-1 tvg-id="x"\nhttp://s/1.ts\n#EXTINF:-1,Kept\nhttp://s/2.ts\n'
    assert [e.name for e in M3uParser().parse(playlist)] == ['Kept']


def test_category_keeps_plain_group_names():
    entries = M3uParser().parse(PLAYLIST)
    assert entries[1].category == 'Movies'
    assert M3uParser().parse('#EXTINF:-1,No Group\nhttp://s/1.ts\n')[0].category is None
