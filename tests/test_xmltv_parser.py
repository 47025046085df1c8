from datetime import datetime, timedelta, timezone

import pytest

from iptv_sync.parsers import XmltvParser, parse_xmltv_datetime

GUIDE = b"""<?xml version="1.0" encoding="UTF-8"?>
<tv generator-info-name="test">
  <channel id="bbc1.uk">
    <display-name>BBC One</display-name>
    <icon src="http://logo/bbc1.png"/>
  </channel>
  <channel>
    <display-name>No id</display-name>
  </channel>
  <channel id="nameless.uk">
    <icon src="http://logo/x.png"/>
  </channel>
  <programme channel="bbc1.uk" start="20240115120000 +0000" stop="20240115130000 +0000">
    <title lang="en">News at Noon</title>
    <sub-title>Headlines</sub-title>
    <desc>The news.</desc>
    <category>News</category>
    <episode-num system="onscreen">E12</episode-num>
    <icon src="http://img/noon.png"/>
    <rating system="UK"><value>PG</value><icon src="http://img/pg.png"/></rating>
    <star-rating><value>7/10</value></star-rating>
  </programme>
  <programme channel="bbc1.uk" start="garbage" stop="20240115140000 +0000">
    <title>Unreadable start</title>
  </programme>
  <programme channel="bbc1.uk" start="20240115130000 +0000" stop="20240115140000 +0000">
    <desc>No title</desc>
  </programme>
  <programme channel="bbc1.uk" start="202401151400 +0100" stop="202401151500 +0100">
    <title>Minute precision</title>
  </programme>
</tv>
"""


@pytest.fixture
def parsed():
    return XmltvParser().parse(GUIDE)


def test_channels_need_an_id_and_a_display_name(parsed):
    assert [(c.id, c.display_name, c.icon) for c in parsed.channels] == [
        ('bbc1.uk', 'BBC One', 'http://logo/bbc1.png'),
    ]


def test_programme_fields(parsed):
    noon = parsed.programmes[0]
    assert noon.channel_id == 'bbc1.uk'
    assert noon.title == 'News at Noon'
    assert noon.sub_title == 'Headlines'
    assert noon.description == 'The news.'
    assert noon.category == 'News'
    assert noon.episode_num == 'E12'
    assert noon.icon == 'http://img/noon.png'
    assert noon.rating == 'PG'


def test_programme_interval_is_one_hour_in_utc(parsed):
    noon = parsed.programmes[0]
    assert noon.start_time == datetime(2024, 1, 15, 12, 0, tzinfo=timezone.utc)
    assert noon.end_time - noon.start_time == timedelta(hours=1)
    assert noon.duration_minutes == 60
    assert noon.is_airing(datetime(2024, 1, 15, 12, 30, tzinfo=timezone.utc))
    assert not noon.is_airing(datetime(2024, 1, 15, 13, 0, tzinfo=timezone.utc))


def test_unusable_programmes_are_skipped(parsed):
    assert [p.title for p in parsed.programmes] == ['News at Noon', 'Minute precision']


def test_minute_precision_with_offset(parsed):
    programme = parsed.programmes[1]
    assert programme.start_time == datetime(2024, 1, 15, 13, 0, tzinfo=timezone.utc)


def test_truncated_document_keeps_what_was_read():
    cut = GUIDE[:GUIDE.index(b'<programme channel="bbc1.uk" start="garbage"') + 20]
    result = XmltvParser().parse(cut)
    assert [c.id for c in result.channels] == ['bbc1.uk']
    assert [p.title for p in result.programmes] == ['News at Noon']


@pytest.mark.parametrize('value, expected', [
    ('20240115120000 +0000', datetime(2024, 1, 15, 12, 0, 0, tzinfo=timezone.utc)),
    ('20240115120000 -0500', datetime(2024, 1, 15, 17, 0, 0, tzinfo=timezone.utc)),
    ('20240115120000', datetime(2024, 1, 15, 12, 0, 0, tzinfo=timezone.utc)),
    ('202401151200 +0200', datetime(2024, 1, 15, 10, 0, 0, tzinfo=timezone.utc)),
    ('202401151200', datetime(2024, 1, 15, 12, 0, 0, tzinfo=timezone.utc)),
    ('20240115120030 UTC', datetime(2024, 1, 15, 12, 0, 30, tzinfo=timezone.utc)),
])
def test_parse_xmltv_datetime(value, expected):
    assert parse_xmltv_datetime(value) == expected


@pytest.mark.parametrize('value', [None, '', 'garbage', '2024011'])
def test_parse_xmltv_datetime_rejects(value):
    assert parse_xmltv_datetime(value) is None
