import gzip
import io
from datetime import datetime, timedelta, timezone

import pytest

from iptv_sync import db
from iptv_sync.models import EpgProgramme
from iptv_sync.result import ErrorKind
from iptv_sync.sync import EpgSyncOrchestrator

EPG_URL = 'http://guide.example/epg.xml'
NOW = datetime(2024, 1, 15, 12, 30, tzinfo=timezone.utc)

GUIDE = b"""<?xml version="1.0" encoding="UTF-8"?>
<tv>
  <channel id="bbc1.uk"><display-name>BBC One</display-name></channel>
  <programme channel="bbc1.uk" start="20240115100000 +0000" stop="20240115110000 +0000">
    <title>Stale</title>
  </programme>
  <programme channel="bbc1.uk" start="20240115120000 +0000" stop="20240115130000 +0000">
    <title>Live</title>
  </programme>
</tv>
"""

LATER_GUIDE = b"""<?xml version="1.0" encoding="UTF-8"?>
<tv>
  <programme channel="bbc1.uk" start="20240115120000 +0000" stop="20240115130000 +0000">
    <title>Live</title>
  </programme>
  <programme channel="bbc1.uk" start="20240115130000 +0000" stop="20240115140000 +0000">
    <title>Afternoon</title>
  </programme>
  <programme channel="bbc1.uk" start="20240115150000 +0000" stop="20240115160000 +0000">
    <title>Evening</title>
  </programme>
</tv>
"""


@pytest.fixture
def orchestrator(app, fake_http):
    return EpgSyncOrchestrator(db.session, fake_http)


def _titles():
    return [p.title for p in EpgProgramme.query.order_by(EpgProgramme.start_time)]


def test_only_live_programmes_are_stored(orchestrator, fake_http):
    fake_http.add_text(EPG_URL, GUIDE)

    result = orchestrator.sync_epg(EPG_URL, now=NOW)

    assert result.is_ok
    assert result.value == 1
    assert _titles() == ['Live']


def test_stored_times_are_naive_utc(orchestrator):
    orchestrator.sync_epg_from_stream(io.BytesIO(GUIDE), now=NOW)
    live = EpgProgramme.query.one()
    assert live.start_time == datetime(2024, 1, 15, 12, 0)
    assert live.end_time - live.start_time == timedelta(hours=1)


def test_gzip_feed(orchestrator, fake_http):
    fake_http.add_text(EPG_URL, gzip.compress(GUIDE))
    assert orchestrator.sync_epg(EPG_URL, now=NOW).value == 1


def test_reimport_replaces_the_channel_schedule(orchestrator):
    orchestrator.sync_epg_from_stream(io.BytesIO(GUIDE), now=NOW)
    orchestrator.sync_epg_from_stream(io.BytesIO(LATER_GUIDE), now=NOW)
    assert _titles() == ['Live', 'Afternoon', 'Evening']


def test_expired_programmes_of_other_channels_are_removed(orchestrator):
    db.session.add(EpgProgramme(channel_id='other', title='Old',
                                start_time=datetime(2024, 1, 14, 8, 0), end_time=datetime(2024, 1, 14, 9, 0)))
    db.session.add(EpgProgramme(channel_id='other', title='Tonight',
                                start_time=datetime(2024, 1, 15, 20, 0), end_time=datetime(2024, 1, 15, 21, 0)))
    db.session.commit()

    orchestrator.sync_epg_from_stream(io.BytesIO(GUIDE), now=NOW)

    assert _titles() == ['Live', 'Tonight']


def test_download_failure(orchestrator, fake_http):
    fake_http.add_text(EPG_URL, 'gone', status_code=404)
    result = orchestrator.sync_epg(EPG_URL, now=NOW)
    assert result.kind is ErrorKind.HTTP


def test_current_and_next_programme(orchestrator):
    orchestrator.sync_epg_from_stream(io.BytesIO(LATER_GUIDE), now=NOW)

    assert orchestrator.get_current_program('bbc1.uk', now=NOW).title == 'Live'
    assert orchestrator.get_next_program('bbc1.uk', now=NOW).title == 'Afternoon'


def test_programme_boundaries(orchestrator):
    orchestrator.sync_epg_from_stream(io.BytesIO(LATER_GUIDE), now=NOW)
    at_one = datetime(2024, 1, 15, 13, 0, tzinfo=timezone.utc)

    # start is inclusive, end is exclusive
    assert orchestrator.get_current_program('bbc1.uk', now=at_one).title == 'Afternoon'
    assert orchestrator.get_next_program('bbc1.uk', now=at_one).title == 'Evening'
    gap = datetime(2024, 1, 15, 14, 30, tzinfo=timezone.utc)
    assert orchestrator.get_current_program('bbc1.uk', now=gap) is None
    assert orchestrator.get_current_program('unknown', now=NOW) is None


def test_range_and_search_lookups(orchestrator):
    orchestrator.sync_epg_from_stream(io.BytesIO(LATER_GUIDE), now=NOW)

    in_range = orchestrator.get_programs_in_range('bbc1.uk', datetime(2024, 1, 15, 12, 0), datetime(2024, 1, 15, 14, 0))
    assert [p.title for p in in_range] == ['Live', 'Afternoon']
    assert len(orchestrator.get_all_programs_in_range(datetime(2024, 1, 15), datetime(2024, 1, 16))) == 3
    assert [p.title for p in orchestrator.search_programs('noon')] == ['Afternoon']
    assert [p.title for p in orchestrator.get_upcoming_programs('bbc1.uk', now=NOW)] == ['Live', 'Afternoon', 'Evening']


def test_delete_expired_with_retention(orchestrator):
    orchestrator.sync_epg_from_stream(io.BytesIO(LATER_GUIDE), now=NOW)
    evening = datetime(2024, 1, 15, 17, 0, tzinfo=timezone.utc)

    assert orchestrator.delete_expired(now=evening, retention=timedelta(hours=3, minutes=30)) == 1
    assert _titles() == ['Afternoon', 'Evening']


def test_stats(orchestrator):
    orchestrator.sync_epg_from_stream(io.BytesIO(LATER_GUIDE), now=NOW)
    stats = orchestrator.stats()
    assert stats['programme_count'] == 3
    assert stats['earliest_start'] == datetime(2024, 1, 15, 12, 0)
    assert stats['latest_end'] == datetime(2024, 1, 15, 16, 0)
