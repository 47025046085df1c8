"""
Streaming parser for XMLTV guide data.

Walks the document with `iterparse` so multi-hundred-megabyte guides never
sit in memory as a full tree. Elements that cannot be used (no id, no title,
unreadable times) are skipped; a document that breaks off part way returns
whatever was read before the break.
"""
import io
import logging
import re
import xml.etree.ElementTree as ET
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import List, Optional

logger = logging.getLogger(__name__)

# Tried in order, first match wins.
DATETIME_FORMATS = (
    (re.compile(r'(\d{14})\s*([+-]\d{4})'), '%Y%m%d%H%M%S%z'),
    (re.compile(r'(\d{14})'), '%Y%m%d%H%M%S'),
    (re.compile(r'(\d{12})\s*([+-]\d{4})'), '%Y%m%d%H%M%z'),
    (re.compile(r'(\d{12})'), '%Y%m%d%H%M'),
)

PROGRAMME_TEXT_FIELDS = {
    'title': 'title',
    'desc': 'description',
    'category': 'category',
    'sub-title': 'sub_title',
    'episode-num': 'episode_num',
}


@dataclass
class XmltvChannel:
    id: str
    display_name: str
    icon: Optional[str] = None


@dataclass
class XmltvProgramme:
    channel_id: str
    title: str
    start_time: datetime
    end_time: datetime
    description: Optional[str] = None
    category: Optional[str] = None
    icon: Optional[str] = None
    rating: Optional[str] = None
    episode_num: Optional[str] = None
    sub_title: Optional[str] = None

    def is_airing(self, now=None):
        now = now or datetime.now(timezone.utc)
        return self.start_time <= now < self.end_time

    @property
    def duration_minutes(self):
        return int((self.end_time - self.start_time).total_seconds() // 60)


@dataclass
class XmltvParseResult:
    channels: List[XmltvChannel] = field(default_factory=list)
    programmes: List[XmltvProgramme] = field(default_factory=list)


def _as_utc(value):
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc)


def parse_xmltv_datetime(value):
    """Parses an XMLTV timestamp into an aware UTC datetime, or None."""
    if not value:
        return None
    text = value.strip()

    for pattern, fmt in DATETIME_FORMATS:
        match = pattern.fullmatch(text)
        if not match:
            continue
        try:
            return _as_utc(datetime.strptime(''.join(match.groups()), fmt))
        except ValueError:
            continue

    # Last resort: read the leading yyyyMMddHHmmss and ignore whatever follows.
    head = text[:14]
    if len(head) == 14:
        try:
            return datetime(
                int(head[0:4]), int(head[4:6]), int(head[6:8]),
                int(head[8:10]), int(head[10:12]), int(head[12:14]),
                tzinfo=timezone.utc,
            )
        except ValueError:
            pass
    logger.debug(f"Unreadable XMLTV datetime '{value}'")
    return None


class XmltvParser:
    """Collects <channel> and <programme> records from an XMLTV byte stream."""

    def parse(self, stream):
        """`stream` is a binary file object, a path, or the raw document bytes."""
        if isinstance(stream, (bytes, bytearray)):
            stream = io.BytesIO(stream)
        result = XmltvParseResult()
        root = None
        channel = None
        programme = None
        skipping = False
        in_rating = False

        try:
            for event, elem in ET.iterparse(stream, events=('start', 'end')):
                tag = elem.tag

                if event == 'start':
                    if root is None:
                        root = elem
                    if tag == 'channel' and channel is None and programme is None:
                        channel_id = elem.get('id')
                        if channel_id:
                            channel = {'id': channel_id, 'display_name': None, 'icon': None}
                        else:
                            skipping = True
                    elif tag == 'programme' and channel is None and programme is None:
                        programme = self._open_programme(elem)
                        skipping = programme is None
                    elif tag == 'icon':
                        if channel is not None:
                            channel['icon'] = elem.get('src')
                        elif programme is not None and not in_rating:
                            programme['icon'] = elem.get('src')
                    elif tag == 'rating' and programme is not None:
                        in_rating = True
                    continue

                # event == 'end'
                if tag == 'channel' and (channel is not None or skipping):
                    if channel is not None and channel['display_name'] is not None:
                        result.channels.append(XmltvChannel(**channel))
                    channel = None
                    skipping = False
                    self._release(root, elem)
                elif tag == 'programme' and (programme is not None or skipping):
                    if programme is not None and programme['title'] is not None:
                        result.programmes.append(XmltvProgramme(**programme))
                    programme = None
                    skipping = False
                    in_rating = False
                    self._release(root, elem)
                elif channel is not None and tag == 'display-name':
                    channel['display_name'] = elem.text or ''
                elif programme is not None:
                    if tag in PROGRAMME_TEXT_FIELDS:
                        programme[PROGRAMME_TEXT_FIELDS[tag]] = elem.text or ''
                    elif tag == 'value' and in_rating:
                        programme['rating'] = elem.text or ''
                    elif tag == 'rating':
                        in_rating = False
        except ET.ParseError as e:
            logger.warning(f"XMLTV document ended early ({e}); keeping "
                           f"{len(result.channels)} channels and {len(result.programmes)} programmes.")

        return result

    def _open_programme(self, elem):
        channel_id = elem.get('channel')
        start = parse_xmltv_datetime(elem.get('start'))
        stop = parse_xmltv_datetime(elem.get('stop'))
        if not channel_id or start is None or stop is None:
            return None
        return {
            'channel_id': channel_id,
            'title': None,
            'start_time': start,
            'end_time': stop,
            'description': None,
            'category': None,
            'icon': None,
            'rating': None,
            'episode_num': None,
            'sub_title': None,
        }

    @staticmethod
    def _release(root, elem):
        elem.clear()
        if root is not None and root is not elem:
            root.clear()
