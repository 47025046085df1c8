"""
Parser for M3U/M3U8 playlists.

Handles the extended format used by IPTV providers:
- `#EXTINF` entries with tvg-* and group-title attributes
- `#EXTVLCOPT` / `#KODIPROP` lines carrying User-Agent, Referer and Origin
- `#EXTGRP` group markers
- live channels, movies and series episodes in the same file
"""
import io
import logging
import re
from dataclasses import dataclass, field
from typing import Dict, Optional

from .attributes import extract_attribute, title_after_last_comma
from .classifier import ContentType, classify, extract_series_info, extract_year

logger = logging.getLogger(__name__)

EXTM3U = '#EXTM3U'
EXTINF = '#EXTINF:'
EXTVLCOPT = '#EXTVLCOPT:'
KODIPROP = '#KODIPROP:'
EXTGRP = '#EXTGRP:'

STREAM_SCHEMES = ('http://', 'https://', 'rtmp://', 'rtsp://', 'mms://')
DURATION_PATTERN = re.compile(r'^#EXTINF:\s*(-?\d+)')
COUNTRY_PREFIX_PATTERN = re.compile(r'^([A-Z]{2,3})\s*[|:]')


@dataclass
class M3uEntry:
    name: str
    url: str
    logo_url: Optional[str] = None
    group_title: Optional[str] = None
    tvg_id: Optional[str] = None
    tvg_name: Optional[str] = None
    tvg_country: Optional[str] = None
    tvg_language: Optional[str] = None
    duration: int = -1
    content_type: ContentType = ContentType.UNKNOWN
    headers: Dict[str, str] = field(default_factory=dict)

    # Episodes only
    series_name: Optional[str] = None
    season_number: Optional[int] = None
    episode_number: Optional[int] = None

    # Movies only
    year: Optional[int] = None
    rating: Optional[float] = None

    @property
    def display_name(self):
        """`Series - S01E02` for episodes, the plain name otherwise."""
        if self.content_type is ContentType.EPISODE and self.series_name:
            season = f"S{self.season_number:02d}" if self.season_number is not None else ''
            episode = f"E{self.episode_number:02d}" if self.episode_number is not None else ''
            if season or episode:
                return f"{self.series_name} - {season}{episode}"
        return self.name

    @property
    def country_code(self):
        if self.tvg_country:
            return self.tvg_country.upper()
        if self.group_title:
            match = COUNTRY_PREFIX_PATTERN.match(self.group_title)
            if match:
                return match.group(1)
        return None

    @property
    def category(self):
        """The group label without its country prefix: `US: News` -> `News`."""
        if not self.group_title:
            return None
        return COUNTRY_PREFIX_PATTERN.sub('', self.group_title).strip() or self.group_title


def parse_header_option(line):
    """
    Maps a `#EXTVLCOPT:`/`#KODIPROP:` line to a (header, value) pair.
    Returns None for options that are not HTTP headers.
    """
    for marker in (EXTVLCOPT, KODIPROP):
        if line.startswith(marker):
            content = line[len(marker):]
            break
    else:
        return None

    key, sep, value = content.partition('=')
    if not sep:
        return None
    key = key.strip().lower()
    value = value.strip()

    if 'user-agent' in key:
        return 'User-Agent', value
    if 'referrer' in key or 'referer' in key:
        return 'Referer', value
    if 'origin' in key:
        return 'Origin', value
    return None


def is_stream_url(line):
    return line.startswith(STREAM_SCHEMES)


def _iter_lines(source):
    if isinstance(source, bytes):
        source = source.decode('utf-8', errors='replace')
    if isinstance(source, str):
        return io.StringIO(source)
    return source


class M3uParser:
    """Turns playlist text into a list of M3uEntry, skipping entries it cannot read."""

    def parse(self, source):
        """
        Parses `source`, which may be a str, bytes, a text or binary file
        object, or any iterable of lines.
        """
        entries = []
        pending_extinf = None
        pending_headers = {}
        pending_group = None

        for raw_line in _iter_lines(source):
            if isinstance(raw_line, bytes):
                raw_line = raw_line.decode('utf-8', errors='replace')
            line = raw_line.strip()

            if not line or line.startswith(EXTM3U):
                continue

            if line.startswith(EXTINF):
                pending_extinf = line
            elif line.startswith(EXTVLCOPT) or line.startswith(KODIPROP):
                header = parse_header_option(line)
                if header:
                    pending_headers[header[0]] = header[1]
            elif line.startswith(EXTGRP):
                pending_group = line[len(EXTGRP):].strip()
            elif line.startswith('#'):
                continue
            else:
                if pending_extinf is not None and is_stream_url(line):
                    entry = self.parse_entry(pending_extinf, line, pending_headers, pending_group)
                    if entry is not None:
                        entries.append(entry)
                else:
                    logger.debug(f"Dropping stream line without usable #EXTINF: {line[:80]}")
                pending_extinf = None
                pending_headers = {}
                pending_group = None

        logger.info(f"Parsed {len(entries)} playlist entries.")
        return entries

    def parse_entry(self, extinf_line, url, headers, ext_group=None):
        """Builds one entry from its `#EXTINF` line and URL, or returns None."""
        try:
            match = DURATION_PATTERN.match(extinf_line)
            duration = int(match.group(1)) if match else -1

            name = title_after_last_comma(extinf_line)
            if not name:
                return None

            group_title = extract_attribute(extinf_line, 'group-title') or ext_group
            content_type = classify(group_title, name, url)
            series_name, season, episode = extract_series_info(name, content_type)

            return M3uEntry(
                name=name,
                url=url,
                logo_url=extract_attribute(extinf_line, 'tvg-logo') or None,
                group_title=group_title,
                tvg_id=extract_attribute(extinf_line, 'tvg-id'),
                tvg_name=extract_attribute(extinf_line, 'tvg-name'),
                tvg_country=extract_attribute(extinf_line, 'tvg-country'),
                tvg_language=extract_attribute(extinf_line, 'tvg-language'),
                duration=duration,
                content_type=content_type,
                headers=dict(headers),
                series_name=series_name,
                season_number=season,
                episode_number=episode,
                year=extract_year(name),
            )
        except Exception as e:
            logger.debug(f"Skipping unreadable entry '{extinf_line[:80]}': {e}")
            return None
