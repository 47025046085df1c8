"""Download helpers shared by the playlist and EPG sync."""
import gzip
import logging
import threading

import requests

logger = logging.getLogger(__name__)

DEFAULT_TIMEOUT = (30, 60)
GZIP_MAGIC = b'\x1f\x8b'


class DownloadError(Exception):
    """A download that did not produce a usable body."""

    def __init__(self, message, status_code=None):
        super().__init__(message)
        self.status_code = status_code


def create_session(user_agent):
    session = requests.Session()
    session.headers.update({'User-Agent': user_agent})
    return session


_shared_session = None
_shared_session_lock = threading.Lock()


def shared_session(user_agent):
    """The process-wide session, created on first use and reused by every app instance."""
    global _shared_session
    with _shared_session_lock:
        if _shared_session is None:
            _shared_session = create_session(user_agent)
        return _shared_session


def describe_http_status(status_code):
    """User-facing message for a failed playlist download."""
    if status_code == 400:
        return "Invalid or malformed playlist URL"
    if status_code in (401, 403):
        return "Authentication required or access denied"
    if status_code == 404:
        return "Playlist not found on the server"
    if 500 <= status_code <= 599:
        return "The IPTV server is temporarily unavailable"
    if 800 <= status_code <= 899:
        return f"IPTV provider error: check your subscription or credentials (code {status_code})"
    return f"Download failed (code {status_code})"


def download_bytes(session, url, timeout=DEFAULT_TIMEOUT):
    """Fetches `url` and returns the raw body, raising DownloadError on any failure."""
    try:
        response = session.get(url, timeout=timeout)
    except requests.Timeout as e:
        raise DownloadError(f"The server did not respond in time: {e}") from e
    except requests.RequestException as e:
        raise DownloadError(f"Could not connect to the server: {e}") from e

    if not 200 <= response.status_code < 300:
        logger.warning(f"GET {url} returned HTTP {response.status_code}")
        raise DownloadError(describe_http_status(response.status_code), status_code=response.status_code)

    body = response.content
    if not body:
        raise DownloadError("Empty response from the server", status_code=response.status_code)
    return body


def download_text(session, url, timeout=DEFAULT_TIMEOUT):
    # Playlists rarely declare a charset; UTF-8 is the de facto encoding.
    return download_bytes(session, url, timeout).decode('utf-8', errors='replace')


def maybe_decompress(body):
    """Inflates gzip payloads (e.g. `guide.xml.gz`), passes anything else through."""
    if body[:2] == GZIP_MAGIC:
        return gzip.decompress(body)
    return body
