"""EPG synchronization and programme lookups."""
import io
import logging
from datetime import timedelta, timezone

from sqlalchemy import delete, func, select

from ..http import DEFAULT_TIMEOUT, DownloadError, download_bytes, maybe_decompress
from ..models import EpgProgramme, utcnow
from ..parsers.xmltv import XmltvParser
from ..result import ErrorKind, Result

logger = logging.getLogger(__name__)


def _naive_utc(value):
    """Aware datetimes become naive UTC, the form stored in the database."""
    if value.tzinfo is None:
        return value
    return value.astimezone(timezone.utc).replace(tzinfo=None)


class EpgSyncOrchestrator:

    def __init__(self, session, http=None, parser=None, timeout=DEFAULT_TIMEOUT):
        self.session = session
        self.http = http
        self.timeout = timeout
        self.parser = parser or XmltvParser()

    def sync_epg(self, url, now=None):
        """Downloads and imports the XMLTV feed at `url`. Returns Result[int] (programmes stored)."""
        logger.info(f"[EPG-Refresh] Starting download of: {url}")
        try:
            body = maybe_decompress(download_bytes(self.http, url, self.timeout))
        except DownloadError as e:
            logger.error(f"[EPG-Refresh] Download failed: {e}")
            return Result.fail(ErrorKind.HTTP if e.status_code else ErrorKind.NETWORK, f"Failed to download EPG: {e}")
        except (OSError, EOFError) as e:
            return Result.fail(ErrorKind.DECODE, f"Corrupt compressed EPG: {e}")
        return self.sync_epg_from_stream(io.BytesIO(body), now=now)

    def sync_epg_from_stream(self, stream, now=None):
        now = _naive_utc(now) if now else utcnow()
        try:
            parsed = self.parser.parse(stream)

            removed = self.delete_expired(now, commit=False)

            fresh = []
            for entry in parsed.programmes:
                end_time = _naive_utc(entry.end_time)
                if end_time < now:
                    continue
                fresh.append(EpgProgramme(
                    channel_id=entry.channel_id,
                    title=entry.title,
                    description=entry.description,
                    category=entry.category,
                    sub_title=entry.sub_title,
                    episode_num=entry.episode_num,
                    icon=entry.icon,
                    rating=entry.rating,
                    start_time=_naive_utc(entry.start_time),
                    end_time=end_time,
                ))

            # A re-imported channel replaces its previous schedule.
            channel_ids = sorted({p.channel_id for p in fresh})
            for i in range(0, len(channel_ids), 500):
                batch = channel_ids[i:i + 500]
                self.session.execute(delete(EpgProgramme).where(EpgProgramme.channel_id.in_(batch)))

            self.session.add_all(fresh)
            self.session.commit()
        except Exception as e:
            self.session.rollback()
            logger.error(f"[EPG-Refresh] Import failed: {e}", exc_info=True)
            return Result.fail(ErrorKind.STORAGE, str(e) or e.__class__.__name__)

        logger.info(f"[EPG-Refresh] Stored {len(fresh)} programmes for {len(channel_ids)} channels, "
                    f"removed {removed} expired.")
        return Result.ok(len(fresh))

    def delete_expired(self, now=None, retention=timedelta(0), commit=True):
        cutoff = (_naive_utc(now) if now else utcnow()) - retention
        removed = self.session.execute(delete(EpgProgramme).where(EpgProgramme.end_time < cutoff)).rowcount
        if commit:
            self.session.commit()
        return removed or 0

    # --- Lookups ---

    def get_current_program(self, channel_id, now=None):
        now = _naive_utc(now) if now else utcnow()
        return self.session.scalars(
            select(EpgProgramme)
            .where(EpgProgramme.channel_id == channel_id,
                   EpgProgramme.start_time <= now,
                   EpgProgramme.end_time > now)
            .order_by(EpgProgramme.start_time)
            .limit(1)
        ).first()

    def get_next_program(self, channel_id, now=None):
        now = _naive_utc(now) if now else utcnow()
        return self.session.scalars(
            select(EpgProgramme)
            .where(EpgProgramme.channel_id == channel_id, EpgProgramme.start_time > now)
            .order_by(EpgProgramme.start_time)
            .limit(1)
        ).first()

    def get_upcoming_programs(self, channel_id, now=None):
        now = _naive_utc(now) if now else utcnow()
        return self.session.scalars(
            select(EpgProgramme)
            .where(EpgProgramme.channel_id == channel_id, EpgProgramme.end_time > now)
            .order_by(EpgProgramme.start_time)
        ).all()

    def get_programs_in_range(self, channel_id, start, end):
        return self.session.scalars(
            select(EpgProgramme)
            .where(EpgProgramme.channel_id == channel_id,
                   EpgProgramme.start_time >= start,
                   EpgProgramme.end_time <= end)
            .order_by(EpgProgramme.start_time)
        ).all()

    def get_all_programs_in_range(self, start, end):
        return self.session.scalars(
            select(EpgProgramme)
            .where(EpgProgramme.start_time >= start, EpgProgramme.end_time <= end)
            .order_by(EpgProgramme.channel_id, EpgProgramme.start_time)
        ).all()

    def search_programs(self, query):
        return self.session.scalars(
            select(EpgProgramme)
            .where(EpgProgramme.title.ilike(f"%{query}%"))
            .order_by(EpgProgramme.start_time)
        ).all()

    def stats(self):
        count, earliest, latest = self.session.execute(
            select(func.count(EpgProgramme.id), func.min(EpgProgramme.start_time), func.max(EpgProgramme.end_time))
        ).one()
        return {'programme_count': count, 'earliest_start': earliest, 'latest_end': latest}
