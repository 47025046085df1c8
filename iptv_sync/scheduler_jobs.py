# iptv_sync/scheduler_jobs.py
import enum
from datetime import datetime, timedelta, timezone
from flask import current_app

# Import the app factory and extensions from the main package
from . import db, scheduler, create_app
from .models import PlaylistSource
from .result import ErrorKind
from .sync import epg_sync, playlist_sync

EPG_JOB_ID = 'epg_refresh_all'

# A retry cannot help these.
_NO_RETRY = {ErrorKind.NOT_FOUND, ErrorKind.BUSY}


class JobOutcome(enum.Enum):
    SUCCESS = 'SUCCESS'
    RETRY = 'RETRY'
    FAILURE = 'FAILURE'


def playlist_job_id(source_id):
    return f'playlist_refresh_{source_id}'


def retry_delay(attempt, base_minutes):
    """Exponential backoff: base, 2*base, 4*base, ..."""
    return timedelta(minutes=base_minutes * 2 ** attempt)

# --- Job Scheduling Helpers ---

def schedule_all_playlist_refreshes():
    """Schedules interval jobs for every enabled, auto-refreshing playlist."""
    try:
        sources = PlaylistSource.query.filter_by(enabled=True, auto_refresh=True).all()
        for source in sources:
            schedule_playlist_refresh_job(source.id, source.refresh_interval_hours)
        current_app.logger.info(f"Scheduled refresh jobs for {len(sources)} playlists.")
    except Exception as e:
        current_app.logger.error(f"Error scheduling playlist jobs: {e}", exc_info=True)

def schedule_playlist_refresh_job(source_id, interval_hours):
    scheduler.add_job(
        func=refresh_single_playlist,
        trigger='interval', hours=max(1, interval_hours),
        args=[source_id], id=playlist_job_id(source_id),
        name=f'Refresh playlist {source_id}', replace_existing=True
    )

def unschedule_playlist_refresh_job(source_id):
    job_id = playlist_job_id(source_id)
    if scheduler.get_job(job_id):
        scheduler.remove_job(job_id)

def schedule_epg_refresh_job(interval_hours):
    scheduler.add_job(
        func=refresh_all_epg,
        trigger='interval', hours=max(1, interval_hours),
        id=EPG_JOB_ID, name='Refresh EPG for all playlists', replace_existing=True
    )

def schedule_playlist_retry(source_id, attempt, delay):
    scheduler.add_job(
        func=refresh_single_playlist,
        trigger='date', run_date=datetime.now(timezone.utc) + delay,
        args=[source_id, attempt], id=f'playlist_retry_{source_id}',
        name=f'Retry playlist {source_id} (attempt {attempt})', replace_existing=True
    )

def trigger_playlist_sync_now(source_id):
    """Queues a one-off sync of the playlist that runs immediately."""
    scheduler.add_job(
        func=refresh_single_playlist,
        args=[source_id], id=f'manual_playlist_refresh_{source_id}',
        name=f'Manual playlist refresh {source_id}',
        replace_existing=True, misfire_grace_time=None,
        trigger='date'  # Run immediately
    )

def trigger_epg_refresh_now():
    scheduler.add_job(
        func=refresh_all_epg, id='manual_epg_refresh', name='Manual EPG refresh',
        replace_existing=True, misfire_grace_time=None, trigger='date'
    )

# --- Core Background Jobs ---

def refresh_single_playlist(source_id, attempt=0):
    """Syncs one playlist. A failed sync is retried later with exponential backoff."""
    app = create_app()
    with app.app_context():
        result = playlist_sync().sync(source_id)
        if result.is_ok:
            return JobOutcome.SUCCESS

        if result.kind in _NO_RETRY:
            current_app.logger.warning(f"[Playlist-Job:{source_id}] Not retried: {result.message}")
            return JobOutcome.FAILURE

        max_retries = current_app.config['SYNC_MAX_RETRIES']
        if attempt >= max_retries:
            current_app.logger.error(f"[Playlist-Job:{source_id}] Giving up after {attempt} retries: {result.message}")
            return JobOutcome.FAILURE

        delay = retry_delay(attempt, current_app.config['SYNC_RETRY_BASE_MINUTES'])
        schedule_playlist_retry(source_id, attempt + 1, delay)
        current_app.logger.info(f"[Playlist-Job:{source_id}] Retry {attempt + 1}/{max_retries} in {delay}.")
        return JobOutcome.RETRY

def refresh_all_epg():
    """Imports the EPG feed of every enabled playlist that has one."""
    app = create_app()
    with app.app_context():
        urls = sorted({s.epg_url for s in PlaylistSource.query.filter_by(enabled=True).all() if s.epg_url})
        if not urls:
            current_app.logger.info("[EPG-Job] No EPG URLs configured.")
            return JobOutcome.SUCCESS

        orchestrator = epg_sync()
        failed = 0
        for url in urls:
            result = orchestrator.sync_epg(url)
            if not result.is_ok:
                failed += 1
                current_app.logger.error(f"[EPG-Job] {url}: {result.message}")
        current_app.logger.info(f"[EPG-Job] Finished {len(urls)} feeds, {failed} failed.")
        return JobOutcome.FAILURE if failed == len(urls) else JobOutcome.SUCCESS

def scheduled_cleanup_job():
    """Scheduled task to remove programmes that have ended."""
    app = create_app()
    with app.app_context():
        current_app.logger.info("[Cleanup-Job] Starting daily cleanup...")
        retention = timedelta(hours=current_app.config.get('EPG_DATA_RETENTION_HOURS', 0))
        try:
            removed = epg_sync().delete_expired(retention=retention)
            current_app.logger.info(f"[Cleanup-Job] Deleted {removed} old EPG entries.")
        except Exception as e:
            db.session.rollback()
            current_app.logger.error(f"[Cleanup-Job] An error occurred: {e}", exc_info=True)
