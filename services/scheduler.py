"""
Scheduler
=========
Background jobs run in-process by APScheduler: the periodic auto check-out
sweep and a nightly purge of expired blacklisted tokens.
"""

import os
import logging
from datetime import datetime, timezone

from apscheduler.schedulers.background import BackgroundScheduler
from apscheduler.triggers.cron import CronTrigger
from apscheduler.triggers.interval import IntervalTrigger
from dotenv import load_dotenv

from db import SessionLocal
from models import TokenBlacklist
from services.attendance_service import run_auto_checkout
from services.timezone_utils import APP_TIMEZONE, local_now

load_dotenv()

logger = logging.getLogger("scheduler")

AUTO_CHECKOUT_INTERVAL_SECONDS = int(os.getenv("AUTO_CHECKOUT_INTERVAL_SECONDS", "60"))
BLACKLIST_BATCH_SIZE = 1000


class AttendanceScheduler:
    """
    Background jobs:
    - auto check-out: every AUTO_CHECKOUT_INTERVAL_SECONDS, closes open
      check-ins at 18:00 of their day
    - token blacklist cleanup: daily at 02:30 local time
    """

    def __init__(self):
        self.scheduler = BackgroundScheduler(timezone=APP_TIMEZONE)

    def start(self):
        self.scheduler.add_job(
            self.auto_checkout_job,
            IntervalTrigger(seconds=AUTO_CHECKOUT_INTERVAL_SECONDS),
            id='attendance_auto_checkout',
            name='Close open check-ins after 6:00 PM',
            replace_existing=True,
            coalesce=True,
            max_instances=1,
        )
        self.scheduler.add_job(
            self.cleanup_expired_blacklist,
            CronTrigger(hour=2, minute=30),
            id='cleanup_token_blacklist',
            name='Clean up expired token blacklist entries',
            replace_existing=True,
        )
        self.scheduler.start()
        logger.info(
            f"Scheduler started: auto check-out every {AUTO_CHECKOUT_INTERVAL_SECONDS}s, "
            f"blacklist cleanup daily at 02:30 ({APP_TIMEZONE})"
        )

    def stop(self):
        if self.scheduler.running:
            self.scheduler.shutdown()
            logger.info("Scheduler stopped")

    def auto_checkout_job(self):
        db = SessionLocal()
        try:
            closed = run_auto_checkout(db, local_now())
            if closed:
                logger.info(f"Auto check-out closed {closed} attendance record(s)")
        except Exception as ex:
            db.rollback()
            logger.exception("Auto check-out failed: %s", ex)
        finally:
            db.close()

    def cleanup_expired_blacklist(self):
        """Remove expired tokens from the blacklist table in batches, then from the memory cache."""
        db = SessionLocal()
        try:
            now = datetime.now(timezone.utc).replace(tzinfo=None)
            total_deleted = 0
            while True:
                ids = [
                    row.id for row in db.query(TokenBlacklist.id)
                    .filter(TokenBlacklist.token_exp < now)
                    .limit(BLACKLIST_BATCH_SIZE)
                    .all()
                ]
                if not ids:
                    break
                deleted = db.query(TokenBlacklist).filter(
                    TokenBlacklist.id.in_(ids)
                ).delete(synchronize_session=False)
                db.commit()
                total_deleted += deleted

            from dependencies import _cleanup_expired_cache
            _cleanup_expired_cache()

            logger.info(f"Token blacklist cleanup removed {total_deleted} expired token(s)")
        except Exception as ex:
            db.rollback()
            logger.exception("Token blacklist cleanup failed: %s", ex)
        finally:
            db.close()


# Global scheduler instance
attendance_scheduler = AttendanceScheduler()
