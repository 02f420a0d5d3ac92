import os
from datetime import datetime, timezone
from typing import Optional
import pytz
from dotenv import load_dotenv

load_dotenv()

# Attendance windows are evaluated against this wall clock
APP_TIMEZONE = os.getenv("APP_TIMEZONE", "Asia/Kolkata")
LOCAL_TZ = pytz.timezone(APP_TIMEZONE)

def utc_now() -> datetime:
    return datetime.now(timezone.utc).replace(tzinfo=None)

def local_now() -> datetime:
    return datetime.now(LOCAL_TZ).replace(tzinfo=None)

def utc_to_local(utc_dt: Optional[datetime]) -> Optional[datetime]:
    if utc_dt is None:
        return None
    if utc_dt.tzinfo is None:
        utc_dt = utc_dt.replace(tzinfo=timezone.utc)
    return utc_dt.astimezone(LOCAL_TZ).replace(tzinfo=None)

def local_to_utc(local_dt: Optional[datetime]) -> Optional[datetime]:
    if local_dt is None:
        return None
    if local_dt.tzinfo is None:
        local_dt = LOCAL_TZ.localize(local_dt)
    return local_dt.astimezone(timezone.utc).replace(tzinfo=None)

# API Response Formatters (for JSON serialization)
def format_local_datetime(utc_dt: Optional[datetime]) -> Optional[str]:
    if utc_dt is None:
        return None
    return utc_to_local(utc_dt).strftime("%Y-%m-%d %H:%M:%S")

