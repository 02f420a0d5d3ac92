# utils.py
from datetime import timezone
from services.timezone_utils import LOCAL_TZ

def to_local(dt):
    # Convert any datetime (naive=assumed UTC; aware=converted) to the app timezone
    if not dt:
        return None
    if dt.tzinfo is None:
        dt = dt.replace(tzinfo=timezone.utc)
    return dt.astimezone(LOCAL_TZ)
