from datetime import datetime
import pytz
from decimal import Decimal
from ..config import Config

def format_price(amount: Decimal, currency: str = "") -> str:
    text = f"{amount:,.0f}"
    return f"{currency} {text}".strip()

def format_datetime(dt: datetime) -> str:
    local_tz = pytz.timezone(Config.TIMEZONE)
    if dt.tzinfo is None:
        dt = pytz.utc.localize(dt)
    return dt.astimezone(local_tz).strftime("%Y-%m-%d %H:%M")

def format_eta(min_minutes: int, max_minutes: int) -> str:
    return f"{min_minutes}-{max_minutes} mins"
