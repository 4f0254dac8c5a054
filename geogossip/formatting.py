"""
表示用の日時フォーマット
"""
import math
from datetime import datetime
from typing import Optional, Union

import pytz

from .models import parse_iso


EXPIRED_LABEL = "Expired"


def format_freshness(value: Optional[str], timezone_name: str = "Asia/Kolkata") -> str:
    """
    作成日時を "DD-MM-YYYY hh:mm AM" 形式に変換

    Args:
        value: サーバーから届いた ISO 8601 文字列
        timezone_name: 表示タイムゾーン

    Returns:
        表示用文字列（解釈できない場合は入力そのまま）
    """
    if not value:
        return ""
    try:
        created_at = parse_iso(value)
    except ValueError:
        return value

    local = created_at.astimezone(pytz.timezone(timezone_name))
    return local.strftime("%d-%m-%Y %I:%M %p")


def format_expiry_countdown(expires_at: Union[str, datetime, None], now: datetime) -> str:
    """
    残り時間を "{H}h {MM}m left" / "{M}m left" 形式に変換

    1 分未満は切り上げて "1m left" とする。
    """
    if expires_at is None or expires_at == "":
        return ""
    if isinstance(expires_at, str):
        try:
            expires_at = parse_iso(expires_at)
        except ValueError:
            return ""

    remaining = (expires_at - now).total_seconds()
    if remaining <= 0:
        return EXPIRED_LABEL

    minutes = max(1, math.ceil(remaining / 60))
    hours, minutes = divmod(minutes, 60)
    if hours > 0:
        return f"{hours}h {minutes:02d}m left"
    return f"{minutes}m left"
