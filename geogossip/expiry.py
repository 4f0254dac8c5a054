"""
ゴシップの有効期限ポリシー
"""
import math
from datetime import datetime, timedelta
from typing import Any, Optional


# 投稿時に選択できる有効期限（時間）
ALLOWED_DURATIONS = (24, 12, 6, 1)
# 不正な値は最短の 1 時間に丸める
DEFAULT_DURATION = 1
# 元の期限が不明な投稿を再投稿するときの期限
DEFAULT_REPOST_DURATION = 24


def normalize_duration(requested: Any) -> int:
    """
    要求された有効期限を許可リストの値に正規化

    数値または数値文字列を受け付け、許可リストにない値はすべて 1 時間になる。
    例外は送出しない。

    Args:
        requested: クライアントから届いた expiresInHours

    Returns:
        許可リストに含まれる時間数
    """
    if isinstance(requested, bool):
        return DEFAULT_DURATION

    try:
        hours = float(requested)
    except (TypeError, ValueError, ArithmeticError):
        return DEFAULT_DURATION

    if not math.isfinite(hours) or hours not in ALLOWED_DURATIONS:
        return DEFAULT_DURATION
    return int(hours)


def compute_expiry(created_at: datetime, hours: int) -> datetime:
    """作成時刻と有効期限から期限切れ時刻を計算"""
    return created_at + timedelta(hours=hours)


def is_expired(expires_at: Optional[datetime], now: datetime) -> bool:
    """
    期限切れ判定（期限ちょうどの時刻で期限切れ）

    expires_at を持たない古い投稿は期限切れにならない。
    """
    if expires_at is None:
        return False
    return now >= expires_at
