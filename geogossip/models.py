"""
データモデル定義 - dataclassesを使用
"""
from dataclasses import dataclass, field
from datetime import datetime, timezone
from decimal import Decimal
from typing import Any, Dict, Optional
import math
import uuid

from .expiry import compute_expiry, is_expired


GOSSIP_TYPES = ["General", "Traffic", "Emergency", "Event", "News"]
DEFAULT_GOSSIP_TYPE = GOSSIP_TYPES[0]

LOCATION_PREFERENCES = ("current", "map")
DEFAULT_LOCATION_PREFERENCE = "current"

# 作成日時順 GSI のパーティションキー（全投稿で共通）
FEED_PARTITION = "gossip"


def to_iso(value: datetime) -> str:
    """UTC の ISO 8601 文字列に変換（辞書順 = 時刻順）"""
    return value.astimezone(timezone.utc).isoformat(timespec="milliseconds").replace("+00:00", "Z")


def parse_iso(value: Optional[str]) -> Optional[datetime]:
    """ISO 8601 文字列を aware な datetime に変換"""
    if not value:
        return None
    parsed = datetime.fromisoformat(value.replace("Z", "+00:00"))
    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=timezone.utc)
    return parsed


def normalize_location_preference(value: Any) -> str:
    if value in LOCATION_PREFERENCES:
        return value
    return DEFAULT_LOCATION_PREFERENCE


@dataclass
class Coordinates:
    """緯度経度"""
    latitude: float
    longitude: float

    @classmethod
    def parse(cls, value: Any) -> Optional["Coordinates"]:
        """
        {latitude, longitude} 形式の値を変換

        数値でない・欠けている場合は None（地図には出ないがフィードには出る）
        """
        if isinstance(value, Coordinates):
            return value
        if not isinstance(value, dict):
            return None

        latitude = value.get("latitude")
        longitude = value.get("longitude")
        for number in (latitude, longitude):
            if isinstance(number, bool) or not isinstance(number, (int, float, Decimal)):
                return None
            # NaN や Infinity は JSON にも DynamoDB にも書けない
            try:
                if not math.isfinite(float(number)):
                    return None
            except OverflowError:
                return None
        return cls(latitude=float(latitude), longitude=float(longitude))

    def to_dict(self) -> Dict[str, float]:
        return {"latitude": self.latitude, "longitude": self.longitude}


@dataclass
class GossipPost:
    """ゴシップ投稿モデル"""
    subject: str
    description: str
    gossip_type: str
    created_at: datetime
    expires_in_hours: Optional[int]
    expires_at: Optional[datetime]
    location_preference: str = DEFAULT_LOCATION_PREFERENCE
    location: Optional[Coordinates] = None
    author_id: str = "anonymous"
    id: str = field(default_factory=lambda: str(uuid.uuid4()))

    @classmethod
    def create(
        cls,
        subject: str,
        description: str,
        gossip_type: str,
        created_at: datetime,
        expires_in_hours: int,
        location_preference: str = DEFAULT_LOCATION_PREFERENCE,
        location: Optional[Coordinates] = None,
        author_id: str = "anonymous",
    ) -> "GossipPost":
        """新規投稿を作成（expires_at は作成時に一度だけ計算）"""
        return cls(
            subject=subject,
            description=description,
            gossip_type=gossip_type,
            created_at=created_at,
            expires_in_hours=expires_in_hours,
            expires_at=compute_expiry(created_at, expires_in_hours),
            location_preference=location_preference,
            location=location,
            author_id=author_id,
        )

    def is_expired(self, now: datetime) -> bool:
        return is_expired(self.expires_at, now)

    def to_item(self) -> dict:
        """DynamoDB アイテムに変換"""
        item = {
            "id": self.id,
            "feed": FEED_PARTITION,
            "subject": self.subject,
            "description": self.description,
            "gossip_type": self.gossip_type,
            "location_preference": self.location_preference,
            "author_id": self.author_id,
            "created_at": to_iso(self.created_at),
        }
        if self.expires_at is not None:
            item["expires_at"] = to_iso(self.expires_at)
        if self.expires_in_hours is not None:
            item["expires_in_hours"] = self.expires_in_hours
        if self.location:
            # DynamoDB は float を受け付けないため Decimal に変換
            item["location"] = {
                "latitude": Decimal(str(self.location.latitude)),
                "longitude": Decimal(str(self.location.longitude)),
            }
        return item

    @classmethod
    def from_item(cls, item: dict) -> "GossipPost":
        """DynamoDB アイテムから変換"""
        expires_in_hours = item.get("expires_in_hours")
        return cls(
            id=item["id"],
            subject=item.get("subject", ""),
            description=item.get("description", ""),
            gossip_type=item.get("gossip_type", DEFAULT_GOSSIP_TYPE),
            created_at=parse_iso(item.get("created_at")),
            expires_in_hours=int(expires_in_hours) if expires_in_hours is not None else None,
            expires_at=parse_iso(item.get("expires_at")),
            location_preference=normalize_location_preference(item.get("location_preference")),
            location=Coordinates.parse(item.get("location")),
            author_id=item.get("author_id", "anonymous"),
        )

    def to_view(self, now: datetime) -> dict:
        """API レスポンス用の GossipView に変換"""
        return {
            "id": self.id,
            "title": self.subject,
            "body": self.description,
            "category": self.gossip_type,
            "freshness": to_iso(self.created_at) if self.created_at else None,
            "location": self.location.to_dict() if self.location else None,
            "expiresAt": to_iso(self.expires_at) if self.expires_at else None,
            "expiresInHours": self.expires_in_hours,
            "expired": self.is_expired(now),
            "locationPreference": self.location_preference,
        }
