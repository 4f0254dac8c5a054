"""
クライアント側の同期コントローラー

地図用の「有効なゴシップ」とフィード用の「すべてのゴシップ」を保持し、
投稿・削除・再投稿のたびに両方の一覧を整合させる。
"""
import asyncio
import logging
from dataclasses import dataclass
from datetime import datetime
from enum import Enum
from typing import Callable, Dict, List, Optional, Set

from .client import GossipApiClient
from .config import HYDERABAD
from .errors import GossipError, ValidationError
from .expiry import DEFAULT_DURATION, DEFAULT_REPOST_DURATION
from .formatting import EXPIRED_LABEL, format_expiry_countdown, format_freshness
from .models import DEFAULT_GOSSIP_TYPE, Coordinates, parse_iso
from .service import utc_now


logger = logging.getLogger(__name__)

ALL_CATEGORIES = "All"


class ViewStatus(str, Enum):
    IDLE = "idle"
    LOADING = "loading"
    LOADED = "loaded"
    ERROR = "error"


class MutationKind(str, Enum):
    DELETE = "delete"
    REPOST = "repost"


@dataclass
class FeedItem:
    """表示用に正規化したゴシップ"""
    id: str
    title: str
    body: str
    category: str
    freshness: str
    expiry_label: str
    expires_at: Optional[datetime]
    expires_in_hours: Optional[int]
    expired: bool
    location: Optional[Coordinates]
    location_preference: Optional[str]

    @classmethod
    def from_view(cls, view: dict, now: datetime, timezone_name: str) -> "FeedItem":
        expired = bool(view.get("expired", False))
        expires_at = view.get("expiresAt")
        try:
            expires_at = parse_iso(expires_at)
        except ValueError:
            expires_at = None
        return cls(
            id=view["id"],
            title=view.get("title", ""),
            body=view.get("body", ""),
            category=view.get("category", DEFAULT_GOSSIP_TYPE),
            freshness=format_freshness(view.get("freshness"), timezone_name),
            expiry_label=EXPIRED_LABEL if expired else format_expiry_countdown(expires_at, now),
            expires_at=expires_at,
            expires_in_hours=view.get("expiresInHours"),
            expired=expired,
            location=Coordinates.parse(view.get("location")),
            location_preference=view.get("locationPreference"),
        )


class GossipSyncController:
    """有効一覧と全件一覧を同期するコントローラー"""

    def __init__(
        self,
        api: GossipApiClient,
        clock: Callable[[], datetime] = utc_now,
        display_timezone: str = "Asia/Kolkata",
        default_location: Optional[dict] = None,
    ):
        self.api = api
        self.clock = clock
        self.display_timezone = display_timezone
        self.default_location = default_location or dict(HYDERABAD)

        self.active_gossips: List[FeedItem] = []
        self.all_gossips: List[FeedItem] = []
        self.loading = False
        self.status: Dict[str, ViewStatus] = {"active": ViewStatus.IDLE, "all": ViewStatus.IDLE}
        self.map_filter = ALL_CATEGORIES
        self.draft_location: Optional[dict] = None

        # 投稿 ID → 実行中の操作（1 投稿につき 1 操作まで）
        self.in_flight: Dict[str, MutationKind] = {}
        # 取得中の refresh より後に削除した ID（古い結果で復活させない）
        self._refreshes_pending = 0
        self._deleted_during_refresh: Set[str] = set()
        self.submit_error: Optional[str] = None
        self.field_errors: Dict[str, str] = {}
        self.action_errors: Dict[str, str] = {}

    @property
    def deleting_ids(self) -> List[str]:
        return [gid for gid, kind in self.in_flight.items() if kind is MutationKind.DELETE]

    @property
    def reposting_ids(self) -> List[str]:
        return [gid for gid, kind in self.in_flight.items() if kind is MutationKind.REPOST]

    def is_busy(self, gossip_id: str) -> bool:
        return gossip_id in self.in_flight

    def _category_filter(self) -> Optional[str]:
        if self.map_filter and self.map_filter != ALL_CATEGORIES:
            return self.map_filter
        return None

    def _without_deleted(self, items: List[FeedItem]) -> List[FeedItem]:
        return [item for item in items if item.id not in self._deleted_during_refresh]

    def _normalize(self, views: List[dict]) -> List[FeedItem]:
        now = self.clock()
        return [FeedItem.from_view(view, now, self.display_timezone) for view in views]

    async def refresh(self) -> bool:
        """
        有効一覧と全件一覧を並行して取得

        失敗した場合は取得済みのデータを残したままログのみ出力する。

        Returns:
            両方の取得に成功したら True
        """
        self._refreshes_pending += 1
        self.loading = True
        self.status = {"active": ViewStatus.LOADING, "all": ViewStatus.LOADING}
        try:
            active, everything = await asyncio.gather(
                self.api.fetch_gossips(category=self._category_filter()),
                self.api.fetch_gossips(include_expired=True),
                return_exceptions=True,
            )
            for result in (active, everything):
                if isinstance(result, BaseException):
                    logger.error("Failed to load gossips: %s", result)
                    self.status = {"active": ViewStatus.ERROR, "all": ViewStatus.ERROR}
                    return False

            self.active_gossips = self._without_deleted(self._normalize(active))
            self.all_gossips = self._without_deleted(self._normalize(everything))
            self.status = {"active": ViewStatus.LOADED, "all": ViewStatus.LOADED}
            return True
        finally:
            self._refreshes_pending -= 1
            if self._refreshes_pending == 0:
                self._deleted_during_refresh.clear()
            self.loading = self._refreshes_pending > 0

    async def set_map_filter(self, value: Optional[str]) -> bool:
        """地図のカテゴリ絞り込みを変更して再取得"""
        self.map_filter = value or ALL_CATEGORIES
        return await self.refresh()

    async def submit(self, form: dict) -> Optional[str]:
        """
        新しいゴシップを投稿

        Args:
            form: {subject, description, gossipType, locationPreference, location?, expiresInHours}

        Returns:
            新しい投稿の ID（失敗時は None、理由は submit_error に記録）
        """
        self.field_errors = {}
        for key in ("subject", "description"):
            if not str(form.get(key) or "").strip():
                self.field_errors[key] = f"{key.capitalize()} is required."
        if self.field_errors:
            self.submit_error = "Subject and description are required."
            return None

        payload = {
            "subject": form["subject"],
            "description": form["description"],
            "gossipType": form.get("gossipType") or DEFAULT_GOSSIP_TYPE,
            "locationPreference": form.get("locationPreference", "map"),
            "location": form.get("location") or self.draft_location or self.default_location,
            "expiresInHours": form.get("expiresInHours", DEFAULT_DURATION),
        }

        self.submit_error = None
        try:
            gossip_id = await self.api.submit_gossip(payload)
        except ValidationError as e:
            if e.field:
                self.field_errors[e.field] = e.message
            self.submit_error = e.message
            return None
        except GossipError as e:
            logger.error("Failed to submit gossip: %s", e)
            self.submit_error = str(e) or "Failed to submit gossip"
            return None

        await self.refresh()
        return gossip_id

    async def delete(self, gossip_id: str) -> bool:
        """
        ゴシップを削除

        サーバーで削除が確定してから両方の一覧から取り除く。
        失敗した場合は一覧をそのまま残す。
        """
        if self.is_busy(gossip_id):
            logger.info("Skipping delete of %s: %s in progress", gossip_id, self.in_flight[gossip_id].value)
            return False

        self.in_flight[gossip_id] = MutationKind.DELETE
        self.action_errors.pop(gossip_id, None)
        try:
            await self.api.delete_gossip(gossip_id)
            self.all_gossips = [item for item in self.all_gossips if item.id != gossip_id]
            self.active_gossips = [item for item in self.active_gossips if item.id != gossip_id]
            if self._refreshes_pending:
                self._deleted_during_refresh.add(gossip_id)
            return True
        except GossipError as e:
            logger.warning("Failed to delete gossip %s: %s", gossip_id, e)
            self.action_errors[gossip_id] = str(e)
            return False
        finally:
            self.in_flight.pop(gossip_id, None)

    def can_repost(self, item: FeedItem) -> bool:
        return item.expired and not self.is_busy(item.id)

    async def repost(self, gossip_id: str) -> Optional[str]:
        """
        既存のゴシップと同じ内容で新しいゴシップを投稿

        元の投稿は変更しない。新しい投稿は別の ID と有効期限を持つ。

        Returns:
            新しい投稿の ID（対象がない・失敗時は None）
        """
        target = next((item for item in self.all_gossips if item.id == gossip_id), None)
        if target is None:
            return None
        if self.is_busy(gossip_id):
            logger.info("Skipping repost of %s: %s in progress", gossip_id, self.in_flight[gossip_id].value)
            return None

        self.in_flight[gossip_id] = MutationKind.REPOST
        self.action_errors.pop(gossip_id, None)
        try:
            location = target.location.to_dict() if target.location else None
            payload = {
                "subject": target.title,
                "description": target.body,
                "gossipType": target.category,
                "locationPreference": "map" if location else (target.location_preference or "current"),
                "location": location or self.draft_location or self.default_location,
                "expiresInHours": target.expires_in_hours or DEFAULT_REPOST_DURATION,
            }
            new_id = await self.api.submit_gossip(payload)
        except GossipError as e:
            logger.warning("Failed to repost gossip %s: %s", gossip_id, e)
            self.action_errors[gossip_id] = str(e)
            return None
        finally:
            self.in_flight.pop(gossip_id, None)

        await self.refresh()
        return new_id
