"""
ゴシップの作成・一覧・削除
"""
import logging
from datetime import datetime, timezone
from typing import Callable, List, Optional

from .database import GossipDatabase
from .errors import ValidationError
from .expiry import normalize_duration
from .models import Coordinates, GossipPost, normalize_location_preference


logger = logging.getLogger(__name__)

MAX_SUBJECT_LENGTH = 100
MAX_DESCRIPTION_LENGTH = 250


def utc_now() -> datetime:
    return datetime.now(timezone.utc)


def _required_text(payload: dict, key: str, max_length: Optional[int] = None) -> str:
    value = payload.get(key)
    if not isinstance(value, str) or not value.strip():
        raise ValidationError(f"{key} is required", field=key)

    value = value.strip()
    if max_length is not None and len(value) > max_length:
        raise ValidationError(f"{key} must be at most {max_length} characters", field=key)
    return value


class GossipService:
    """ゴシップのライフサイクルを扱うサービス"""

    def __init__(
        self,
        db: GossipDatabase,
        clock: Callable[[], datetime] = utc_now,
        author_id: str = "anonymous",
        list_limit: int = 50,
    ):
        self.db = db
        self.clock = clock
        self.author_id = author_id
        self.list_limit = list_limit

    def submit(self, payload: dict) -> GossipPost:
        """
        ゴシップを投稿

        gossipType はクライアント側の一覧で選ばれる前提のため、未知の値もそのまま保存する。
        expiresInHours は拒否せずに正規化する。

        Args:
            payload: {subject, description, gossipType, locationPreference, location?, expiresInHours?}

        Returns:
            保存した投稿

        Raises:
            ValidationError: 必須項目が欠けている場合（保存は行わない）
        """
        if not isinstance(payload, dict):
            raise ValidationError("Missing required fields")

        subject = _required_text(payload, "subject", MAX_SUBJECT_LENGTH)
        description = _required_text(payload, "description", MAX_DESCRIPTION_LENGTH)
        gossip_type = _required_text(payload, "gossipType")

        post = GossipPost.create(
            subject=subject,
            description=description,
            gossip_type=gossip_type,
            created_at=self.clock(),
            expires_in_hours=normalize_duration(payload.get("expiresInHours")),
            location_preference=normalize_location_preference(payload.get("locationPreference")),
            location=Coordinates.parse(payload.get("location")),
            author_id=self.author_id,
        )
        self.db.insert(post)
        logger.info("Gossip %s created, expires in %sh", post.id, post.expires_in_hours)
        return post

    def list_gossips(self, include_expired: bool = False, category: Optional[str] = None) -> List[dict]:
        """
        新しい順にゴシップを取得

        件数の上限はクエリ時に適用し、その後で期限切れを除外する。
        そのため有効な投稿が上限より少なく返ることがある。

        Args:
            include_expired: True なら期限切れも含める
            category: 指定した場合はそのカテゴリのみ

        Returns:
            GossipView のリスト
        """
        now = self.clock()
        posts = self.db.query_recent(self.list_limit, gossip_type=category or None)
        if not include_expired:
            posts = [post for post in posts if not post.is_expired(now)]
        return [post.to_view(now) for post in posts]

    def delete(self, gossip_id: str) -> None:
        """
        ゴシップを完全に削除

        Raises:
            ValidationError: id が空の場合
            NotFoundError: 投稿が存在しない場合
        """
        if not isinstance(gossip_id, str) or not gossip_id.strip():
            raise ValidationError("id is required", field="id")

        self.db.delete(gossip_id.strip())
        logger.info("Gossip %s deleted", gossip_id)
