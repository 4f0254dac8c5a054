"""
DynamoDB データベース操作
"""
import logging
from typing import List, Optional

import boto3
from boto3.dynamodb.conditions import Key
from botocore.exceptions import BotoCoreError, ClientError

from .errors import NotFoundError, PersistenceError
from .models import FEED_PARTITION, GossipPost


logger = logging.getLogger(__name__)

FEED_INDEX = "feed-created_at-index"
GOSSIP_TYPE_INDEX = "gossip_type-created_at-index"


class InMemoryDatabase:
    """開発モード用のメモリ内データベース"""

    def __init__(self, table_name: str):
        self.table_name = table_name
        self.data = {}  # key: id, value: item

    def insert(self, item: dict) -> dict:
        self.data[item["id"]] = dict(item)
        return item

    def query_recent(self, limit: int, gossip_type: Optional[str] = None) -> List[dict]:
        results = [
            item for item in self.data.values()
            if gossip_type is None or item.get("gossip_type") == gossip_type
        ]
        results.sort(key=lambda x: x.get("created_at", ""), reverse=True)
        return results[:limit]

    def delete(self, gossip_id: str) -> None:
        if gossip_id not in self.data:
            raise NotFoundError(gossip_id)
        del self.data[gossip_id]


class GossipDatabase:
    """DynamoDB テーブル操作クラス"""

    def __init__(
        self,
        table_name: str,
        endpoint_url: Optional[str] = None,
        use_in_memory: bool = False,
        table=None,
    ):
        """
        DynamoDB テーブルを初期化

        Args:
            table_name: DynamoDB テーブル名
            endpoint_url: DynamoDB Local などのエンドポイント
            use_in_memory: True ならメモリ内データベースを使用
            table: 既存の Table リソース（テスト用）
        """
        self.table_name = table_name
        self.table = table
        self._in_memory = None

        if table is not None:
            return

        if not use_in_memory:
            # 開発モード判定: AWS認証情報がない、またはテーブルが存在しない場合
            try:
                dynamodb = boto3.resource("dynamodb", endpoint_url=endpoint_url)
                self.table = dynamodb.Table(table_name)
                # テーブル存在確認
                self.table.table_status
            except Exception as e:
                logger.warning("DynamoDB table %s unavailable, using in-memory store: %s", table_name, e)
                use_in_memory = True

        if use_in_memory:
            self._in_memory = InMemoryDatabase(table_name)

    @property
    def in_memory(self) -> bool:
        return self._in_memory is not None

    def insert(self, post: GossipPost) -> GossipPost:
        """
        ゴシップを保存

        Args:
            post: 作成日時・期限計算済みの投稿

        Returns:
            保存した投稿
        """
        item = post.to_item()
        if self._in_memory:
            self._in_memory.insert(item)
            return post

        try:
            self.table.put_item(Item=item)
        except (ClientError, BotoCoreError) as e:
            logger.error("put_item failed for %s: %s", post.id, e)
            raise PersistenceError("Failed to save gossip") from e
        return post

    def query_recent(self, limit: int, gossip_type: Optional[str] = None) -> List[GossipPost]:
        """
        新しい順にゴシップを取得

        Args:
            limit: 最大件数
            gossip_type: 指定した場合はそのカテゴリのみ

        Returns:
            作成日時の降順に並んだ投稿リスト
        """
        if self._in_memory:
            items = self._in_memory.query_recent(limit, gossip_type)
            return [GossipPost.from_item(item) for item in items]

        if gossip_type:
            index_name = GOSSIP_TYPE_INDEX
            key_condition = Key("gossip_type").eq(gossip_type)
        else:
            index_name = FEED_INDEX
            key_condition = Key("feed").eq(FEED_PARTITION)

        try:
            response = self.table.query(
                IndexName=index_name,
                KeyConditionExpression=key_condition,
                ScanIndexForward=False,
                Limit=limit,
            )
        except (ClientError, BotoCoreError) as e:
            logger.error("query on %s failed: %s", index_name, e)
            raise PersistenceError("Failed to load gossips") from e
        return [GossipPost.from_item(item) for item in response.get("Items", [])]

    def delete(self, gossip_id: str) -> None:
        """
        ゴシップを削除

        Args:
            gossip_id: 投稿 ID

        Raises:
            NotFoundError: 投稿が存在しない場合
        """
        if self._in_memory:
            return self._in_memory.delete(gossip_id)

        try:
            self.table.delete_item(
                Key={"id": gossip_id},
                ConditionExpression="attribute_exists(id)",
            )
        except ClientError as e:
            if e.response.get("Error", {}).get("Code") == "ConditionalCheckFailedException":
                raise NotFoundError(gossip_id) from e
            logger.error("delete_item failed for %s: %s", gossip_id, e)
            raise PersistenceError("Failed to delete gossip") from e
        except BotoCoreError as e:
            logger.error("delete_item failed for %s: %s", gossip_id, e)
            raise PersistenceError("Failed to delete gossip") from e
