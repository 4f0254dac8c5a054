"""
ゴシップ API のエラー定義
"""
from typing import Optional


class GossipError(Exception):
    """ゴシップ処理の基底エラー"""
    pass


class ValidationError(GossipError):
    """入力値エラー（ユーザーが修正可能）"""

    def __init__(self, message: str, field: Optional[str] = None):
        super().__init__(message)
        self.message = message
        self.field = field


class NotFoundError(GossipError):
    """対象のゴシップが存在しない"""

    def __init__(self, gossip_id: str):
        super().__init__(f"Gossip not found: {gossip_id}")
        self.gossip_id = gossip_id


class PersistenceError(GossipError):
    """データストアの読み書き失敗"""
    pass


class TransportError(GossipError):
    """通信エラー、または 2xx 以外のレスポンス"""

    def __init__(self, message: str, status_code: Optional[int] = None):
        super().__init__(message)
        self.message = message
        self.status_code = status_code
