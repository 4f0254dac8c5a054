"""
環境変数から設定を読み込む
"""
from dataclasses import dataclass, field
from pathlib import Path
from typing import List, Optional
import logging
import os

from dotenv import load_dotenv


# 位置情報が取れないときの既定地点（ハイデラバード）
HYDERABAD = {"latitude": 17.4435, "longitude": 78.3772}

DEFAULT_LIST_LIMIT = 50
DEFAULT_PRODUCTION_URL = "https://api.geogossip.app"

LOG_FORMAT = "[%(levelname)s] %(asctime)s %(name)s - %(message)s"


def load_env_file() -> None:
    """リポジトリ直下の .env を読み込み（ローカル開発時）"""
    env_path = Path(__file__).resolve().parent.parent / ".env"
    if env_path.exists():
        load_dotenv(dotenv_path=env_path)


def _env_flag(name: str) -> bool:
    return os.environ.get(name, "").lower() == "true"


@dataclass
class Settings:
    """アプリケーション設定"""
    table_name: str = "gossips"
    dynamodb_endpoint_url: Optional[str] = None
    storage: str = "dynamodb"
    allowed_origins: List[str] = field(default_factory=lambda: ["*"])
    author_id: str = "anonymous"
    list_limit: int = DEFAULT_LIST_LIMIT
    log_level: str = "INFO"
    api_url: str = DEFAULT_PRODUCTION_URL
    api_emulator_host: Optional[str] = None
    use_emulator: bool = False
    display_timezone: str = "Asia/Kolkata"

    @property
    def use_in_memory(self) -> bool:
        return self.storage == "memory"

    @classmethod
    def from_env(cls) -> "Settings":
        """
        環境変数から設定を生成

        Returns:
            Settings インスタンス
        """
        load_env_file()

        origins = os.environ.get("ALLOWED_ORIGINS", "*")
        return cls(
            table_name=os.environ.get("DYNAMODB_TABLE_NAME", "gossips"),
            dynamodb_endpoint_url=os.environ.get("DYNAMODB_ENDPOINT_URL") or None,
            storage=os.environ.get("GOSSIP_STORAGE", "dynamodb").lower(),
            allowed_origins=[origin.strip() for origin in origins.split(",") if origin.strip()],
            author_id=os.environ.get("GOSSIP_AUTHOR_ID", "anonymous"),
            list_limit=int(os.environ.get("GOSSIP_LIST_LIMIT", DEFAULT_LIST_LIMIT)),
            log_level=os.environ.get("LOG_LEVEL", "INFO").upper(),
            api_url=os.environ.get("GOSSIP_API_URL", DEFAULT_PRODUCTION_URL),
            api_emulator_host=os.environ.get("GOSSIP_API_EMULATOR_HOST") or None,
            use_emulator=_env_flag("GOSSIP_USE_EMULATOR"),
            display_timezone=os.environ.get("GOSSIP_DISPLAY_TIMEZONE", "Asia/Kolkata"),
        )


def resolve_api_base_url(settings: Settings) -> str:
    """
    クライアントの接続先 URL を決定

    エミュレーター利用が有効でホストが設定されていればローカル、それ以外は本番
    """
    if settings.use_emulator and settings.api_emulator_host:
        return settings.api_emulator_host.rstrip("/")
    return settings.api_url.rstrip("/")


def configure_logging(level: str = "INFO") -> None:
    """ルートロガーを設定（Lambda では既存ハンドラーのレベルのみ変更）"""
    logging.basicConfig(level=level, format=LOG_FORMAT)
    logging.getLogger().setLevel(level)
    logging.getLogger("botocore").setLevel(logging.WARNING)
