"""
FastAPI アプリケーションのメインエントリポイント
"""
import json
import logging
from datetime import datetime, timezone
from typing import Optional

from fastapi import Depends, FastAPI, Request
from fastapi.concurrency import run_in_threadpool
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse, Response
from starlette.exceptions import HTTPException as StarletteHTTPException

from .config import Settings, configure_logging
from .database import GossipDatabase
from .errors import NotFoundError, PersistenceError, ValidationError
from .service import GossipService


logger = logging.getLogger(__name__)

CORS_ALLOW_METHODS = "GET, POST, DELETE, OPTIONS"
CORS_ALLOW_HEADERS = "Content-Type, Authorization"


def error_response(status_code: int, message: str) -> JSONResponse:
    """エラーレスポンス"""
    return JSONResponse(content={"error": message}, status_code=status_code)


def build_service(settings: Settings) -> GossipService:
    """設定からデータベースとサービスを組み立てる"""
    db = GossipDatabase(
        settings.table_name,
        endpoint_url=settings.dynamodb_endpoint_url,
        use_in_memory=settings.use_in_memory,
    )
    return GossipService(db, author_id=settings.author_id, list_limit=settings.list_limit)


def get_service(request: Request) -> GossipService:
    return request.app.state.service


async def read_json_body(request: Request) -> Optional[dict]:
    """JSON ボディを読み込み（空なら None）"""
    body = await request.body()
    if not body:
        return None
    try:
        return json.loads(body)
    except json.JSONDecodeError:
        raise ValidationError("Invalid JSON body")


def create_app(settings: Optional[Settings] = None, service: Optional[GossipService] = None) -> FastAPI:
    """
    アプリケーションを生成

    Args:
        settings: 設定（省略時は環境変数から読み込み）
        service: 既存のサービス（テスト用）

    Returns:
        FastAPI アプリケーション
    """
    settings = settings or Settings.from_env()
    configure_logging(settings.log_level)

    app = FastAPI(title="GeoGossip API", version="1.0.0")
    app.state.settings = settings
    app.state.service = service or build_service(settings)

    def allowed_origin(origin: str) -> str:
        if "*" in settings.allowed_origins:
            return "*"
        if origin in settings.allowed_origins:
            return origin
        return ""

    @app.middleware("http")
    async def cors_middleware(request: Request, call_next):
        """
        手動 CORS ミドルウェア
        すべてのレスポンス（エラーを含む）に CORS ヘッダーを追加
        """
        origin = allowed_origin(request.headers.get("origin", ""))
        cors_headers = {
            "Access-Control-Allow-Methods": CORS_ALLOW_METHODS,
            "Access-Control-Allow-Headers": CORS_ALLOW_HEADERS,
        }
        if origin:
            cors_headers["Access-Control-Allow-Origin"] = origin

        # プリフライトリクエスト
        if request.method == "OPTIONS":
            return Response(status_code=204, headers=cors_headers)

        try:
            response = await call_next(request)
        except Exception:
            logger.exception("Unhandled error on %s %s", request.method, request.url.path)
            response = error_response(500, "Internal server error")

        logger.info("%s %s -> %s", request.method, request.url.path, response.status_code)
        response.headers.update(cors_headers)
        return response

    @app.exception_handler(ValidationError)
    async def handle_validation_error(request: Request, exc: ValidationError):
        return error_response(400, exc.message)

    @app.exception_handler(RequestValidationError)
    async def handle_request_validation_error(request: Request, exc: RequestValidationError):
        return error_response(400, "Invalid request parameters")

    @app.exception_handler(NotFoundError)
    async def handle_not_found(request: Request, exc: NotFoundError):
        return error_response(404, "Gossip not found")

    @app.exception_handler(PersistenceError)
    async def handle_persistence_error(request: Request, exc: PersistenceError):
        return error_response(500, str(exc) or "Storage failure")

    @app.exception_handler(StarletteHTTPException)
    async def handle_http_exception(request: Request, exc: StarletteHTTPException):
        # 405 Method Not Allowed などを {error} 形式に揃える
        return JSONResponse(
            content={"error": str(exc.detail)},
            status_code=exc.status_code,
            headers=getattr(exc, "headers", None),
        )

    @app.get("/health")
    def health_check():
        """ヘルスチェックエンドポイント"""
        return {"status": "ok", "timestamp": datetime.now(timezone.utc).isoformat()}

    @app.post("/submitGossip", status_code=201)
    async def submit_gossip(request: Request, service: GossipService = Depends(get_service)):
        """
        ゴシップを投稿

        - subject / description / gossipType は必須
        - expiresInHours は 24, 12, 6, 1 以外なら 1 時間
        """
        payload = await read_json_body(request)
        # boto3 はブロッキングのためスレッドプールで実行
        post = await run_in_threadpool(service.submit, payload or {})
        return JSONResponse(content={"id": post.id}, status_code=201)

    @app.get("/listGossips")
    def list_gossips(
        includeExpired: Optional[str] = None,
        category: Optional[str] = None,
        service: GossipService = Depends(get_service),
    ):
        """
        ゴシップ一覧を取得（新しい順、最大 50 件）

        - includeExpired=true で期限切れも含める
        - category で絞り込み
        """
        include_expired = (includeExpired or "").lower() == "true"
        items = service.list_gossips(include_expired=include_expired, category=category)
        return {"items": items}

    @app.delete("/deleteGossip", status_code=204)
    async def delete_gossip(
        request: Request,
        id: Optional[str] = None,
        service: GossipService = Depends(get_service),
    ):
        """
        ゴシップを削除

        - id はクエリパラメータまたは JSON ボディで指定
        """
        gossip_id = id
        if not gossip_id:
            body = await read_json_body(request)
            if isinstance(body, dict):
                gossip_id = body.get("id")
        if not gossip_id:
            raise ValidationError("id is required", field="id")

        await run_in_threadpool(service.delete, gossip_id)
        return Response(status_code=204)

    return app


app = create_app()
