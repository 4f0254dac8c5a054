"""
ゴシップ API の HTTP クライアント
"""
import logging
from typing import List, Optional

import httpx

from .errors import NotFoundError, TransportError, ValidationError


logger = logging.getLogger(__name__)


class GossipApiClient:
    """httpx.AsyncClient を使った API クライアント"""

    def __init__(self, base_url: str, client: Optional[httpx.AsyncClient] = None, timeout: float = 15.0):
        self.base_url = base_url.rstrip("/")
        self._owns_client = client is None
        self._client = client or httpx.AsyncClient(timeout=timeout, follow_redirects=True)

    async def __aenter__(self) -> "GossipApiClient":
        return self

    async def __aexit__(self, *exc_info) -> None:
        await self.aclose()

    async def aclose(self) -> None:
        if self._owns_client:
            await self._client.aclose()

    async def _request(self, method: str, endpoint: str, **kwargs) -> httpx.Response:
        url = f"{self.base_url}/{endpoint}"
        try:
            response = await self._client.request(method, url, **kwargs)
        except httpx.HTTPError as e:
            logger.error("%s %s failed: %s", method, endpoint, e)
            raise TransportError(f"Network error calling {endpoint}") from e

        if response.is_success:
            return response

        message = _error_message(response)
        if response.status_code == 400:
            raise ValidationError(message)
        raise TransportError(message, status_code=response.status_code)

    async def submit_gossip(self, payload: dict) -> str:
        """
        ゴシップを投稿

        Returns:
            新しい投稿の ID
        """
        response = await self._request("POST", "submitGossip", json=payload)
        try:
            gossip_id = response.json()["id"]
        except (ValueError, KeyError, TypeError) as e:
            logger.error("submitGossip returned an unexpected body: %r", response.text[:200])
            raise TransportError("Unexpected response from submitGossip", status_code=response.status_code) from e
        if not isinstance(gossip_id, str) or not gossip_id:
            raise TransportError("Unexpected response from submitGossip", status_code=response.status_code)
        return gossip_id

    async def fetch_gossips(self, include_expired: bool = False, category: Optional[str] = None) -> List[dict]:
        """
        ゴシップ一覧を取得

        Args:
            include_expired: True なら期限切れも含める
            category: カテゴリで絞り込み

        Returns:
            GossipView のリスト
        """
        params = {}
        if include_expired:
            params["includeExpired"] = "true"
        if category:
            params["category"] = category

        response = await self._request("GET", "listGossips", params=params)
        try:
            items = response.json().get("items", [])
        except (ValueError, AttributeError) as e:
            raise TransportError("Unexpected response from listGossips", status_code=response.status_code) from e
        if not isinstance(items, list):
            raise TransportError("Unexpected response from listGossips", status_code=response.status_code)
        return items

    async def delete_gossip(self, gossip_id: str) -> None:
        """
        ゴシップを削除

        Raises:
            NotFoundError: 投稿が存在しない場合
        """
        try:
            await self._request("DELETE", "deleteGossip", params={"id": gossip_id})
        except TransportError as e:
            if e.status_code == 404:
                raise NotFoundError(gossip_id) from e
            raise


def _error_message(response: httpx.Response) -> str:
    try:
        body = response.json()
    except ValueError:
        return response.text or f"HTTP {response.status_code}"
    if isinstance(body, dict) and body.get("error"):
        return str(body["error"])
    return f"HTTP {response.status_code}"
