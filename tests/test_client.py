"""
Tests for the async HTTP client, using httpx.MockTransport.
"""
import asyncio
import json

import httpx
import pytest

from geogossip.client import GossipApiClient
from geogossip.errors import NotFoundError, TransportError, ValidationError


BASE_URL = "https://api.test"


def make_client(handler):
    transport = httpx.MockTransport(handler)
    return GossipApiClient(BASE_URL, client=httpx.AsyncClient(transport=transport))


def run(coro):
    return asyncio.run(coro)


class TestRequests:
    """Tests for request construction and response parsing."""

    def test_submit_posts_json(self):
        seen = {}

        def handler(request):
            seen["method"] = request.method
            seen["url"] = str(request.url)
            seen["body"] = json.loads(request.content)
            return httpx.Response(201, json={"id": "abc"})

        gossip_id = run(make_client(handler).submit_gossip({"subject": "s"}))

        assert gossip_id == "abc"
        assert seen == {"method": "POST", "url": f"{BASE_URL}/submitGossip", "body": {"subject": "s"}}

    def test_fetch_sends_filters(self):
        seen = {}

        def handler(request):
            seen["params"] = dict(request.url.params)
            return httpx.Response(200, json={"items": [{"id": "1"}]})

        items = run(make_client(handler).fetch_gossips(include_expired=True, category="News"))

        assert items == [{"id": "1"}]
        assert seen["params"] == {"includeExpired": "true", "category": "News"}

    def test_fetch_active_omits_flag(self):
        seen = {}

        def handler(request):
            seen["params"] = dict(request.url.params)
            return httpx.Response(200, json={"items": []})

        run(make_client(handler).fetch_gossips())

        assert seen["params"] == {}

    def test_delete_passes_id(self):
        seen = {}

        def handler(request):
            seen["method"] = request.method
            seen["id"] = request.url.params["id"]
            return httpx.Response(204)

        run(make_client(handler).delete_gossip("abc"))

        assert seen == {"method": "DELETE", "id": "abc"}


class TestErrors:
    """Tests for error mapping."""

    def test_bad_request_is_validation_error(self):
        client = make_client(lambda request: httpx.Response(400, json={"error": "subject is required"}))

        with pytest.raises(ValidationError) as exc_info:
            run(client.submit_gossip({}))

        assert exc_info.value.message == "subject is required"

    def test_server_error_is_transport_error(self):
        client = make_client(lambda request: httpx.Response(500, text="boom"))

        with pytest.raises(TransportError) as exc_info:
            run(client.fetch_gossips())

        assert exc_info.value.status_code == 500

    def test_network_failure_is_transport_error(self):
        def handler(request):
            raise httpx.ConnectError("offline", request=request)

        with pytest.raises(TransportError):
            run(make_client(handler).fetch_gossips())

    def test_submit_without_id_is_transport_error(self):
        bodies = [
            httpx.Response(201, text="created"),
            httpx.Response(201, json={}),
            httpx.Response(201, json=["abc"]),
        ]
        for body in bodies:
            client = make_client(lambda request, body=body: body)

            with pytest.raises(TransportError):
                run(client.submit_gossip({"subject": "s"}))

    def test_list_with_bad_body_is_transport_error(self):
        client = make_client(lambda request: httpx.Response(200, text="<html>"))

        with pytest.raises(TransportError):
            run(client.fetch_gossips())

    def test_delete_missing_is_not_found(self):
        client = make_client(lambda request: httpx.Response(404, json={"error": "Gossip not found"}))

        with pytest.raises(NotFoundError):
            run(client.delete_gossip("gone"))
