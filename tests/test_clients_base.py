"""Tests for restclient/clients/base.py — client interface base classes."""

import httpx
import pytest

from restclient.clients.base import (
    AsyncRestClient,
    RestClient,
    RestClientError,
    encode_query_params,
    interface_name,
    register_rest_client,
)
from restclient.config.models import QueryParamStyle


@register_rest_client(base_uri="http://inventory.local", config_key="inventory")
class InventoryClient(RestClient):
    def items(self, tags=None):
        return self._request("GET", "/items", params={"tags": tags})


class AsyncInventoryClient(AsyncRestClient):
    async def items(self, tags=None):
        return await self._request("GET", "/items", params={"tags": tags})


def _client(handler, style=QueryParamStyle.MULTI_PAIRS) -> InventoryClient:
    http = httpx.Client(base_url="http://inventory.local", transport=httpx.MockTransport(handler))
    return InventoryClient(http, query_param_style=style)


class TestRegisterRestClient:

    def test_records_defaults(self):
        assert InventoryClient.base_uri == "http://inventory.local"
        assert InventoryClient.config_key == "inventory"

    def test_undecorated_defaults(self):
        assert AsyncInventoryClient.base_uri is None
        assert AsyncInventoryClient.config_key is None

    def test_interface_name(self):
        assert interface_name(InventoryClient).endswith(".InventoryClient")


class TestEncodeQueryParams:

    def test_multi_pairs(self):
        assert encode_query_params({"a": [1, 2]}, QueryParamStyle.MULTI_PAIRS) == [("a", "1"), ("a", "2")]

    def test_comma_separated(self):
        assert encode_query_params({"a": [1, 2]}, QueryParamStyle.COMMA_SEPARATED) == [("a", "1,2")]

    def test_array_pairs(self):
        assert encode_query_params({"a": [1, 2]}, QueryParamStyle.ARRAY_PAIRS) == [("a[]", "1"), ("a[]", "2")]

    def test_scalars_and_none(self):
        assert encode_query_params({"a": 1, "b": None}, QueryParamStyle.ARRAY_PAIRS) == [("a", "1")]
        assert encode_query_params(None, QueryParamStyle.MULTI_PAIRS) == []


class TestRestClient:

    def test_json_response(self):
        seen = {}

        def handler(request):
            seen["params"] = request.url.params.multi_items()
            return httpx.Response(200, json=[{"id": 1}])

        with _client(handler, QueryParamStyle.COMMA_SEPARATED) as client:
            assert client.items(tags=["red", "blue"]) == [{"id": 1}]
        assert seen["params"] == [("tags", "red,blue")]

    def test_text_response(self):
        with _client(lambda request: httpx.Response(200, text="pong")) as client:
            assert client.items() == "pong"

    def test_error_status(self):
        with _client(lambda request: httpx.Response(503, text="down")) as client:
            with pytest.raises(RestClientError, match=r"Error \(503\) during GET /items: down"):
                client.items()

    def test_error_without_body(self):
        with _client(lambda request: httpx.Response(404)) as client:
            with pytest.raises(RestClientError, match="no body provided"):
                client.items()

    def test_invalid_json(self):
        def handler(request):
            return httpx.Response(200, content=b"{", headers={"content-type": "application/json"})

        with _client(handler) as client:
            with pytest.raises(RestClientError, match="Invalid JSON"):
                client.items()

    def test_timeout(self):
        def handler(request):
            raise httpx.ReadTimeout("slow", request=request)

        with _client(handler) as client:
            with pytest.raises(RestClientError, match="timed out"):
                client.items()

    def test_connection_error(self):
        def handler(request):
            raise httpx.ConnectError("refused", request=request)

        with _client(handler) as client:
            with pytest.raises(RestClientError, match="Request failed .*refused"):
                client.items()


class TestAsyncRestClient:

    async def test_json_response(self):
        async def handler(request):
            return httpx.Response(200, json={"count": 2})

        http = httpx.AsyncClient(base_url="http://inventory.local", transport=httpx.MockTransport(handler))
        async with AsyncInventoryClient(http) as client:
            assert await client.items(tags=["a", "b"]) == {"count": 2}

    async def test_error_status(self):
        http = httpx.AsyncClient(
            base_url="http://inventory.local",
            transport=httpx.MockTransport(lambda request: httpx.Response(500, text="oops")),
        )
        async with AsyncInventoryClient(http) as client:
            with pytest.raises(RestClientError, match=r"Error \(500\)"):
                await client.items()
