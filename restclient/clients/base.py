"""Base classes for REST client interfaces.

A client interface subclasses RestClient (sync) or AsyncRestClient and
declares its defaults with the register_rest_client decorator:

    @register_rest_client(base_uri="https://api.example.org", config_key="example")
    class ExampleClient(RestClient):
        def echo(self, message: str) -> dict:
            return self._request("GET", "/echo", params={"message": message})
"""

import json
import logging
from typing import Any

import httpx

from restclient.config.models import QueryParamStyle

logger = logging.getLogger(__name__)


class RestClientError(RuntimeError):
    """Represents failures when communicating with the remote service."""


def register_rest_client(base_uri: str | None = None, config_key: str | None = None):
    """Class decorator recording the default base URI and configuration key."""

    def _decorate(cls):
        cls.base_uri = base_uri
        cls.config_key = config_key
        return cls

    return _decorate


def interface_name(interface: type) -> str:
    """Fully-qualified name used for legacy ``<interface>/mp-rest/*`` keys."""
    return f"{interface.__module__}.{interface.__qualname__}"


def encode_query_params(
    params: dict[str, Any] | None, style: QueryParamStyle
) -> list[tuple[str, str]]:
    """Flatten params, writing multi-valued entries in the given style."""
    if not params:
        return []
    encoded: list[tuple[str, str]] = []
    for name, value in params.items():
        if value is None:
            continue
        if not isinstance(value, (list, tuple)):
            encoded.append((name, str(value)))
        elif style == QueryParamStyle.COMMA_SEPARATED:
            encoded.append((name, ",".join(str(v) for v in value)))
        elif style == QueryParamStyle.ARRAY_PAIRS:
            encoded.extend((f"{name}[]", str(v)) for v in value)
        else:
            encoded.extend((name, str(v)) for v in value)
    return encoded


class _BaseRestClient:
    base_uri: str | None = None
    config_key: str | None = None

    def __init__(
        self,
        http_client,
        *,
        query_param_style: QueryParamStyle = QueryParamStyle.MULTI_PAIRS,
        properties: dict[str, object] | None = None,
    ):
        self._client = http_client
        self.query_param_style = query_param_style
        self.properties = properties or {}

    @property
    def http_client(self):
        return self._client

    def _prepare(self, params: dict[str, Any] | None) -> list[tuple[str, str]]:
        return encode_query_params(params, self.query_param_style)

    def _handle(self, method: str, path: str, response: httpx.Response) -> Any:
        if response.is_error:
            snippet = response.text.strip()
            if len(snippet) > 512:
                snippet = f"{snippet[:512]}..."
            logger.warning(
                "REST client call failed",
                extra={"audit_data": {
                    "method": method,
                    "path": path,
                    "status_code": response.status_code,
                }},
            )
            raise RestClientError(
                f"Error ({response.status_code}) during {method} {path}: {snippet or 'no body provided.'}"
            )
        if not response.content:
            return None
        if "json" not in response.headers.get("content-type", ""):
            return response.text
        try:
            return response.json()
        except json.JSONDecodeError as exc:
            raise RestClientError(f"Invalid JSON returned during {method} {path}.") from exc


class RestClient(_BaseRestClient):
    """Synchronous client interface base, backed by httpx.Client."""

    def close(self) -> None:
        self._client.close()

    def __enter__(self):
        return self

    def __exit__(self, *args):
        self.close()

    def _request(self, method: str, path: str, params: dict[str, Any] | None = None, **kwargs: Any) -> Any:
        try:
            response = self._client.request(method, path, params=self._prepare(params), **kwargs)
        except httpx.TimeoutException as exc:
            raise RestClientError(f"Request timed out ({method} {path}).") from exc
        except httpx.RequestError as exc:
            raise RestClientError(f"Request failed ({method} {path}): {exc!s}") from exc
        return self._handle(method, path, response)


class AsyncRestClient(_BaseRestClient):
    """Asynchronous client interface base, backed by httpx.AsyncClient."""

    async def aclose(self) -> None:
        await self._client.aclose()

    async def __aenter__(self):
        return self

    async def __aexit__(self, *args):
        await self.aclose()

    async def _request(self, method: str, path: str, params: dict[str, Any] | None = None, **kwargs: Any) -> Any:
        try:
            response = await self._client.request(method, path, params=self._prepare(params), **kwargs)
        except httpx.TimeoutException as exc:
            raise RestClientError(f"Request timed out ({method} {path}).") from exc
        except httpx.RequestError as exc:
            raise RestClientError(f"Request failed ({method} {path}): {exc!s}") from exc
        return self._handle(method, path, response)
