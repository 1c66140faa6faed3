"""Client builder contract and its httpx implementation."""

import inspect
import ssl
import tempfile
from abc import ABC, abstractmethod
from pathlib import Path

import httpx

from restclient.config.errors import RestClientConfigError
from restclient.config.models import QueryParamStyle
from restclient.runtime.registry import HostnameVerifier
from restclient.runtime.tls import KeyStore, TrustStore

# Builder property names
CONNECTION_POOL_SIZE = "rest-client.connection-pool-size"
CONNECTION_TTL = "rest-client.connection-ttl"  # ms
MAX_REDIRECTS = "rest-client.max-redirects"
MULTIPART_ENCODER_MODE = "rest-client.multipart-encoder-mode"

DEFAULT_TIMEOUT = 5.0  # seconds, httpx default
DEFAULT_MAX_CONNECTIONS = 100
DEFAULT_MAX_KEEPALIVE = 20
DEFAULT_KEEPALIVE_EXPIRY = 5.0


class RestClientBuilder(ABC):
    """Receives resolved settings and produces a client proxy."""

    @abstractmethod
    def base_url(self, url: str) -> "RestClientBuilder":
        ...

    @abstractmethod
    def connect_timeout(self, millis: int) -> "RestClientBuilder":
        ...

    @abstractmethod
    def read_timeout(self, millis: int) -> "RestClientBuilder":
        ...

    @abstractmethod
    def register(self, provider: type | object) -> "RestClientBuilder":
        """Register a request/response filter class (or instance)."""
        ...

    @abstractmethod
    def trust_store(self, store: TrustStore) -> "RestClientBuilder":
        ...

    @abstractmethod
    def key_store(self, store: KeyStore, password: str) -> "RestClientBuilder":
        ...

    @abstractmethod
    def hostname_verifier(self, verifier: HostnameVerifier) -> "RestClientBuilder":
        ...

    @abstractmethod
    def ssl_context(self, context: ssl.SSLContext) -> "RestClientBuilder":
        ...

    @abstractmethod
    def follow_redirects(self, follow: bool) -> "RestClientBuilder":
        ...

    @abstractmethod
    def proxy_address(self, host: str, port: int) -> "RestClientBuilder":
        ...

    @abstractmethod
    def query_param_style(self, style: QueryParamStyle) -> "RestClientBuilder":
        ...

    @abstractmethod
    def property(self, name: str, value: object) -> "RestClientBuilder":
        """Set a transport-specific property (see the *_POOL_SIZE etc. names)."""
        ...

    @abstractmethod
    def build(self, interface: type):
        """Create the client proxy for interface."""
        ...


class HttpxClientBuilder(RestClientBuilder):
    """Builds proxies backed by httpx.Client (or httpx.AsyncClient)."""

    def __init__(self, asynchronous: bool = False):
        self._asynchronous = asynchronous
        self._base_url: str | None = None
        self._connect_timeout: int | None = None
        self._read_timeout: int | None = None
        self._providers: list[object] = []
        self._trust_store: TrustStore | None = None
        self._key_store: KeyStore | None = None
        self._key_store_password: str | None = None
        self._hostname_verifier: HostnameVerifier | None = None
        self._ssl_context: ssl.SSLContext | None = None
        self._follow_redirects: bool = False
        self._proxy: str | None = None
        self._query_param_style: QueryParamStyle | None = None
        self._properties: dict[str, object] = {}

    def base_url(self, url):
        self._base_url = url
        return self

    def connect_timeout(self, millis):
        self._connect_timeout = millis
        return self

    def read_timeout(self, millis):
        self._read_timeout = millis
        return self

    def register(self, provider):
        self._providers.append(provider() if isinstance(provider, type) else provider)
        return self

    def trust_store(self, store):
        self._trust_store = store
        return self

    def key_store(self, store, password):
        self._key_store = store
        self._key_store_password = password
        return self

    def hostname_verifier(self, verifier):
        self._hostname_verifier = verifier
        return self

    def ssl_context(self, context):
        self._ssl_context = context
        return self

    def follow_redirects(self, follow):
        self._follow_redirects = follow
        return self

    def proxy_address(self, host, port):
        self._proxy = f"http://{host}:{port}"
        return self

    def query_param_style(self, style):
        self._query_param_style = style
        return self

    def property(self, name, value):
        self._properties[name] = value
        return self

    def build(self, interface: type):
        if self._base_url is None:
            raise RestClientConfigError("No base URL configured for the REST client builder")

        client_kwargs = {
            "base_url": self._base_url,
            "timeout": self._build_timeout(),
            "verify": self._build_ssl_context(),
            "follow_redirects": self._follow_redirects,
            "limits": self._build_limits(),
            "event_hooks": self._build_event_hooks(),
        }
        if self._proxy:
            client_kwargs["proxy"] = self._proxy
        if MAX_REDIRECTS in self._properties:
            client_kwargs["max_redirects"] = int(self._properties[MAX_REDIRECTS])

        client_cls = httpx.AsyncClient if self._asynchronous else httpx.Client
        return interface(
            client_cls(**client_kwargs),
            query_param_style=self._query_param_style or QueryParamStyle.MULTI_PAIRS,
            properties=dict(self._properties),
        )

    def _build_timeout(self) -> httpx.Timeout:
        return httpx.Timeout(
            DEFAULT_TIMEOUT,
            connect=_seconds(self._connect_timeout, DEFAULT_TIMEOUT),
            read=_seconds(self._read_timeout, DEFAULT_TIMEOUT),
        )

    def _build_limits(self) -> httpx.Limits:
        pool_size = self._properties.get(CONNECTION_POOL_SIZE)
        max_connections = int(pool_size) if pool_size is not None else DEFAULT_MAX_CONNECTIONS
        ttl = self._properties.get(CONNECTION_TTL)
        return httpx.Limits(
            max_connections=max_connections,
            max_keepalive_connections=min(DEFAULT_MAX_KEEPALIVE, max_connections),
            keepalive_expiry=_seconds(ttl, DEFAULT_KEEPALIVE_EXPIRY),
        )

    def _build_ssl_context(self) -> ssl.SSLContext | bool:
        if self._ssl_context is not None:
            context = self._ssl_context
        elif self._trust_store or self._key_store or self._hostname_verifier:
            if self._trust_store is None:
                context = ssl.create_default_context()
            else:
                context = ssl.SSLContext(ssl.PROTOCOL_TLS_CLIENT)
                if self._trust_store.certificates:
                    context.load_verify_locations(cadata=self._trust_store.to_pem())
        else:
            return True

        if self._key_store is not None:
            # load_cert_chain only accepts paths
            with tempfile.TemporaryDirectory() as tmp:
                cert_file = Path(tmp) / "client.crt"
                key_file = Path(tmp) / "client.key"
                cert_file.write_bytes(self._key_store.certificate_pem())
                key_file.write_bytes(self._key_store.private_key_pem(self._key_store_password or ""))
                context.load_cert_chain(
                    cert_file, key_file, password=self._key_store_password or None
                )

        if self._hostname_verifier is not None:
            # Host names are checked by the verifier hook instead
            context.check_hostname = False
        return context

    def _build_event_hooks(self) -> dict[str, list]:
        request_hooks = []
        response_hooks = []
        for provider in self._providers:
            if hasattr(provider, "filter_request"):
                request_hooks.append(self._hook(provider.filter_request))
            if hasattr(provider, "filter_response"):
                response_hooks.append(self._hook(provider.filter_response))
        if self._hostname_verifier is not None:
            response_hooks.insert(0, self._hook(_verifier_hook(self._hostname_verifier)))
        return {"request": request_hooks, "response": response_hooks}

    def _hook(self, fn):
        if not self._asynchronous or inspect.iscoroutinefunction(fn):
            return fn

        async def _async_hook(message):
            fn(message)

        return _async_hook


def _seconds(millis, default: float) -> float | None:
    """ms -> seconds; None keeps the default, 0 disables the limit."""
    if millis is None:
        return default
    if int(millis) == 0:
        return None
    return int(millis) / 1000


def _verifier_hook(verifier: HostnameVerifier):
    def _verify_peer(response: httpx.Response) -> None:
        stream = response.extensions.get("network_stream")
        ssl_object = stream.get_extra_info("ssl_object") if stream is not None else None
        if ssl_object is None:
            return  # plain HTTP
        host = response.request.url.host
        if not verifier.verify(host, ssl_object.getpeercert() or {}):
            raise httpx.ConnectError(
                f"Host {host} rejected by {type(verifier).__name__}",
                request=response.request,
            )

    return _verify_peer
