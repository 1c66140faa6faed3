"""Settings -> builder translation shared by the classic and reactive builders."""

import inspect
from abc import ABC, abstractmethod
from collections.abc import Callable

import httpx

from restclient.clients.base import interface_name
from restclient.config.dynamic import DynamicConfig
from restclient.config.errors import RestClientConfigError
from restclient.config.models import QueryParamStyle, RestClientConfigRoot
from restclient.logging.structured import BuildTimer, client_prefix_var, get_logger
from restclient.runtime.builder import RestClientBuilder
from restclient.runtime.registry import resolve_class
from restclient.runtime.resolver import PropertyResolver
from restclient.runtime.tls import load_key_store, load_trust_store

# Legacy (<interface-or-prefix>/mp-rest/<setting>) setting names
REST_URL = "url"
REST_URI = "uri"
REST_SCOPE = "scope"
REST_PROVIDERS = "providers"
REST_CONNECT_TIMEOUT = "connectTimeout"
REST_READ_TIMEOUT = "readTimeout"
REST_FOLLOW_REDIRECTS = "followRedirects"
REST_PROXY_ADDRESS = "proxyAddress"
REST_QUERY_PARAM_STYLE = "queryParamStyle"
REST_TRUST_STORE = "trustStore"
REST_TRUST_STORE_PASSWORD = "trustStorePassword"
REST_TRUST_STORE_TYPE = "trustStoreType"
REST_KEY_STORE = "keyStore"
REST_KEY_STORE_PASSWORD = "keyStorePassword"
REST_KEY_STORE_TYPE = "keyStoreType"
REST_HOSTNAME_VERIFIER = "hostnameVerifier"

DEFAULT_SCOPE = "ApplicationScoped"


class ClientConfigurer(ABC):
    """Resolves one client's settings and applies them to a RestClientBuilder."""

    variant = ""

    def __init__(
        self,
        interface: type,
        base_uri_from_annotation: str | None,
        prefix: str,
        config_root: RestClientConfigRoot | None,
        config: DynamicConfig,
    ):
        self.interface = interface
        self.base_uri_from_annotation = base_uri_from_annotation
        self.prefix = prefix
        self.resolver = PropertyResolver(interface, prefix, config_root, config)

    @abstractmethod
    def missing_base_url_keys(self) -> tuple[str, str]:
        """The (url, uri) keys named when no base URL can be determined."""
        ...

    def run(self, builder: RestClientBuilder, steps: list[Callable[[RestClientBuilder], None]]):
        """Apply each configure step to builder, then build the proxy.

        Configuration errors are logged and re-raised; nothing is built.
        """
        logger = get_logger()
        token = client_prefix_var.set(self.prefix)
        try:
            with BuildTimer() as timer:
                for step in steps:
                    step(builder)
                result = builder.build(self.interface)
        except RestClientConfigError:
            logger.error(
                "REST client configuration failed",
                exc_info=True,
                extra={"audit_data": self.audit_data()},
            )
            raise
        finally:
            client_prefix_var.reset(token)

        logger.info(
            "REST client built",
            extra={"audit_data": {**self.audit_data(), "latency_ms": timer.elapsed_ms}},
        )
        return result

    def configure_base_url(self, builder: RestClientBuilder) -> None:
        base_url = self.resolver.client_property("uri", REST_URI)
        if base_url is None:
            base_url = self.resolver.client_property("url", REST_URL)
        if not self.base_uri_from_annotation and base_url is None:
            url_key, uri_key = self.missing_base_url_keys()
            raise RestClientConfigError(
                "Unable to determine the proper baseUrl/baseUri. "
                "Consider registering using @register_rest_client(base_uri=\"someuri\"), "
                "@register_rest_client(config_key=\"orkey\"), "
                f"or by adding '{url_key}' or '{uri_key}' to your configuration"
            )
        if base_url is None:
            base_url = self.base_uri_from_annotation

        try:
            url = httpx.URL(base_url)
        except httpx.InvalidURL as e:
            raise RestClientConfigError(f"The value of URL was invalid {base_url}") from e
        if not url.scheme or not url.host:
            raise RestClientConfigError(f"The value of URL was invalid {base_url}")
        builder.base_url(base_url)

    def configure_timeouts(self, builder: RestClientBuilder) -> None:
        connect_timeout = self.resolver.client_property("connect_timeout", REST_CONNECT_TIMEOUT, int)
        if connect_timeout is not None:
            builder.connect_timeout(connect_timeout)

        read_timeout = self.resolver.client_property("read_timeout", REST_READ_TIMEOUT, int)
        if read_timeout is not None:
            builder.read_timeout(read_timeout)

    def configure_providers(self, builder: RestClientBuilder) -> None:
        providers = self.resolver.client_property("providers", REST_PROVIDERS)
        if providers is not None:
            for name in providers.split(","):
                if name.strip():
                    builder.register(provider_class_for_name(name.strip()))

    def configure_ssl(self, builder: RestClientBuilder) -> None:
        trust_store = self.resolver.client_property("trust_store", REST_TRUST_STORE)
        if trust_store is not None:
            self.register_trust_store(trust_store, builder)

        key_store = self.resolver.client_property("key_store", REST_KEY_STORE)
        if key_store is not None:
            self.register_key_store(key_store, builder)

        hostname_verifier = self.resolver.client_property("hostname_verifier", REST_HOSTNAME_VERIFIER)
        if hostname_verifier is not None:
            register_hostname_verifier(hostname_verifier, builder)

    def register_trust_store(self, path: str, builder: RestClientBuilder) -> None:
        password = self.resolver.client_property("trust_store_password", REST_TRUST_STORE_PASSWORD)
        store_type = self.resolver.client_property("trust_store_type", REST_TRUST_STORE_TYPE)
        store = load_trust_store(path, password, store_type, anchor=self.interface.__module__)
        builder.trust_store(store)

    def register_key_store(self, path: str, builder: RestClientBuilder) -> None:
        password = self.resolver.client_property("key_store_password", REST_KEY_STORE_PASSWORD)
        store_type = self.resolver.client_property("key_store_type", REST_KEY_STORE_TYPE)
        store = load_key_store(path, password, store_type, anchor=self.interface.__module__)
        builder.key_store(store, password)

    def configure_proxy(self, builder: RestClientBuilder) -> None:
        proxy_address = self.resolver.client_property("proxy_address", REST_PROXY_ADDRESS)
        if proxy_address is not None:
            host, port = parse_proxy_address(proxy_address)
            builder.proxy_address(host, port)

    def configure_follow_redirects(self, builder: RestClientBuilder) -> None:
        follow_redirects = self.resolver.client_property("follow_redirects", REST_FOLLOW_REDIRECTS, bool)
        if follow_redirects is not None:
            builder.follow_redirects(follow_redirects)

    def configure_query_param_style(self, builder: RestClientBuilder) -> None:
        style = self.resolver.client_property("query_param_style", REST_QUERY_PARAM_STYLE, QueryParamStyle)
        if style is not None:
            builder.query_param_style(style)

    def resolve_scope(self) -> str:
        """Configured injection scope for the client, ApplicationScoped by default."""
        return self.resolver.client_property("scope", REST_SCOPE) or DEFAULT_SCOPE

    def audit_data(self) -> dict:
        return {
            "prefix": self.prefix,
            "interface": interface_name(self.interface),
            "variant": self.variant,
            "typed_config": self.resolver.client_config is not None,
        }


def parse_proxy_address(proxy_string: str) -> tuple[str, int]:
    """Split ``<host>:<port>`` on the last colon."""
    last_colon = proxy_string.rfind(":")
    if last_colon <= 0 or last_colon == len(proxy_string) - 1:
        raise RestClientConfigError(
            f"Invalid proxy string. Expected <hostname>:<port>, found '{proxy_string}'"
        )
    host = proxy_string[:last_colon]
    try:
        port = int(proxy_string[last_colon + 1:])
    except ValueError as e:
        raise RestClientConfigError(
            f"Invalid proxy setting. The port is not a number in '{proxy_string}'"
        ) from e
    if not 0 < port <= 65535:
        raise RestClientConfigError(
            f"Invalid proxy setting. The port is out of range in '{proxy_string}'"
        )
    return host, port


def provider_class_for_name(name: str) -> type:
    try:
        return resolve_class(name)
    except LookupError as e:
        raise RestClientConfigError(f"Could not find provider class: {name}") from e


def register_hostname_verifier(verifier: str, builder: RestClientBuilder) -> None:
    """Instantiate the named verifier with no arguments and install it."""
    try:
        verifier_class = resolve_class(verifier)
    except LookupError as e:
        raise RestClientConfigError(f"Could not find hostname verifier class {verifier}") from e

    if not _has_no_arg_constructor(verifier_class):
        raise RestClientConfigError(
            f"Could not find a public, no-argument constructor for the hostname verifier class {verifier}"
        )
    try:
        instance = verifier_class()
    except Exception as e:
        raise RestClientConfigError(
            f"Failed to instantiate hostname verifier class {verifier}. "
            "Make sure it has a public, no-argument constructor"
        ) from e

    if not callable(getattr(instance, "verify", None)):
        raise RestClientConfigError(
            f"The provided hostname verifier {verifier} is not an instance of HostnameVerifier"
        )
    builder.hostname_verifier(instance)


def _has_no_arg_constructor(cls: type) -> bool:
    try:
        signature = inspect.signature(cls)
    except (TypeError, ValueError):
        return True  # builtins without introspectable signatures
    return all(
        param.default is not inspect.Parameter.empty
        or param.kind in (inspect.Parameter.VAR_POSITIONAL, inspect.Parameter.VAR_KEYWORD)
        for param in signature.parameters.values()
    )
