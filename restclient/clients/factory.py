"""Entry points for building REST client proxies."""

from restclient.clients.base import interface_name
from restclient.config.dynamic import DynamicConfig
from restclient.config.models import RestClientConfigRoot
from restclient.config.provider import get_config_root, get_dynamic_config
from restclient.runtime.builder import RestClientBuilder
from restclient.runtime.classic import RestClientBase
from restclient.runtime.reactive import RestClientDelegateBuilder


def _defaults(interface: type, base_uri: str | None, prefix: str | None) -> tuple[str | None, str]:
    """Fill base URI and prefix from the register_rest_client decorator."""
    if base_uri is None:
        base_uri = getattr(interface, "base_uri", None)
    if prefix is None:
        prefix = getattr(interface, "config_key", None) or interface_name(interface)
    return base_uri, prefix


def create_client(
    interface: type,
    base_uri: str | None = None,
    prefix: str | None = None,
    providers: list[type] | None = None,
    *,
    config_root: RestClientConfigRoot | None = None,
    config: DynamicConfig | None = None,
    builder: RestClientBuilder | None = None,
):
    """Build a synchronous client proxy for interface.

    Args:
        interface: RestClient subclass to instantiate.
        base_uri: Default base URI, used when neither uri nor url is configured.
        prefix: Configuration prefix; defaults to the interface's config_key,
            then its fully-qualified name.
        providers: Extra provider classes, registered after configured ones.
        config_root: Typed configuration; defaults to the process-wide root.
        config: Legacy property source; defaults to the process-wide one.
        builder: Builder to configure; defaults to an httpx builder.

    Raises:
        RestClientConfigError: if any setting is missing or invalid.
    """
    base_uri, prefix = _defaults(interface, base_uri, prefix)
    return RestClientBase(
        interface,
        base_uri,
        prefix,
        providers,
        config_root if config_root is not None else get_config_root(),
        config if config is not None else get_dynamic_config(),
    ).create(builder)


def create_reactive_client(
    interface: type,
    base_uri: str | None = None,
    prefix: str | None = None,
    *,
    config_root: RestClientConfigRoot | None = None,
    config: DynamicConfig | None = None,
    builder: RestClientBuilder | None = None,
):
    """Build an asynchronous client proxy for interface (see create_client)."""
    base_uri, prefix = _defaults(interface, base_uri, prefix)
    return RestClientDelegateBuilder(
        interface,
        base_uri,
        prefix,
        config_root if config_root is not None else get_config_root(),
        config if config is not None else get_dynamic_config(),
    ).build(builder)
