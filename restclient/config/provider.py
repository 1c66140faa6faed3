"""Process-wide access to the config root and the legacy property source.

Both are built once from the application properties and shared read-only.
Builders take them as constructor arguments; these singletons are only the
defaults used by the entry points.
"""

from restclient.config.dynamic import DynamicConfig, load_application_properties
from restclient.config.models import ClientConfig, RestClientConfigRoot
from restclient.config.settings import get_settings

_root: RestClientConfigRoot | None = None
_dynamic: DynamicConfig | None = None


def get_config_root() -> RestClientConfigRoot:
    """Get the config root singleton, loading it on first use."""
    global _root
    if _root is not None:
        return _root

    properties = load_application_properties(get_settings())
    _root = RestClientConfigRoot.from_properties(properties)
    return _root


def get_dynamic_config() -> DynamicConfig:
    """Get the legacy property source singleton."""
    global _dynamic
    if _dynamic is not None:
        return _dynamic

    _dynamic = DynamicConfig(load_application_properties(get_settings()))
    return _dynamic


def get_client_config(prefix: str) -> ClientConfig | None:
    """Typed config for one prefix. Returns None if the prefix is not configured."""
    return get_config_root().get_config(prefix)


def reset() -> None:
    """Drop both singletons so the next lookup reloads them."""
    global _root, _dynamic
    _root = None
    _dynamic = None
