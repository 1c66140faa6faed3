"""Layered lookup of REST client settings.

Precedence for a per-client setting:

1. the typed ClientConfig field for the prefix;
2. ``<interface FQN>/mp-rest/<setting>``;
3. ``<prefix>/mp-rest/<setting>``.

Absence is never an error; undecodable values raise RestClientConfigError.
"""

from restclient.clients.base import interface_name
from restclient.config.dynamic import DynamicConfig
from restclient.config.models import ClientConfig, RestClientConfigRoot

MP_REST = "mp-rest"


def legacy_key(owner: str, setting: str) -> str:
    return f"{owner}/{MP_REST}/{setting}"


def typed_key(prefix: str, field: str) -> str:
    return f'rest-client."{prefix}".{field.replace("_", "-")}'


class PropertyResolver:
    def __init__(
        self,
        interface: type,
        prefix: str,
        config_root: RestClientConfigRoot | None,
        config: DynamicConfig,
    ):
        self.interface = interface
        self.interface_name = interface_name(interface)
        self.prefix = prefix
        self.config_root = config_root
        self.config = config
        self.client_config: ClientConfig | None = (
            config_root.get_config(prefix) if config_root is not None else None
        )

    def client_property(self, field: str, setting: str, type_: type = str):
        """Typed field, else the legacy key by interface name, else by prefix."""
        value = self.typed_property(field)
        if value is not None:
            return value
        value = self.config.get_optional_value(legacy_key(self.interface_name, setting), type_)
        if value is not None:
            return value
        return self.config.get_optional_value(legacy_key(self.prefix, setting), type_)

    def typed_property(self, field: str):
        """Typed ClientConfig field only."""
        if self.client_config is None:
            return None
        return getattr(self.client_config, field)

    def root_property(self, field: str, key: str, type_: type = str):
        """Typed config-root field, else the global dynamic key."""
        if self.config_root is not None:
            value = getattr(self.config_root, field)
            if value is not None:
                return value
        return self.global_property(key, type_)

    def global_property(self, key: str, type_: type = str):
        return self.config.get_optional_value(key, type_)
