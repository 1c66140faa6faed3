"""Typed REST client configuration: per-prefix ClientConfig and the config root.

The root is built once from the flat application properties:

    rest-client."my-client".url=https://example.org
    rest-client.other.connect-timeout=500
    rest-client.multipart-post-encoder-mode=HTML5

Prefixes containing dots must be quoted.
"""

import re
from enum import Enum

from pydantic import BaseModel, ConfigDict, ValidationError

from restclient.config.errors import RestClientConfigError

CONFIG_NAMESPACE = "rest-client"
# Global keys read through the dynamic layer rather than the typed root
DYNAMIC_GLOBAL_SETTINGS = frozenset({"max-redirects"})

_CLIENT_KEY = re.compile(r'^rest-client\.(?:"([^"]+)"|([^."]+))\.([a-z0-9-]+)$')


def _kebab(name: str) -> str:
    return name.replace("_", "-")


class QueryParamStyle(str, Enum):
    """How multiple values of one query parameter are written."""

    MULTI_PAIRS = "MULTI_PAIRS"  # a=1&a=2
    COMMA_SEPARATED = "COMMA_SEPARATED"  # a=1,2
    ARRAY_PAIRS = "ARRAY_PAIRS"  # a[]=1&a[]=2


class MultipartEncoderMode(str, Enum):
    RFC1738 = "RFC1738"
    RFC3986 = "RFC3986"
    HTML5 = "HTML5"


class ClientConfig(BaseModel):
    """Settings for one configured client prefix. None means "not configured"."""

    model_config = ConfigDict(
        frozen=True,
        extra="forbid",
        alias_generator=_kebab,
        populate_by_name=True,
    )

    url: str | None = None
    uri: str | None = None
    scope: str | None = None
    providers: str | None = None  # comma-separated class names
    connect_timeout: int | None = None  # ms
    read_timeout: int | None = None  # ms
    follow_redirects: bool | None = None
    proxy_address: str | None = None  # <host>:<port>
    query_param_style: QueryParamStyle | None = None
    trust_store: str | None = None  # classpath:, file: or bare path
    trust_store_password: str | None = None
    trust_store_type: str | None = None
    key_store: str | None = None
    key_store_password: str | None = None
    key_store_type: str | None = None
    hostname_verifier: str | None = None
    connection_ttl: int | None = None  # ms, 0 = no expiry
    connection_pool_size: int | None = None
    max_redirects: int | None = None


class RestClientConfigRoot(BaseModel):
    """All configured clients plus the global REST client defaults."""

    model_config = ConfigDict(
        frozen=True,
        extra="forbid",
        alias_generator=_kebab,
        populate_by_name=True,
    )

    configs: dict[str, ClientConfig] = {}
    multipart_post_encoder_mode: str | None = None
    disable_smart_produces: bool | None = None

    def get_config(self, prefix: str) -> ClientConfig | None:
        """Config for a prefix, or None when the prefix is not configured."""
        return self.configs.get(prefix)

    @classmethod
    def from_properties(cls, properties: dict[str, str]) -> "RestClientConfigRoot":
        """Build the root from flat ``rest-client.*`` application properties.

        Keys outside the namespace are ignored. Unknown settings and values
        that cannot be decoded raise RestClientConfigError naming the key.
        """
        per_client: dict[str, dict[str, str]] = {}
        key_names: dict[tuple[str, str], str] = {}
        root_values: dict[str, str] = {}
        root_settings = {
            _kebab(name) for name in cls.model_fields if name != "configs"
        }

        for key, value in properties.items():
            if not key.startswith(CONFIG_NAMESPACE + "."):
                continue
            setting = key[len(CONFIG_NAMESPACE) + 1:]
            if setting in root_settings:
                root_values[setting] = value
                continue
            match = _CLIENT_KEY.match(key)
            if match is None:
                if setting in DYNAMIC_GLOBAL_SETTINGS:
                    continue
                raise RestClientConfigError(
                    f"Invalid REST client configuration key '{key}': expected "
                    f'{CONFIG_NAMESPACE}."<prefix>".<kebab-case-setting>'
                )
            prefix = match.group(1) or match.group(2)
            per_client.setdefault(prefix, {})[match.group(3)] = value
            key_names[(prefix, match.group(3))] = key

        configs: dict[str, ClientConfig] = {}
        for prefix, values in per_client.items():
            try:
                configs[prefix] = ClientConfig.model_validate(values)
            except ValidationError as e:
                raise RestClientConfigError(
                    f"Invalid REST client configuration for '{prefix}': "
                    + _describe(e, lambda loc: key_names.get((prefix, loc), loc))
                ) from e

        try:
            return cls.model_validate({**root_values, "configs": configs})
        except ValidationError as e:
            raise RestClientConfigError(
                "Invalid REST client configuration: "
                + _describe(e, lambda loc: f"{CONFIG_NAMESPACE}.{loc}")
            ) from e


def _describe(error: ValidationError, key_for) -> str:
    parts = []
    for item in error.errors():
        loc = str(item["loc"][0]) if item["loc"] else ""
        parts.append(f"{key_for(loc)}: {item['msg']}")
    return "; ".join(parts)
