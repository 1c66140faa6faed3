"""Legacy dynamic property source (``<interface-or-prefix>/mp-rest/<setting>``).

Values are stored as raw strings and decoded on lookup, so a malformed value
only fails when a client actually asks for it.
"""

import os

from dotenv import dotenv_values
from pydantic import TypeAdapter, ValidationError

from restclient.config.errors import RestClientConfigError
from restclient.config.settings import Settings

_adapters: dict[object, TypeAdapter] = {}


def _adapter(type_: type) -> TypeAdapter:
    if type_ not in _adapters:
        _adapters[type_] = TypeAdapter(type_)
    return _adapters[type_]


class DynamicConfig:
    """Read-only key/value lookup with typed decoding."""

    def __init__(self, properties: dict[str, str] | None = None):
        self._properties: dict[str, str] = dict(properties or {})

    def get_raw(self, key: str) -> str | None:
        value = self._properties.get(key)
        if value is None or not value.strip():
            return None
        return value.strip()

    def get_optional_value(self, key: str, type_: type):
        """Decoded value for key, or None when the key is absent or blank.

        Raises RestClientConfigError when the value cannot be decoded.
        """
        raw = self.get_raw(key)
        if raw is None:
            return None
        if type_ is str:
            return raw
        try:
            return _adapter(type_).validate_python(raw)
        except ValidationError as e:
            type_name = getattr(type_, "__name__", str(type_))
            raise RestClientConfigError(
                f"Invalid value '{raw}' for property {key}: expected {type_name}"
            ) from e

    def __contains__(self, key: str) -> bool:
        return self.get_raw(key) is not None


def load_application_properties(settings: Settings) -> dict[str, str]:
    """Merge the configured .env file with the process environment.

    Environment variables win over the file.
    """
    properties: dict[str, str] = {}
    if settings.env_file and os.path.isfile(settings.env_file):
        for key, value in dotenv_values(settings.env_file).items():
            if value is not None:
                properties[key] = value
    properties.update(os.environ)
    return properties
