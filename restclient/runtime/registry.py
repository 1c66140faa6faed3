"""Class registry: maps configured class names to classes.

Names registered by the embedding application take precedence; anything
else is treated as an import path (``pkg.module.Class`` or
``pkg.module:Class``, nested classes allowed).
"""

import importlib
from abc import ABC, abstractmethod

NOOP_HOSTNAME_VERIFIER = "restclient.NoopHostnameVerifier"

_classes: dict[str, type] = {}


class HostnameVerifier(ABC):
    """Decides whether a TLS peer is acceptable for the requested host.

    The httpx transport has no pre-request hook into the handshake, so the
    check runs when the response arrives: a rejected request has already been
    sent (headers and body included) to the peer, and only its response is
    withheld from the caller as an httpx.ConnectError. Use a trust store when
    requests must never reach an unverified host.
    """

    @abstractmethod
    def verify(self, hostname: str, peer_cert: dict) -> bool:
        """Return True to accept the connection.

        Args:
            hostname: Host the request was sent to.
            peer_cert: Decoded peer certificate (ssl.SSLSocket.getpeercert()).
        """
        ...


class NoopHostnameVerifier(HostnameVerifier):
    """Accepts every host."""

    def verify(self, hostname: str, peer_cert: dict) -> bool:
        return True


def register_class(name: str, cls: type) -> None:
    """Make cls resolvable under name, ahead of import-path lookup."""
    _classes[name] = cls


def unregister_class(name: str) -> None:
    _classes.pop(name, None)


def resolve_class(name: str) -> type:
    """Resolve a configured class name.

    Raises LookupError when the name is neither registered nor importable.
    """
    name = name.strip()
    if name in _classes:
        return _classes[name]

    if ":" in name:
        module_name, _, attr_path = name.partition(":")
        attrs = attr_path.split(".")
        if not module_name or not all(attrs):
            raise LookupError(name)
        return _load(module_name, attrs, name)

    parts = name.split(".")
    if not all(parts):
        raise LookupError(name)
    # Walk back from the longest importable module (supports Outer.Inner)
    for split in range(len(parts) - 1, 0, -1):
        module_name = ".".join(parts[:split])
        try:
            importlib.import_module(module_name)
        except (ImportError, ValueError):
            continue
        return _load(module_name, parts[split:], name)
    raise LookupError(name)


def _load(module_name: str, attrs: list[str], name: str) -> type:
    try:
        target = importlib.import_module(module_name)
    except (ImportError, ValueError) as e:
        raise LookupError(name) from e
    for attr in attrs:
        try:
            target = getattr(target, attr)
        except AttributeError as e:
            raise LookupError(name) from e
    if not isinstance(target, type):
        raise LookupError(name)
    return target


register_class(NOOP_HOSTNAME_VERIFIER, NoopHostnameVerifier)
