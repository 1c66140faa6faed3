"""Key store / trust store loading for REST client TLS configuration.

Store locations are either package resources (``classpath:certs/ts.p12``)
or filesystem paths (``file:/etc/ts.p12`` or a bare path). Supported store
types are PKCS12 (the default), JKS, JCEKS and PEM.
"""

import importlib
import re
import sys
from dataclasses import dataclass, field
from importlib import resources
from pathlib import Path
from typing import BinaryIO

import jks
from cryptography import x509
from cryptography.hazmat.primitives import serialization
from cryptography.hazmat.primitives.serialization import pkcs12
from jks.util import KeystoreException

from restclient.config.errors import RestClientConfigError

CLASSPATH_PREFIX = "classpath:"
FILE_PREFIX = "file:"

DEFAULT_STORE_TYPE = "PKCS12"
SUPPORTED_STORE_TYPES = ("PKCS12", "JKS", "JCEKS", "PEM")
_JAVA_STORE_TYPES = ("JKS", "JCEKS")
_TYPE_ALIASES = {"P12": "PKCS12", "PFX": "PKCS12"}
_PEM_PRIVATE_KEY = re.compile(
    rb"-----BEGIN ([A-Z ]*)PRIVATE KEY-----.+?-----END \1PRIVATE KEY-----", re.S
)


@dataclass
class TrustStore:
    certificates: list[x509.Certificate] = field(default_factory=list)

    def to_pem(self) -> str:
        """All certificates as one PEM bundle (ssl cadata format)."""
        return "".join(
            cert.public_bytes(serialization.Encoding.PEM).decode("ascii")
            for cert in self.certificates
        )


@dataclass
class KeyStore:
    private_key: object
    certificate: x509.Certificate
    chain: list[x509.Certificate] = field(default_factory=list)

    def certificate_pem(self) -> bytes:
        return b"".join(
            cert.public_bytes(serialization.Encoding.PEM)
            for cert in [self.certificate, *self.chain]
        )

    def private_key_pem(self, password: str) -> bytes:
        """Private key as PEM, encrypted with password (unencrypted if empty)."""
        if password:
            encryption = serialization.BestAvailableEncryption(password.encode())
        else:
            encryption = serialization.NoEncryption()
        return self.private_key.private_bytes(
            serialization.Encoding.PEM,
            serialization.PrivateFormat.PKCS8,
            encryption,
        )


def normalize_store_type(store_type: str | None) -> str:
    """Upper-cased store type, DEFAULT_STORE_TYPE when unset."""
    if not store_type:
        return DEFAULT_STORE_TYPE
    normalized = store_type.strip().upper()
    normalized = _TYPE_ALIASES.get(normalized, normalized)
    if normalized not in SUPPORTED_STORE_TYPES:
        raise RestClientConfigError(
            f"Unsupported store type '{store_type}'. "
            f"Supported types: {', '.join(SUPPORTED_STORE_TYPES)}"
        )
    return normalized


def locate_stream(path: str, anchor: str | None = None) -> BinaryIO:
    """Open the store at path for reading.

    ``classpath:`` paths are looked up on every sys.path root first, then
    among the resources of the package holding the anchor module. The
    caller must close the returned stream.
    """
    if path.startswith(CLASSPATH_PREFIX):
        resource = path[len(CLASSPATH_PREFIX):].lstrip("/")
        stream = _open_from_sys_path(resource)
        if stream is None and anchor:
            stream = _open_from_package(anchor, resource)
        if stream is None:
            raise RestClientConfigError(
                f"Classpath resource {resource} not found for REST client TLS configuration"
            )
        return stream

    if path.startswith(FILE_PREFIX):
        path = path[len(FILE_PREFIX):]
    certificate_file = Path(path)
    if not certificate_file.is_file():
        raise RestClientConfigError(
            f"Certificate file: {path} not found for REST client TLS configuration"
        )
    return certificate_file.open("rb")


def _open_from_sys_path(resource: str) -> BinaryIO | None:
    for root in sys.path:
        candidate = Path(root or ".") / resource
        if candidate.is_file():
            return candidate.open("rb")
    return None


def _open_from_package(anchor: str, resource: str) -> BinaryIO | None:
    package = anchor_package(anchor)
    if package is None:
        return None
    try:
        candidate = resources.files(package).joinpath(resource)
    except (ModuleNotFoundError, TypeError):
        return None
    if not candidate.is_file():
        return None
    return candidate.open("rb")


def anchor_package(anchor: str) -> str | None:
    """Name of the package holding module anchor (anchor itself for a package).

    Returns None for top-level modules and modules that cannot be imported.
    """
    module = sys.modules.get(anchor)
    if module is None:
        try:
            module = importlib.import_module(anchor)
        except ImportError:
            return None
    spec = module.__spec__
    if spec is None:
        return module.__package__ or None
    if spec.submodule_search_locations is not None:
        return spec.name
    return spec.parent or None


def load_trust_store(
    path: str,
    password: str | None,
    store_type: str | None = None,
    anchor: str | None = None,
) -> TrustStore:
    """Load the certificates of a trust store."""
    store_type = normalize_store_type(store_type)
    if password is None:
        raise RestClientConfigError("No password provided for truststore")

    with locate_stream(path, anchor) as stream:
        data = stream.read()

    try:
        if store_type == "PEM":
            certificates = x509.load_pem_x509_certificates(data)
        elif store_type in _JAVA_STORE_TYPES:
            java_store = jks.KeyStore.loads(data, password)
            certificates = [
                x509.load_der_x509_certificate(entry.cert)
                for entry in java_store.certs.values()
            ]
        else:
            _, cert, additional = pkcs12.load_key_and_certificates(data, password.encode())
            certificates = ([cert] if cert is not None else []) + list(additional)
    except (ValueError, KeystoreException) as e:
        raise RestClientConfigError(f"Failed to initialize trust store from {path}") from e
    return TrustStore(certificates=certificates)


def load_key_store(
    path: str,
    password: str | None,
    store_type: str | None = None,
    anchor: str | None = None,
) -> KeyStore:
    """Load the private key and certificate chain of a key store."""
    store_type = normalize_store_type(store_type)
    if password is None:
        raise RestClientConfigError("No password provided for keystore")

    with locate_stream(path, anchor) as stream:
        data = stream.read()

    try:
        if store_type == "PEM":
            key_block = _PEM_PRIVATE_KEY.search(data)
            private_key = None
            if key_block is not None:
                private_key = serialization.load_pem_private_key(
                    key_block.group(0), password.encode() if password else None
                )
            certificates = x509.load_pem_x509_certificates(data)
        elif store_type in _JAVA_STORE_TYPES:
            private_key, certificates = _java_key_entry(jks.KeyStore.loads(data, password))
        else:
            private_key, cert, additional = pkcs12.load_key_and_certificates(
                data, password.encode()
            )
            certificates = ([cert] if cert is not None else []) + list(additional)
    except (ValueError, TypeError, KeystoreException) as e:
        raise RestClientConfigError(f"Failed to initialize key store from {path}") from e

    if private_key is None or not certificates:
        raise RestClientConfigError(
            f"Failed to initialize key store from {path}: no private key entry"
        )
    return KeyStore(
        private_key=private_key,
        certificate=certificates[0],
        chain=certificates[1:],
    )


def _java_key_entry(java_store) -> tuple[object, list[x509.Certificate]]:
    """First private key entry of a JKS/JCEKS store as (key, certificate chain)."""
    for entry in java_store.private_keys.values():
        # Keys protected by a password other than the store password stay encrypted
        if not entry.is_decrypted():
            raise ValueError(f"private key entry '{entry.alias}' could not be decrypted")
        private_key = serialization.load_der_private_key(entry.pkey_pkcs8, password=None)
        certificates = [x509.load_der_x509_certificate(der) for _, der in entry.cert_chain]
        return private_key, certificates
    return None, []
