"""Shared fixtures for the REST client configuration test suite."""

from dataclasses import dataclass
from datetime import datetime, timedelta, timezone

import jks
import pytest
from cryptography import x509
from cryptography.hazmat.primitives import hashes, serialization
from cryptography.hazmat.primitives.asymmetric import ec
from cryptography.hazmat.primitives.serialization import pkcs12
from cryptography.x509.oid import NameOID

import restclient.config.provider as provider_mod
from restclient.config.dynamic import DynamicConfig
from restclient.config.models import ClientConfig, QueryParamStyle, RestClientConfigRoot
from restclient.config.settings import get_settings

TRUSTSTORE_PASSWORD = "truststorePassword"
KEYSTORE_PASSWORD = "keystorePassword"


@dataclass
class TLSStores:
    truststore: str
    keystore: str
    pem_truststore: str
    pem_keystore: str
    jks_truststore: str
    jks_keystore: str


def make_self_signed(common_name: str = "localhost", ca: bool = False):
    """Return (private_key, certificate) for a throwaway self-signed cert.

    Trust anchors need ca=True, otherwise OpenSSL does not list them as CAs.
    """
    key = ec.generate_private_key(ec.SECP256R1())
    name = x509.Name([x509.NameAttribute(NameOID.COMMON_NAME, common_name)])
    now = datetime.now(timezone.utc)
    builder = (
        x509.CertificateBuilder()
        .subject_name(name)
        .issuer_name(name)
        .public_key(key.public_key())
        .serial_number(x509.random_serial_number())
        .not_valid_before(now - timedelta(days=1))
        .not_valid_after(now + timedelta(days=30))
    )
    if ca:
        builder = builder.add_extension(x509.BasicConstraints(ca=True, path_length=None), critical=True)
    return key, builder.sign(key, hashes.SHA256())


def write_pkcs12_truststore(path, password: str = TRUSTSTORE_PASSWORD) -> str:
    _, cert = make_self_signed("test-ca", ca=True)
    data = pkcs12.serialize_key_and_certificates(
        b"truststore", None, None, [cert],
        serialization.BestAvailableEncryption(password.encode()),
    )
    path.write_bytes(data)
    return str(path)


def write_pkcs12_keystore(path, password: str = KEYSTORE_PASSWORD) -> str:
    key, cert = make_self_signed("test-client")
    data = pkcs12.serialize_key_and_certificates(
        b"client", key, cert, None,
        serialization.BestAvailableEncryption(password.encode()),
    )
    path.write_bytes(data)
    return str(path)


def write_jks_truststore(path, password: str = TRUSTSTORE_PASSWORD) -> str:
    _, cert = make_self_signed("jks-ca", ca=True)
    entry = jks.TrustedCertEntry.new("ca", cert.public_bytes(serialization.Encoding.DER))
    jks.KeyStore.new("jks", [entry]).save(str(path), password)
    return str(path)


def write_jks_keystore(path, password: str = KEYSTORE_PASSWORD) -> str:
    key, cert = make_self_signed("jks-client")
    entry = jks.PrivateKeyEntry.new(
        "client",
        [cert.public_bytes(serialization.Encoding.DER)],
        key.private_bytes(
            serialization.Encoding.DER,
            serialization.PrivateFormat.PKCS8,
            serialization.NoEncryption(),
        ),
    )
    jks.KeyStore.new("jks", [entry]).save(str(path), password)
    return str(path)


@pytest.fixture(scope="session")
def tls_stores(tmp_path_factory) -> TLSStores:
    """PKCS12, JKS and PEM trust/key stores written to a temp directory."""
    directory = tmp_path_factory.mktemp("stores")
    truststore = write_pkcs12_truststore(directory / "truststore.p12")
    keystore = write_pkcs12_keystore(directory / "keystore.p12")

    _, ca_cert = make_self_signed("pem-ca", ca=True)
    pem_truststore = directory / "truststore.pem"
    pem_truststore.write_bytes(ca_cert.public_bytes(serialization.Encoding.PEM))

    key, cert = make_self_signed("pem-client")
    pem_keystore = directory / "keystore.pem"
    pem_keystore.write_bytes(
        key.private_bytes(
            serialization.Encoding.PEM,
            serialization.PrivateFormat.PKCS8,
            serialization.BestAvailableEncryption(KEYSTORE_PASSWORD.encode()),
        )
        + cert.public_bytes(serialization.Encoding.PEM)
    )
    return TLSStores(
        truststore=truststore,
        keystore=keystore,
        pem_truststore=str(pem_truststore),
        pem_keystore=str(pem_keystore),
        jks_truststore=write_jks_truststore(directory / "truststore.jks"),
        jks_keystore=write_jks_keystore(directory / "keystore.jks"),
    )


@pytest.fixture
def sample_config_root(tls_stores):
    """Factory fixture: typed config for prefix "test-client".

    Usage:
        root = sample_config_root(providers="mod.Filter", hostname_verifier="mod.Verifier")
    """
    def _build(providers: str, hostname_verifier: str) -> RestClientConfigRoot:
        client_config = ClientConfig(
            url="http://localhost",
            scope="Singleton",
            providers=providers,
            connect_timeout=100,
            read_timeout=101,
            follow_redirects=True,
            proxy_address="localhost:1234",
            query_param_style=QueryParamStyle.COMMA_SEPARATED,
            trust_store=tls_stores.truststore,
            trust_store_password=TRUSTSTORE_PASSWORD,
            trust_store_type="PKCS12",
            key_store=tls_stores.keystore,
            key_store_password=KEYSTORE_PASSWORD,
            key_store_type="PKCS12",
            hostname_verifier=hostname_verifier,
            connection_ttl=102,
            connection_pool_size=103,
            max_redirects=104,
        )
        return RestClientConfigRoot(
            configs={"test-client": client_config},
            multipart_post_encoder_mode="HTML5",
            disable_smart_produces=True,
        )

    return _build


@pytest.fixture
def empty_config_root() -> RestClientConfigRoot:
    return RestClientConfigRoot()


@pytest.fixture
def legacy_config(tls_stores):
    """Factory fixture: legacy ``test-client/mp-rest/*`` properties.

    Usage:
        config = legacy_config(providers="mod.Filter2", hostname_verifier="mod.Verifier2")
    """
    def _build(providers: str, hostname_verifier: str, **extra: str) -> DynamicConfig:
        properties = {
            "test-client/mp-rest/providers": providers,
            "test-client/mp-rest/connectTimeout": "1",
            "test-client/mp-rest/readTimeout": "2",
            "test-client/mp-rest/followRedirects": "false",
            "test-client/mp-rest/proxyAddress": "localhost:8081",
            "test-client/mp-rest/queryParamStyle": "ARRAY_PAIRS",
            "test-client/mp-rest/trustStore": tls_stores.truststore,
            "test-client/mp-rest/trustStorePassword": TRUSTSTORE_PASSWORD,
            "test-client/mp-rest/keyStore": tls_stores.keystore,
            "test-client/mp-rest/keyStorePassword": KEYSTORE_PASSWORD,
            "test-client/mp-rest/hostnameVerifier": hostname_verifier,
            "rest-client.max-redirects": "4",
            "rest-client.multipart-post-encoder-mode": "rfc3986",
        }
        properties.update(extra)
        return DynamicConfig(properties)

    return _build


@pytest.fixture
def override_settings(monkeypatch):
    """Factory fixture: set env vars and clear the settings and config caches.

    Usage:
        override_settings(RESTCLIENT_LOG_LEVEL="DEBUG", RESTCLIENT_ENV_FILE="")
    """
    def _override(**kwargs):
        for key, value in kwargs.items():
            monkeypatch.setenv(key, str(value))
        # Clear lru_cache so Settings re-reads env
        get_settings.cache_clear()
        provider_mod.reset()

    yield _override

    # Always clear caches on teardown so other tests get fresh settings
    get_settings.cache_clear()
    provider_mod.reset()
