"""Classic (synchronous) REST client construction on httpx.Client."""

import ssl

from restclient.config.dynamic import DynamicConfig
from restclient.config.models import RestClientConfigRoot
from restclient.runtime.builder import (
    CONNECTION_POOL_SIZE,
    CONNECTION_TTL,
    HttpxClientBuilder,
    RestClientBuilder,
)
from restclient.runtime.configurer import ClientConfigurer, register_hostname_verifier
from restclient.runtime.registry import NOOP_HOSTNAME_VERIFIER
from restclient.runtime.resolver import typed_key

TLS_TRUST_ALL = "tls.trust-all"


class RestClientBase(ClientConfigurer):
    """Builds a synchronous client proxy for one interface/prefix pair.

    Annotation-supplied providers are registered after the configured ones.
    """

    variant = "classic"

    def __init__(
        self,
        interface: type,
        base_uri_from_annotation: str | None,
        prefix: str,
        annotation_providers: list[type] | None,
        config_root: RestClientConfigRoot | None,
        config: DynamicConfig,
    ):
        super().__init__(interface, base_uri_from_annotation, prefix, config_root, config)
        self.annotation_providers = annotation_providers

    def create(self, builder: RestClientBuilder | None = None):
        """Resolve every setting, apply it to builder and build the proxy."""
        return self.run(
            builder or HttpxClientBuilder(asynchronous=False),
            [
                self.configure_base_url,
                self.configure_timeouts,
                self.configure_providers,
                self.configure_ssl,
                self.configure_proxy,
                self.configure_redirects,
                self.configure_query_param_style,
                self.configure_custom_properties,
            ],
        )

    def missing_base_url_keys(self) -> tuple[str, str]:
        return typed_key(self.prefix, "url"), typed_key(self.prefix, "uri")

    def configure_providers(self, builder: RestClientBuilder) -> None:
        super().configure_providers(builder)
        for provider in self.annotation_providers or []:
            builder.register(provider)

    def configure_ssl(self, builder: RestClientBuilder) -> None:
        trust_all = self.resolver.global_property(TLS_TRUST_ALL, bool)
        if trust_all:
            register_hostname_verifier(NOOP_HOSTNAME_VERIFIER, builder)
            context = ssl.create_default_context()
            context.check_hostname = False
            context.verify_mode = ssl.CERT_NONE
            builder.ssl_context(context)
        super().configure_ssl(builder)

    def configure_redirects(self, builder: RestClientBuilder) -> None:
        self.configure_follow_redirects(builder)

    def configure_custom_properties(self, builder: RestClientBuilder) -> None:
        # Pool settings come from typed config only
        pool_size = self.resolver.typed_property("connection_pool_size")
        if pool_size is not None:
            builder.property(CONNECTION_POOL_SIZE, pool_size)

        connection_ttl = self.resolver.typed_property("connection_ttl")
        if connection_ttl is not None:
            builder.property(CONNECTION_TTL, connection_ttl)
