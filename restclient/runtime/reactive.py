"""Reactive (asyncio) REST client construction on httpx.AsyncClient."""

from restclient.config.errors import RestClientConfigError
from restclient.config.models import MultipartEncoderMode
from restclient.runtime.builder import (
    CONNECTION_POOL_SIZE,
    CONNECTION_TTL,
    MAX_REDIRECTS,
    MULTIPART_ENCODER_MODE,
    HttpxClientBuilder,
    RestClientBuilder,
)
from restclient.runtime.configurer import REST_URI, REST_URL, ClientConfigurer
from restclient.runtime.resolver import legacy_key

GLOBAL_MAX_REDIRECTS = "rest-client.max-redirects"
GLOBAL_MULTIPART_POST_ENCODER_MODE = "rest-client.multipart-post-encoder-mode"


class RestClientDelegateBuilder(ClientConfigurer):
    """Builds an asynchronous client proxy for one interface/prefix pair."""

    variant = "reactive"

    def build(self, builder: RestClientBuilder | None = None):
        return self.run(
            builder or HttpxClientBuilder(asynchronous=True),
            [
                self.configure_base_url,
                self.configure_timeouts,
                self.configure_providers,
                self.configure_ssl,
                self.configure_redirects,
                self.configure_query_param_style,
                self.configure_proxy,
                self.configure_custom_properties,
            ],
        )

    def missing_base_url_keys(self) -> tuple[str, str]:
        return legacy_key(self.prefix, REST_URL), legacy_key(self.prefix, REST_URI)

    def configure_redirects(self, builder: RestClientBuilder) -> None:
        max_redirects = self.resolver.typed_property("max_redirects")
        if max_redirects is None:
            max_redirects = self.resolver.global_property(GLOBAL_MAX_REDIRECTS, int)
        if max_redirects is not None:
            builder.property(MAX_REDIRECTS, max_redirects)

        self.configure_follow_redirects(builder)

    def configure_custom_properties(self, builder: RestClientBuilder) -> None:
        encoder = self.resolver.root_property(
            "multipart_post_encoder_mode", GLOBAL_MULTIPART_POST_ENCODER_MODE
        )
        if encoder is not None:
            try:
                mode = MultipartEncoderMode(encoder.upper())
            except ValueError as e:
                raise RestClientConfigError(
                    f"Invalid multipart post encoder mode '{encoder}'. "
                    f"Expected one of: {', '.join(m.value for m in MultipartEncoderMode)}"
                ) from e
            builder.property(MULTIPART_ENCODER_MODE, mode)

        pool_size = self.resolver.typed_property("connection_pool_size")
        if pool_size is not None:
            builder.property(CONNECTION_POOL_SIZE, pool_size)

        connection_ttl = self.resolver.typed_property("connection_ttl")
        if connection_ttl is not None:
            builder.property(CONNECTION_TTL, connection_ttl)
