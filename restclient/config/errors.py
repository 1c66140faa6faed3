"""Exceptions raised while configuring REST clients."""


class RestClientConfigError(ValueError):
    """Fatal configuration problem detected while building a client.

    Raised synchronously during construction; no partial client is ever
    returned. The message names the offending property key or value.
    """
