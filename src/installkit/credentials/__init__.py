"""Credential-set composition.

The main entry points are:

- :func:`compose` -- merge credential sources in fixed precedence order.
- :class:`NamedSetSource`, :class:`ExplicitSource`,
  :class:`AmbientEndpointSource`, :class:`RegistryAuthSource` -- the four
  source variants.
- :class:`CredentialStore` -- named credential sets stored per target context.
- :class:`FileRegistryAuthFetcher` -- registry auths from a docker-style
  ``config.json``.

Typical usage::

    from installkit.credentials import ExplicitSource, NamedSetSource, compose

    creds, warnings = compose([
        NamedSetSource(["prod"], store),
        ExplicitSource(["user=alice"]),
    ])
"""

from installkit.credentials.composer import compose
from installkit.credentials.registry import FileRegistryAuthFetcher, RegistryAuthFetcher
from installkit.credentials.sources import (
    AMBIENT_CONTEXT_KEY,
    REGISTRY_CREDS_KEY,
    AmbientEndpointSource,
    CredentialSource,
    ExplicitSource,
    NamedSetSource,
    RegistryAuthSource,
    SourceKind,
)
from installkit.credentials.store import CredentialStore

__all__ = [
    "AMBIENT_CONTEXT_KEY",
    "REGISTRY_CREDS_KEY",
    "AmbientEndpointSource",
    "CredentialSource",
    "CredentialStore",
    "ExplicitSource",
    "FileRegistryAuthFetcher",
    "NamedSetSource",
    "RegistryAuthFetcher",
    "RegistryAuthSource",
    "SourceKind",
    "compose",
]
