"""Credential source providers.

Each origin of credentials is a small frozen dataclass; together they form
the closed variant :data:`CredentialSource`. :func:`produce` dispatches a
source to its handler, which returns a fresh partial
:class:`~installkit.models.CredentialSet` and never touches another
source's output. Merging is the composer's job.

==================  ==========  ============================================
Source              Required    Contribution
==================  ==========  ============================================
NamedSetSource      yes         keys of every named set, in order
ExplicitSource      yes         one key per ``key=value`` pair
AmbientEndpoint     no          ``installkit.context`` blob, if any material
RegistryAuth        no          registry auth map + ``installkit.registry-creds``
==================  ==========  ============================================
"""

from __future__ import annotations

import enum
import logging
from dataclasses import dataclass
from typing import Callable, ClassVar, Optional, Sequence, Union

from installkit.contexts.store import ProfileStore
from installkit.credentials.loader import load_credential_set_file
from installkit.credentials.registry import RegistryAuthFetcher
from installkit.credentials.store import CredentialStore, resolve_credential_set
from installkit.exceptions import (
    CredentialSourceError,
    CredentialSourceErrorKind,
    NotFoundError,
    RegistryAuthError,
)
from installkit.models import CredentialSet

logger = logging.getLogger(__name__)

RESERVED_PREFIX = "installkit."
AMBIENT_CONTEXT_KEY = RESERVED_PREFIX + "context"
REGISTRY_CREDS_KEY = RESERVED_PREFIX + "registry-creds"


class SourceKind(str, enum.Enum):
    NAMED_SET = "named_set"
    EXPLICIT = "explicit"
    AMBIENT_ENDPOINT = "ambient_endpoint"
    REGISTRY_AUTH = "registry_auth"


PRECEDENCE: tuple[SourceKind, ...] = (
    SourceKind.NAMED_SET,
    SourceKind.EXPLICIT,
    SourceKind.AMBIENT_ENDPOINT,
    SourceKind.REGISTRY_AUTH,
)
"""Composition order, lowest precedence first."""

REQUIRED_KINDS = frozenset({SourceKind.NAMED_SET, SourceKind.EXPLICIT})


@dataclass(frozen=True)
class NamedSetSource:
    """Named credential sets: store entries first, then files or URLs."""

    names: Sequence[str] = ()
    store: Optional[CredentialStore] = None

    kind: ClassVar[SourceKind] = SourceKind.NAMED_SET


@dataclass(frozen=True)
class ExplicitSource:
    """Literal ``key=value`` overrides."""

    pairs: Sequence[str] = ()

    kind: ClassVar[SourceKind] = SourceKind.EXPLICIT


@dataclass(frozen=True)
class AmbientEndpointSource:
    """Credential material of a connection profile (usually the target context)."""

    profile_name: str
    store: ProfileStore

    kind: ClassVar[SourceKind] = SourceKind.AMBIENT_ENDPOINT


@dataclass(frozen=True)
class RegistryAuthSource:
    """Registry auths, gathered only when *enabled*."""

    enabled: bool = False
    fetcher: Optional[RegistryAuthFetcher] = None

    kind: ClassVar[SourceKind] = SourceKind.REGISTRY_AUTH


CredentialSource = Union[
    NamedSetSource, ExplicitSource, AmbientEndpointSource, RegistryAuthSource
]


def is_required(source: CredentialSource) -> bool:
    return source.kind in REQUIRED_KINDS


# --- Handlers ---


def _resolve_named(name: str, store: Optional[CredentialStore]) -> CredentialSet:
    if store is not None and store.exists(name):
        logger.debug("Credential set '%s' found in store '%s'", name, store.context)
        return store.resolve_named_set(name)
    try:
        credential_set = load_credential_set_file(name)
    except NotFoundError as exc:
        raise CredentialSourceError(
            CredentialSourceErrorKind.UNKNOWN_CREDENTIAL_SET,
            f"Unknown credential set '{name}': not in the credential store "
            f"and not a readable file ({exc})",
            name=name,
        ) from exc
    logger.debug("Credential set '%s' loaded from file", name)
    return resolve_credential_set(credential_set)


def _produce_named_set(source: NamedSetSource) -> CredentialSet:
    result = CredentialSet()
    for name in source.names:
        for key, value in _resolve_named(name, source.store).credentials.items():
            result.set(key, value)
    return result


def _produce_explicit(source: ExplicitSource) -> CredentialSet:
    # Parse everything before producing so a bad entry contributes nothing.
    parsed: list[tuple[str, str]] = []
    for raw in source.pairs:
        key, sep, value = raw.partition("=")
        if not sep or not key:
            raise CredentialSourceError(
                CredentialSourceErrorKind.MALFORMED_OVERRIDE,
                f"Failed to parse '{raw}' as a credential name=value",
                raw=raw,
            )
        parsed.append((key, value))

    result = CredentialSet()
    for key, value in parsed:
        result.set(key, value)
    return result


def _produce_ambient_endpoint(source: AmbientEndpointSource) -> CredentialSet:
    result = CredentialSet()
    if not source.profile_name:
        return result
    profile = source.store.lookup(source.profile_name)
    if profile.has_credential_material():
        result.set(AMBIENT_CONTEXT_KEY, profile.credential_material())
    else:
        logger.debug("Context '%s' has no credential material", source.profile_name)
    return result


def _produce_registry_auth(source: RegistryAuthSource) -> CredentialSet:
    result = CredentialSet()
    if not source.enabled:
        return result
    if source.fetcher is None:
        raise RegistryAuthError("Registry auth requested but no auth source is configured")
    entries = source.fetcher.fetch()
    result.registry_auth = dict(entries)
    if entries:
        result.set(
            REGISTRY_CREDS_KEY,
            {
                host: entry.model_dump(mode="json", exclude_none=True)
                for host, entry in entries.items()
            },
        )
    return result


_HANDLERS: dict[SourceKind, Callable[..., CredentialSet]] = {
    SourceKind.NAMED_SET: _produce_named_set,
    SourceKind.EXPLICIT: _produce_explicit,
    SourceKind.AMBIENT_ENDPOINT: _produce_ambient_endpoint,
    SourceKind.REGISTRY_AUTH: _produce_registry_auth,
}


def produce(source: CredentialSource) -> CredentialSet:
    """Run *source*'s handler and return its partial credential set.

    Raises:
        CredentialSourceError: From the required sources.
        InstallkitError: Any installkit error from the optional sources
            (store lookups, registry fetches); the composer downgrades these.
    """
    return _HANDLERS[source.kind](source)
