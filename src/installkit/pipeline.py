"""Resolve -> compose -> activate: everything an installer run needs up front.

:func:`prepare_installation` keeps the target context and the installer
context apart. The target context is the session's active profile on entry;
ambient endpoint credentials and named credential sets are read for it. The
installer context is resolved separately and activated only after the
credential set has been composed.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from pathlib import Path
from typing import Optional, Sequence

from installkit.contexts.resolver import InstallerContextRequest, Session
from installkit.credentials.composer import compose
from installkit.credentials.registry import FileRegistryAuthFetcher, RegistryAuthFetcher
from installkit.credentials.sources import (
    AmbientEndpointSource,
    CredentialSource,
    ExplicitSource,
    NamedSetSource,
    RegistryAuthSource,
)
from installkit.credentials.store import CredentialStore
from installkit.models import CompositionWarning, CredentialSet

logger = logging.getLogger(__name__)


@dataclass
class CredentialOptions:
    """Everything a caller can ask for when building a credential set."""

    installer_context: str = ""
    credential_sets: Sequence[str] = ()
    credentials: Sequence[str] = ()
    with_registry_auth: bool = False
    registry_auth_file: Optional[Path] = None
    credentials_root: Optional[Path] = None


@dataclass
class PreparedInstallation:
    installer_context: str
    target_context: str
    credentials: CredentialSet
    warnings: list[CompositionWarning] = field(default_factory=list)


def build_sources(
    session: Session,
    options: CredentialOptions,
    target_context: str,
    fetcher: Optional[RegistryAuthFetcher] = None,
) -> list[CredentialSource]:
    """Build the four credential sources for *target_context*."""
    if fetcher is None and options.with_registry_auth and options.registry_auth_file:
        fetcher = FileRegistryAuthFetcher(options.registry_auth_file)
    return [
        NamedSetSource(
            tuple(options.credential_sets),
            CredentialStore(target_context, root=options.credentials_root),
        ),
        ExplicitSource(tuple(options.credentials)),
        AmbientEndpointSource(target_context, session.store),
        RegistryAuthSource(options.with_registry_auth, fetcher),
    ]


def prepare_installation(
    session: Session,
    options: CredentialOptions,
    fetcher: Optional[RegistryAuthFetcher] = None,
) -> PreparedInstallation:
    """Resolve the installer context, compose credentials, then activate.

    Raises:
        ContextError: If the installer context cannot be resolved or
            activated. Resolution happens before any credential work.
        CompositionError: If a required credential source fails.
    """
    target = session.active
    session.target_context = target

    installer = session.resolve(
        InstallerContextRequest(
            explicit_override=options.installer_context,
            current_active=target,
            default_name=session.default_name,
        )
    )
    logger.debug("Target context: %s, installer context: %s", target, installer)

    credentials, warnings = compose(build_sources(session, options, target, fetcher))
    session.set_active(installer)

    return PreparedInstallation(
        installer_context=installer,
        target_context=target,
        credentials=credentials,
        warnings=warnings,
    )
