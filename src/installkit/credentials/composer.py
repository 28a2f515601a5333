"""Merge credential sources into one credential set.

Sources run in the fixed order of
:data:`~installkit.credentials.sources.PRECEDENCE` no matter how they are
passed in: named sets, then explicit overrides, then the ambient endpoint,
then registry auth. A later source overwrites keys written by an earlier
one, and every overwrite is reported as a ``collision`` warning.

A failing required source (named sets, explicit overrides) aborts
composition with :class:`~installkit.exceptions.CompositionError`. A
failing optional source is reported as a ``source_failure`` warning and
contributes nothing.

Warnings and log lines name keys and sources only, never values.
"""

from __future__ import annotations

import logging
from typing import Iterable

from installkit.credentials.sources import (
    PRECEDENCE,
    CredentialSource,
    is_required,
    produce,
)
from installkit.exceptions import CompositionError, InstallkitError
from installkit.models import CompositionWarning, CredentialSet, WarningKind

logger = logging.getLogger(__name__)


def _collision(key: str, previous: str, new: str) -> CompositionWarning:
    logger.warning("Credential '%s' from %s overrides the value from %s", key, new, previous)
    return CompositionWarning(
        kind=WarningKind.COLLISION,
        key=key,
        previous_source=previous,
        new_source=new,
        message=f"credential '{key}' from {previous} overridden by {new}",
    )


def _source_failure(label: str, exc: Exception) -> CompositionWarning:
    logger.warning("Optional credential source %s failed: %s", label, exc)
    return CompositionWarning(
        kind=WarningKind.SOURCE_FAILURE,
        new_source=label,
        message=f"{label} skipped: {exc}",
    )


def compose(
    sources: Iterable[CredentialSource],
) -> tuple[CredentialSet, list[CompositionWarning]]:
    """Run every source in precedence order and merge the results.

    Args:
        sources: Any mix of credential sources. Sources of the same kind keep
            their relative order.

    Returns:
        The merged :class:`CredentialSet` and the warnings recorded along the
        way.

    Raises:
        CompositionError: Wrapping the first required-source failure.
    """
    ordered = sorted(sources, key=lambda s: PRECEDENCE.index(s.kind))
    result = CredentialSet()
    warnings: list[CompositionWarning] = []
    key_owner: dict[str, str] = {}
    host_owner: dict[str, str] = {}

    for source in ordered:
        label = source.kind.value
        try:
            partial = produce(source)
        except InstallkitError as exc:
            if is_required(source):
                raise CompositionError(label, exc) from exc
            warnings.append(_source_failure(label, exc))
            continue
        except Exception as exc:
            if is_required(source):
                raise
            warnings.append(_source_failure(label, exc))
            continue

        for key, value in partial.credentials.items():
            if key in key_owner:
                warnings.append(_collision(key, key_owner[key], label))
            result.set(key, value)
            key_owner[key] = label

        for host, entry in partial.registry_auth.items():
            if host in host_owner:
                warnings.append(_collision(host, host_owner[host], label))
            result.registry_auth[host] = entry
            host_owner[host] = label

        logger.debug("Credential source %s contributed %d key(s)", label, len(partial))

    return result, warnings
