"""Installer-context resolution and the process-scoped active pointer.

Two different profiles matter during an install:

* the **target context** -- where the bundle is installed into, and
* the **installer context** -- where the installer process itself runs.

:func:`resolve_installer_context` is a pure function of its inputs (plus a
store lookup) that picks the installer context. :class:`Session` owns the
active-profile pointer for the process; :meth:`Session.set_active` is its
only mutator and validates before it writes, so a failed call leaves the
previous value untouched.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Optional

from installkit.contexts.store import ProfileStore
from installkit.exceptions import (
    ConfigError,
    ContextError,
    ContextErrorKind,
    InvalidUsageError,
    NotFoundError,
)
from installkit.models import DEFAULT_CONTEXT_NAME

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class InstallerContextRequest:
    explicit_override: str = ""
    current_active: str = ""
    default_name: str = DEFAULT_CONTEXT_NAME


def resolve_installer_context(
    explicit_override: str,
    current_active: str,
    default_name: str,
    store: ProfileStore,
) -> str:
    """Decide which profile the installer runs under.

    * A non-empty *explicit_override* is returned if it equals
      *default_name* (which is always assumed present) or exists in
      *store*; otherwise :class:`ContextError` ``NOT_FOUND`` is raised.
    * An empty override returns *current_active* unchanged, without
      validation. If that is empty too, *default_name* is returned.

    Raises:
        ContextError: If the explicit override does not exist.
    """
    if not explicit_override:
        return current_active or default_name

    if explicit_override == default_name:
        return explicit_override

    try:
        store.lookup(explicit_override)
    except (NotFoundError, InvalidUsageError, ConfigError) as exc:
        raise ContextError(
            ContextErrorKind.NOT_FOUND,
            explicit_override,
            f"Installer context '{explicit_override}' not found: {exc}",
        ) from exc
    return explicit_override


class Session:
    """Process-scoped state shared by every installer operation.

    Args:
        store: The connection profile store.
        active: Name of the profile active when the process started. It is
            trusted as-is; it was validated when it became current.
        default_name: Reserved name that always resolves.

    Attributes:
        installer_context: Last resolved installer context, if any.
        target_context: Context the bundle is installed into, if captured.
    """

    def __init__(
        self,
        store: ProfileStore,
        active: str = DEFAULT_CONTEXT_NAME,
        default_name: str = DEFAULT_CONTEXT_NAME,
    ) -> None:
        self.store = store
        self.default_name = default_name
        self._active = active or default_name
        self.installer_context: Optional[str] = None
        self.target_context: Optional[str] = None

    @property
    def active(self) -> str:
        """Name of the currently active profile."""
        return self._active

    def resolve(self, request: InstallerContextRequest) -> str:
        """Resolve *request* and remember the result as :attr:`installer_context`."""
        name = resolve_installer_context(
            request.explicit_override,
            request.current_active,
            request.default_name,
            self.store,
        )
        self.installer_context = name
        return name

    def set_active(self, name: str) -> None:
        """Make *name* the active profile.

        The name is looked up first; the pointer changes only after the
        lookup succeeds.

        Raises:
            ContextError: ``RACE_OR_MISSING`` if *name* is not in the store.
        """
        if name != self.default_name:
            try:
                self.store.lookup(name)
            except (NotFoundError, InvalidUsageError, ConfigError) as exc:
                raise ContextError(
                    ContextErrorKind.RACE_OR_MISSING,
                    name,
                    f"Cannot activate context '{name}': {exc}",
                ) from exc

        previous = self._active
        self._active = name
        logger.debug("Active context changed: %s -> %s", previous, name)
