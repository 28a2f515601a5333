"""Persistent store of named credential sets, scoped per target context.

Credential sets live in ``<data_dir>/credentials/<context>/<name>.json``.
Files are written atomically with ``0o600`` permissions. A stored set holds
*strategies* (literal value, environment variable, or file path), not
resolved secrets; :func:`resolve_credential_set` turns a set into concrete
values at install time.

See Also:
    :class:`~installkit.credentials.sources.NamedSetSource` -- consumes
    :meth:`CredentialStore.resolve_named_set`.
"""

from __future__ import annotations

import json
import os
import re
from pathlib import Path
from typing import Optional

from pydantic import ValidationError

from installkit.config import atomic_write, get_credentials_dir
from installkit.exceptions import (
    CredentialSourceError,
    CredentialSourceErrorKind,
    InvalidUsageError,
    NotFoundError,
)
from installkit.models import CredentialSet, CredentialSetFile, ValueSource

_NAME_RE = re.compile(r"^[a-zA-Z0-9][a-zA-Z0-9_.-]*$")


def _is_store_name(name: str) -> bool:
    return bool(_NAME_RE.match(name))


def resolve_value(key: str, source: ValueSource) -> str:
    """Resolve a single credential value from its source.

    Raises:
        CredentialSourceError: ``UNRESOLVED_VALUE`` if the environment
            variable is unset or the file cannot be read.
    """
    if source.value is not None:
        return source.value

    if source.env is not None:
        value = os.environ.get(source.env)
        if value is None:
            raise _unresolved(key, f"environment variable '{source.env}' is not set")
        return value

    assert source.path is not None  # ValueSource guarantees exactly one field
    try:
        path = Path(source.path).expanduser()
    except RuntimeError as exc:
        raise _unresolved(key, f"cannot expand {source.path}") from exc
    try:
        return path.read_text(encoding="utf-8")
    except OSError as exc:
        raise _unresolved(key, f"cannot read {path}: {exc.strerror or exc}") from exc
    except UnicodeDecodeError as exc:
        raise _unresolved(key, f"{path} is not valid UTF-8") from exc


def _unresolved(key: str, reason: str) -> CredentialSourceError:
    return CredentialSourceError(
        CredentialSourceErrorKind.UNRESOLVED_VALUE,
        f"Credential '{key}': {reason}",
        name=key,
    )


def resolve_credential_set(credential_set: CredentialSetFile) -> CredentialSet:
    """Resolve every strategy in *credential_set* into a :class:`CredentialSet`."""
    resolved = CredentialSet()
    for strategy in credential_set.credentials:
        resolved.set(strategy.name, resolve_value(strategy.name, strategy.source))
    return resolved


class CredentialStore:
    """Read/write named credential sets for a single target context.

    Args:
        context: The target context the sets belong to.
        root: Base directory; defaults to
            :func:`~installkit.config.get_credentials_dir`.

    Example::

        store = CredentialStore("production")
        store.save(CredentialSetFile(name="db", credentials=[...]))
        creds = store.resolve_named_set("db")
    """

    def __init__(self, context: str, root: Optional[Path] = None) -> None:
        if not _is_store_name(context):
            raise InvalidUsageError(f"Invalid context name '{context}'")
        self._context = context
        base = root if root is not None else get_credentials_dir()
        self._dir = base / context

    @property
    def context(self) -> str:
        return self._context

    @property
    def directory(self) -> Path:
        return self._dir

    def _path(self, name: str) -> Path:
        return self._dir / f"{name}.json"

    def exists(self, name: str) -> bool:
        """Return ``True`` if a set called *name* is stored.

        Names that could not be store entries (paths, URLs) are simply
        reported as absent.
        """
        return _is_store_name(name) and self._path(name).is_file()

    def save(self, credential_set: CredentialSetFile) -> None:
        """Persist *credential_set* under its own name, replacing any existing one.

        Raises:
            InvalidUsageError: If the set's name is not a valid store name.
            OSError: If the file cannot be written.
        """
        if not _is_store_name(credential_set.name):
            raise InvalidUsageError(f"Invalid credential set name '{credential_set.name}'")
        data = credential_set.model_dump(mode="json", exclude_none=True)
        atomic_write(
            self._path(credential_set.name), json.dumps(data, indent=2) + "\n", mode=0o600
        )

    def read(self, name: str) -> CredentialSetFile:
        """Load the stored set called *name*.

        Raises:
            NotFoundError: If no such set is stored.
            CredentialSourceError: ``INVALID_CREDENTIAL_SET`` if the file is
                corrupt.
        """
        if not self.exists(name):
            raise NotFoundError(
                f"Credential set '{name}' not found for context '{self._context}'"
            )
        path = self._path(name)
        try:
            data = json.loads(path.read_text(encoding="utf-8"))
            return CredentialSetFile.model_validate(data)
        except (json.JSONDecodeError, ValidationError) as exc:
            raise CredentialSourceError(
                CredentialSourceErrorKind.INVALID_CREDENTIAL_SET,
                f"Stored credential set '{name}' is corrupt: {path}",
                name=name,
            ) from exc

    def resolve_named_set(self, name: str) -> CredentialSet:
        """Read the stored set *name* and resolve its values."""
        return resolve_credential_set(self.read(name))

    def list_names(self) -> list[str]:
        if not self._dir.is_dir():
            return []
        return sorted(p.stem for p in self._dir.glob("*.json") if p.is_file())

    def delete(self, name: str) -> None:
        """Remove the stored set *name*.

        Raises:
            NotFoundError: If no such set is stored.
        """
        if not self.exists(name):
            raise NotFoundError(
                f"Credential set '{name}' not found for context '{self._context}'"
            )
        self._path(name).unlink()
