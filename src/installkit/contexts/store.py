"""Connection profile store backed by one JSON file per profile.

Profiles live in ``<config_dir>/contexts/<name>.json`` and are written
atomically with ``0o600`` permissions since they carry TLS material and
tokens. The reserved ``default`` profile is always available: when no file
exists for it, :meth:`ProfileStore.lookup` synthesises one pointing at the
local endpoint (``$INSTALLKIT_HOST`` or the local docker socket).

Importing a profile from a serialised blob is all-or-nothing: the document
is parsed and validated in full before anything touches the disk.
"""

from __future__ import annotations

import json
import logging
import os
import re
from pathlib import Path
from typing import IO, Optional

import yaml
from pydantic import ValidationError

from installkit.config import atomic_write, describe_yaml_error, get_contexts_dir
from installkit.exceptions import (
    ConfigError,
    ImportErrorKind,
    InvalidUsageError,
    NotFoundError,
    ProfileImportError,
)
from installkit.models import DEFAULT_CONTEXT_NAME, ConnectionProfile, EndpointMeta

logger = logging.getLogger(__name__)

DEFAULT_LOCAL_HOST = "unix:///var/run/docker.sock"

_NAME_RE = re.compile(r"^[a-zA-Z0-9][a-zA-Z0-9_.+-]*$")


def validate_profile_name(name: str) -> None:
    """Reject names that are empty or could escape the store directory."""
    if not _NAME_RE.match(name):
        raise InvalidUsageError(
            f"Invalid context name '{name}': must match {_NAME_RE.pattern}"
        )


def default_profile() -> ConnectionProfile:
    """Build the implicit ``default`` profile for the local endpoint."""
    host = os.environ.get("INSTALLKIT_HOST") or DEFAULT_LOCAL_HOST
    return ConnectionProfile(
        name=DEFAULT_CONTEXT_NAME,
        description="Current local endpoint",
        endpoint=EndpointMeta(host=host),
    )


def _unparseable(name: str, reason: str) -> ProfileImportError:
    return ProfileImportError(
        ImportErrorKind.INVALID_MATERIAL,
        name,
        f"Cannot parse context material for '{name}': {reason}",
    )


class ProfileStore:
    """Read/write connection profiles by name.

    Args:
        root: Directory holding the profile files. Defaults to
            :func:`~installkit.config.get_contexts_dir`.

    Example::

        store = ProfileStore()
        with open("context.json") as fh:
            store.import_profile("installer", fh)
        profile = store.lookup("installer")
    """

    def __init__(self, root: Optional[Path] = None) -> None:
        self._root = root if root is not None else get_contexts_dir()

    @property
    def root(self) -> Path:
        return self._root

    def _path(self, name: str) -> Path:
        validate_profile_name(name)
        return self._root / f"{name}.json"

    def exists(self, name: str) -> bool:
        """Return ``True`` if *name* can be looked up (the default always can)."""
        if name == DEFAULT_CONTEXT_NAME:
            return True
        return self._path(name).is_file()

    def lookup(self, name: str) -> ConnectionProfile:
        """Load a profile by name.

        Raises:
            NotFoundError: If no profile with that name is stored.
            ConfigError: If the stored file is corrupt.
        """
        path = self._path(name)
        if not path.is_file():
            if name == DEFAULT_CONTEXT_NAME:
                return default_profile()
            raise NotFoundError(f"Context '{name}' not found")
        try:
            data = json.loads(path.read_text(encoding="utf-8"))
            return ConnectionProfile.model_validate(data)
        except ValidationError as exc:
            raise ConfigError(
                f"Invalid context '{name}' at {path}: {exc.error_count()} validation error(s)"
            ) from exc
        except (json.JSONDecodeError, ValueError) as exc:
            raise ConfigError(f"Invalid context '{name}' at {path}: {exc}") from exc

    def put(self, profile: ConnectionProfile) -> None:
        """Write *profile* under its name, replacing any existing file.

        Raises:
            OSError: If the file cannot be written.
        """
        path = self._path(profile.name)
        data = profile.model_dump(mode="json", exclude_none=True)
        atomic_write(path, json.dumps(data, indent=2) + "\n", mode=0o600)
        logger.debug("Stored context '%s' at %s", profile.name, path)

    def import_profile(self, name: str, stream: IO[str]) -> ConnectionProfile:
        """Parse a serialised profile from *stream* and store it as *name*.

        The document may be JSON or YAML. Any ``name`` it carries is ignored
        in favour of *name*.

        Raises:
            ProfileImportError: ``INVALID_MATERIAL`` if the document does not
                describe a profile, ``WRITE_ERROR`` if it cannot be stored.
        """
        validate_profile_name(name)
        try:
            data = yaml.safe_load(stream.read())
        except yaml.YAMLError as exc:
            raise _unparseable(name, describe_yaml_error(exc)) from exc
        except UnicodeDecodeError as exc:
            raise _unparseable(name, "not valid UTF-8") from exc
        if not isinstance(data, dict):
            raise ProfileImportError(
                ImportErrorKind.INVALID_MATERIAL,
                name,
                f"Context material for '{name}' must be a JSON/YAML object",
            )

        data = {**data, "name": name}
        try:
            profile = ConnectionProfile.model_validate(data)
        except ValidationError as exc:
            raise ProfileImportError(
                ImportErrorKind.INVALID_MATERIAL,
                name,
                f"Invalid context material for '{name}': "
                f"{exc.error_count()} validation error(s)",
            ) from exc

        try:
            self.put(profile)
        except OSError as exc:
            raise ProfileImportError(
                ImportErrorKind.WRITE_ERROR,
                name,
                f"Cannot write context '{name}': {exc}",
            ) from exc
        return profile

    def list_names(self) -> list[str]:
        """Return stored profile names sorted alphabetically."""
        return sorted(p.stem for p in self._root.glob("*.json") if p.is_file())

    def remove(self, name: str) -> None:
        """Delete a stored profile.

        Raises:
            NotFoundError: If no profile with that name is stored.
        """
        path = self._path(name)
        if not path.is_file():
            raise NotFoundError(f"Context '{name}' not found")
        path.unlink()
