"""Registry authentication sources.

A :class:`RegistryAuthFetcher` returns the registry auths known locally,
keyed by registry host. The built-in :class:`FileRegistryAuthFetcher` reads
a docker-style ``config.json`` (the ``auths`` section) or a bare
``{host: entry}`` map such as the one packaged inside an installer image.

Fetch failures raise :class:`~installkit.exceptions.RegistryAuthError`; the
composer downgrades them to warnings.
"""

from __future__ import annotations

import json
from abc import ABC, abstractmethod
from pathlib import Path

from pydantic import ValidationError

from installkit.exceptions import RegistryAuthError
from installkit.models import AuthEntry

_DOCKER_CONFIG_KEYS = frozenset(
    {"credsStore", "credHelpers", "currentContext", "HttpHeaders", "proxies", "plugins"}
)


class RegistryAuthFetcher(ABC):
    """Abstract provider of registry auth entries."""

    @abstractmethod
    def fetch(self) -> dict[str, AuthEntry]:
        """Return auth entries keyed by registry host.

        Raises:
            RegistryAuthError: If the entries cannot be gathered.
        """


class FileRegistryAuthFetcher(RegistryAuthFetcher):
    """Read registry auths from a JSON file on disk.

    A missing file is an error rather than an empty result: the caller asked
    for registry auth explicitly.

    Args:
        path: Location of the ``config.json`` or bare auth map.
    """

    def __init__(self, path: Path) -> None:
        self._path = path

    @property
    def path(self) -> Path:
        return self._path

    def fetch(self) -> dict[str, AuthEntry]:
        try:
            text = self._path.read_text(encoding="utf-8")
        except OSError as exc:
            raise RegistryAuthError(
                f"Cannot read registry auth file {self._path}: {exc.strerror or exc}"
            ) from exc
        except UnicodeDecodeError as exc:
            raise RegistryAuthError(
                f"Registry auth file {self._path} is not valid UTF-8"
            ) from exc
        try:
            data = json.loads(text)
        except json.JSONDecodeError as exc:
            raise RegistryAuthError(
                f"Invalid JSON in registry auth file {self._path}: {exc}"
            ) from exc
        if not isinstance(data, dict):
            raise RegistryAuthError(
                f"Registry auth file {self._path} must contain a JSON object"
            )

        if "auths" in data:
            auths = data["auths"]
        elif _DOCKER_CONFIG_KEYS & data.keys():
            # docker config without inline auths (helpers only)
            auths = {}
        else:
            auths = data
        if not isinstance(auths, dict):
            raise RegistryAuthError(f"'auths' in {self._path} must be an object")

        entries: dict[str, AuthEntry] = {}
        for host, raw in auths.items():
            if not isinstance(raw, dict):
                raise RegistryAuthError(
                    f"Registry auth entry for '{host}' must be an object"
                )
            try:
                entries[host] = AuthEntry.model_validate(raw)
            except ValidationError as exc:
                raise RegistryAuthError(
                    f"Invalid registry auth entry for '{host}': "
                    f"{exc.error_count()} validation error(s)"
                ) from exc
        return entries
