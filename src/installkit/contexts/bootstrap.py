"""One-time import of the packaged installer profile.

An installer image ships the connection profile it must talk to, plus the
registry auths it may need, at fixed locations. :func:`import_bootstrap_profile`
seeds the :class:`~installkit.contexts.store.ProfileStore` from that
material. It does not activate the profile; callers do that explicitly via
:meth:`~installkit.contexts.resolver.Session.set_active`.

Neither function logs or prints the material it reads.
"""

from __future__ import annotations

import logging
from pathlib import Path
from typing import Union

from installkit.contexts.store import ProfileStore
from installkit.credentials.registry import FileRegistryAuthFetcher
from installkit.exceptions import ImportErrorKind, ProfileImportError
from installkit.models import AuthEntry, ConnectionProfile

logger = logging.getLogger(__name__)

BOOTSTRAP_PROFILE_NAME = "installer"
BOOTSTRAP_PROFILE_PATH = "/cnab/app/credentials/context.json"
BOOTSTRAP_REGISTRY_AUTH_PATH = "/cnab/app/credentials/registry.json"


def import_bootstrap_profile(
    profile_name: str,
    material_path: Union[str, Path],
    store: ProfileStore,
) -> ConnectionProfile:
    """Import the profile stored at *material_path* into *store* as *profile_name*.

    Re-importing the same material overwrites the stored profile with an
    identical one.

    Args:
        profile_name: Name to store the profile under.
        material_path: Location of the packaged JSON/YAML profile document.
        store: Destination store.

    Returns:
        The imported profile, equal to what ``store.lookup(profile_name)``
        returns afterwards.

    Raises:
        ProfileImportError: ``SOURCE_UNAVAILABLE`` if the material cannot be
            read; ``INVALID_MATERIAL`` or ``WRITE_ERROR`` from the store.
    """
    path = Path(material_path)
    try:
        fh = path.open("r", encoding="utf-8")
    except OSError as exc:
        raise ProfileImportError(
            ImportErrorKind.SOURCE_UNAVAILABLE,
            profile_name,
            f"Cannot read context material at {path}: {exc.strerror or exc}",
        ) from exc

    with fh:
        profile = store.import_profile(profile_name, fh)

    logger.info("Imported context '%s' (%s)", profile_name, profile.endpoint.kind.value)
    return profile


def load_bootstrap_registry_auth(
    path: Union[str, Path] = BOOTSTRAP_REGISTRY_AUTH_PATH,
) -> dict[str, AuthEntry]:
    """Read the packaged registry auths shipped next to the profile material.

    Raises:
        RegistryAuthError: If the file is missing or malformed.
    """
    return FileRegistryAuthFetcher(Path(path)).fetch()
