"""Connection profiles: storage, bootstrap import, and installer-context resolution.

- :class:`ProfileStore` -- named profiles on disk, with all-or-nothing import.
- :func:`import_bootstrap_profile` -- seed the store from packaged material.
- :func:`resolve_installer_context` -- pick the profile the installer runs on.
- :class:`Session` -- owns the process-wide active-profile pointer.
"""

from installkit.contexts.bootstrap import import_bootstrap_profile
from installkit.contexts.resolver import (
    InstallerContextRequest,
    Session,
    resolve_installer_context,
)
from installkit.contexts.store import ProfileStore

__all__ = [
    "InstallerContextRequest",
    "ProfileStore",
    "Session",
    "import_bootstrap_profile",
    "resolve_installer_context",
]
