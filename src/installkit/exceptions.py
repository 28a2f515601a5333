"""Exception hierarchy for installkit.

All exceptions inherit from :class:`InstallkitError`, which carries an
``exit_code`` attribute mapped to a constant from :mod:`installkit.exit_codes`.
The top-level error handler in :func:`installkit.app.main` catches
``InstallkitError`` and exits with the appropriate code, while unexpected
exceptions produce a crash log and exit with :data:`EXIT_GENERIC_FAILURE`.

Errors raised by the core carry a ``kind`` enum plus the offending
identifier, so the CLI layer can render a precise message without parsing
strings.

Subclass hierarchy::

    InstallkitError (exit 1)
    +-- InvalidUsageError      (exit 2)
    +-- NotFoundError          (exit 4)
    +-- ConfigError            (exit 1)
    +-- ProfileImportError     (exit 8)
    +-- CredentialSourceError  (exit 9)
    +-- CompositionError       (exit 9)
    +-- ContextError           (exit 11)
    +-- RegistryAuthError      (exit 1)
"""

from __future__ import annotations

import enum
from typing import Optional

from installkit.exit_codes import (
    EXIT_CONTEXT_ERROR,
    EXIT_CREDENTIAL_ERROR,
    EXIT_GENERIC_FAILURE,
    EXIT_IMPORT_FAILURE,
    EXIT_INVALID_USAGE,
    EXIT_NOT_FOUND,
)


class InstallkitError(Exception):
    """Base exception for all installkit errors.

    Every subclass sets a class-level ``exit_code`` corresponding to one of
    the constants in :mod:`installkit.exit_codes`. The entry point catches
    this exception type and calls ``sys.exit(exc.exit_code)``.

    Args:
        message: Human-readable error description printed to stderr.
        exit_code: Optional override for the class-level exit code.
    """

    exit_code: int = EXIT_GENERIC_FAILURE

    def __init__(self, message: str, exit_code: int | None = None):
        super().__init__(message)
        if exit_code is not None:
            self.exit_code = exit_code


class InvalidUsageError(InstallkitError):
    """Raised for invalid CLI arguments or malformed names."""

    exit_code = EXIT_INVALID_USAGE


class NotFoundError(InstallkitError):
    """Raised when a store lookup (profile or credential set) finds nothing."""

    exit_code = EXIT_NOT_FOUND


class ConfigError(InstallkitError):
    """Raised for configuration problems (invalid JSON, unreadable config)."""

    exit_code = EXIT_GENERIC_FAILURE


# --- Import ---


class ImportErrorKind(str, enum.Enum):
    SOURCE_UNAVAILABLE = "source_unavailable"
    INVALID_MATERIAL = "invalid_material"
    WRITE_ERROR = "write_error"


class ProfileImportError(InstallkitError):
    """Raised when packaged profile material cannot be imported into the store.

    Always fatal: without an imported profile the installer has no endpoint.
    """

    exit_code = EXIT_IMPORT_FAILURE

    def __init__(self, kind: ImportErrorKind, profile_name: str, message: str):
        super().__init__(message)
        self.kind = kind
        self.profile_name = profile_name


# --- Credential sources ---


class CredentialSourceErrorKind(str, enum.Enum):
    UNKNOWN_CREDENTIAL_SET = "unknown_credential_set"
    MALFORMED_OVERRIDE = "malformed_override"
    INVALID_CREDENTIAL_SET = "invalid_credential_set"
    UNRESOLVED_VALUE = "unresolved_value"


class CredentialSourceError(InstallkitError):
    """Raised by a credential source that cannot produce its contribution.

    Attributes:
        kind: What went wrong.
        name: The credential-set name or credential key involved, if any.
        raw: The raw override string for ``MALFORMED_OVERRIDE``.
    """

    exit_code = EXIT_CREDENTIAL_ERROR

    def __init__(
        self,
        kind: CredentialSourceErrorKind,
        message: str,
        name: Optional[str] = None,
        raw: Optional[str] = None,
    ):
        super().__init__(message)
        self.kind = kind
        self.name = name
        self.raw = raw


class CompositionError(InstallkitError):
    """Raised when a required credential source fails during composition.

    The first required failure is available as :attr:`source_error` and as
    ``__cause__``. It is usually a :class:`CredentialSourceError`, but any
    installkit error raised by a required source (an invalid store name, a
    corrupt store entry) is wrapped the same way.
    """

    exit_code = EXIT_CREDENTIAL_ERROR

    def __init__(self, source: str, source_error: InstallkitError):
        super().__init__(f"Credential source '{source}' failed: {source_error}")
        self.source = source
        self.source_error = source_error


class RegistryAuthError(InstallkitError):
    """Raised when registry authentication entries cannot be gathered."""


# --- Contexts ---


class ContextErrorKind(str, enum.Enum):
    NOT_FOUND = "not_found"
    RACE_OR_MISSING = "race_or_missing"


class ContextError(InstallkitError):
    """Raised when an installer context cannot be resolved or activated."""

    exit_code = EXIT_CONTEXT_ERROR

    def __init__(self, kind: ContextErrorKind, name: str, message: str):
        super().__init__(message)
        self.kind = kind
        self.name = name
