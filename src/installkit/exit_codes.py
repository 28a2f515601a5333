"""Numeric process exit codes following `clig.dev <https://clig.dev/>`_ conventions.

Each constant maps to a specific error category and is referenced by the
corresponding :class:`~installkit.exceptions.InstallkitError` subclass.
Wrapper scripts can inspect the exit code to tell a bad credential override
apart from a missing installer context without parsing stderr.

Example::

    $ installkit credentials resolve --credential bad-entry
    $ echo $?
    9   # EXIT_CREDENTIAL_ERROR -- an override could not be parsed
"""

EXIT_SUCCESS = 0
"""The command completed successfully."""

EXIT_GENERIC_FAILURE = 1
"""An unclassified error occurred."""

EXIT_INVALID_USAGE = 2
"""The command was invoked with invalid arguments or missing required parameters."""

EXIT_NOT_FOUND = 4
"""A named profile or credential set does not exist."""

EXIT_IMPORT_FAILURE = 8
"""The bootstrap connection profile could not be imported."""

EXIT_CREDENTIAL_ERROR = 9
"""A required credential source failed, so no credential set was produced."""

EXIT_CONTEXT_ERROR = 11
"""The installer context could not be resolved or activated."""
