"""Numeric process exit codes for the ``lineauth`` command line tool.

Each constant maps to a specific error category and is referenced by the
corresponding :class:`~lineauth.exceptions.LineAuthError` subclass.
Shell wrappers can inspect the exit code to determine the failure class
without parsing stderr.

Example::

    $ lineauth authorize-url
    $ echo $?
    4   # EXIT_CONFIG_ERROR -- no channel ID or secret configured
"""

EXIT_SUCCESS = 0
"""The command completed successfully."""

EXIT_GENERIC_FAILURE = 1
"""An unclassified error occurred."""

EXIT_INVALID_USAGE = 2
"""The command was invoked with invalid arguments or missing required parameters."""

EXIT_AUTH_FAILURE = 3
"""The authorization was denied, replayed, or could not be verified."""

EXIT_CONFIG_ERROR = 4
"""The channel configuration is missing or invalid."""

EXIT_PROVIDER_ERROR = 5
"""LINE's token or profile endpoint failed or returned an unusable response."""

EXIT_STORE_ERROR = 6
"""The verifier store backend failed."""
