"""Numeric process exit codes following `clig.dev <https://clig.dev/>`_ conventions.

Each constant maps to a specific error category and is referenced by the
corresponding :class:`~tagrequest.exceptions.TagRequestError` subclass.
Shell scripts wrapping the ``tagrequest`` command can inspect the exit code
to tell a refused connection from an HTTP error without parsing stderr.

Example::

    $ tagrequest request GET https://api.example.com/missing
    $ echo $?
    4   # EXIT_CLIENT_ERROR -- the server answered with a 4xx status
"""

EXIT_SUCCESS = 0
"""The command completed successfully."""

EXIT_GENERIC_FAILURE = 1
"""An unclassified error occurred."""

EXIT_INVALID_USAGE = 2
"""The command was invoked with invalid arguments or a request was misused."""

EXIT_CLIENT_ERROR = 4
"""The remote API answered with an HTTP 4xx status."""

EXIT_SERVER_ERROR = 5
"""The remote API answered with an HTTP 5xx (or other non-2xx) status."""

EXIT_NETWORK_ERROR = 6
"""A network-level error occurred (DNS failure, connection refused)."""

EXIT_TIMEOUT = 7
"""The configured request timeout elapsed."""

EXIT_ABORTED = 8
"""The request was cancelled through its abort signal."""
