"""Navigator Relay exceptions.

Per-request failures (unknown session, missing credential, store or API
errors) are raised as ``RelayError`` subclasses and translated into
structured responses at the transport and tool boundaries.
"""


class RelayError(Exception):
    """Base class for all relay errors."""


class MissingCredential(RelayError):
    """Connection attempt without a bearer credential."""


class SessionNotFound(RelayError):
    """No live connection is registered under the given session id."""

    def __init__(self, session_id: str):
        super().__init__(f"No transport found for sessionId {session_id}")
        self.session_id = session_id


class ConnectionClosed(RelayError):
    """Delivery attempted on a connection handle that was already closed."""


class StoreError(RelayError):
    """The external credential store could not complete an operation."""


class ToolNotFound(RelayError):
    """A tool call named a tool that is not in the catalog."""

    def __init__(self, name: str):
        super().__init__(f"Tool {name} not found")
        self.name = name


class ApiError(RelayError):
    """The IndexMeNow API returned an error or could not be reached."""

    def __init__(self, message: str, status: int | None = None):
        super().__init__(message)
        self.status = status
