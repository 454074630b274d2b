"""Fatal error taxonomy for the relay.

Every error carries a short ``reason`` naming the step that failed and,
where the platform reported one, the underlying exception as ``cause``.
"""


class RelayError(Exception):
    """Base class for every fatal relay condition"""

    def __init__(self, reason, cause=None):
        super().__init__(reason)
        self.reason = reason
        self.cause = cause

    @property
    def errno(self):
        return getattr(self.cause, 'errno', None)

    def __str__(self):
        if isinstance(self.cause, OSError) and self.cause.errno is not None:
            return f"{self.reason}: ({self.cause.errno}) {self.cause.strerror}"
        if self.cause is not None:
            return f"{self.reason}: {self.cause}"
        return self.reason


class ConfigurationError(RelayError):
    pass


class SocketCreationError(RelayError):
    pass


class SocketOptionError(RelayError):
    pass


class BindError(RelayError):
    pass


class ConnectError(RelayError):
    pass


class ReadinessWaitError(RelayError):
    pass


class ReadError(RelayError):
    pass


class ShortWriteError(RelayError):
    """A destination accepted fewer bytes than the datagram held, or refused it"""
