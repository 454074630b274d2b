"""Relay UDP datagrams, broadcasts included, between network segments."""

from .binding import Binding, Role, bind_as_source, connect_as_dest, create_binding
from .config import Address, RelayConfiguration
from .engine import BUFFER_SIZE, EngineState, RelayEngine, RelayStats, run
from .errors import (
    BindError,
    ConfigurationError,
    ConnectError,
    ReadError,
    ReadinessWaitError,
    RelayError,
    ShortWriteError,
    SocketCreationError,
    SocketOptionError,
)
from .multiplexer import MultiSourceWait, SingleSourceWait, make_multiplexer

__version__ = "0.1.0"
