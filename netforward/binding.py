import enum
import logging
import socket

from .config import Address
from .errors import BindError, ConnectError, SocketCreationError, SocketOptionError

logger = logging.getLogger(__name__)


class Role(enum.Enum):
    SOURCE = "source"
    DEST = "dest"


class Binding:
    """One UDP socket plus the address it is bound or connected to.

    Sources are bound to (address, port) and never connected. Dests are
    connected to (address, port) so a plain send always reaches that peer.
    The role stays ``None`` until bind_as_source or connect_as_dest runs.
    """

    def __init__(self, address, sock, role=None):
        self.address = address
        self.sock = sock
        self.role = role

    def __repr__(self):
        role = self.role.value if self.role else "unset"
        return f"Binding({role} {self.address})"

    def __str__(self):
        return str(self.address)

    def fileno(self):
        return self.sock.fileno()

    def read_into(self, buffer):
        """Read one datagram into ``buffer``; anything past its capacity is discarded"""
        return self.sock.recv_into(buffer)

    def write(self, payload):
        return self.sock.send(payload)

    def local_address(self):
        return self.sock.getsockname()

    def peer_address(self):
        if self.role is not Role.DEST:
            return ("none", 0)
        return self.sock.getpeername()

    def describe(self, name):
        self_host, self_port = self.local_address()[:2]
        peer_host, peer_port = self.peer_address()[:2]
        return f"socket {name}: self {self_host}:{self_port} peer {peer_host}:{peer_port}"

    def close(self):
        self.sock.close()


def create_binding(address: Address, socket_factory=socket.socket) -> Binding:
    """Allocate a UDP socket for ``address`` with broadcast sends enabled.

    Broadcast is enabled whatever the eventual role, and a platform that
    refuses the option is a fatal error rather than something to skip.
    """
    try:
        sock = socket_factory(socket.AF_INET, socket.SOCK_DGRAM)
    except OSError as e:
        raise SocketCreationError(f"socket creation for {address.host}", e) from e

    try:
        sock.setsockopt(socket.SOL_SOCKET, socket.SO_BROADCAST, 1)
    except OSError as e:
        sock.close()
        raise SocketOptionError(f"setsockopt SO_BROADCAST for {address.host}", e) from e

    logger.debug(f"Created UDP socket for {address.host} with SO_BROADCAST set")
    return Binding(address, sock)


def bind_as_source(binding: Binding, port: int) -> None:
    binding.address = Address(binding.address.host, port)
    try:
        binding.sock.bind(binding.address.sockaddr)
    except OSError as e:
        raise BindError(f"source binding {binding.address}", e) from e
    binding.role = Role.SOURCE
    logger.debug(f"Bound source socket to {binding.address}")


def connect_as_dest(binding: Binding, port: int) -> None:
    binding.address = Address(binding.address.host, port)
    try:
        binding.sock.connect(binding.address.sockaddr)
    except OSError as e:
        raise ConnectError(f"dest connect {binding.address}", e) from e
    binding.role = Role.DEST
    logger.debug(f"Connected dest socket to {binding.address}")
