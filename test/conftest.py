import errno
import itertools
import socket
import sys
from collections import deque

import pytest

from netforward import RelayConfiguration

_fds = itertools.count(100)


class FakeSocket:
    """Stands in for a UDP socket; scripted datagrams in, recorded sends out"""

    def __init__(self, datagrams=(), fail=(), send_limit=None):
        self.fd = next(_fds)
        self.datagrams = deque(datagrams)
        self.fail = set(fail)
        self.send_limit = send_limit
        self.options = {}
        self.bound = None
        self.peer = None
        self.sent = []
        self.closed = False

    def _check(self, op, code=errno.EINVAL):
        if op in self.fail:
            raise OSError(code, f"{op} failed")

    def fileno(self):
        return self.fd

    def setsockopt(self, level, option, value):
        self._check('setsockopt', errno.ENOPROTOOPT)
        self.options[(level, option)] = value

    def bind(self, addr):
        self._check('bind', errno.EADDRINUSE)
        self.bound = addr

    def connect(self, addr):
        self._check('connect', errno.ENETUNREACH)
        self.peer = addr

    def getsockname(self):
        return self.bound or ('0.0.0.0', 40000)

    def getpeername(self):
        return self.peer

    def recv_into(self, buffer):
        if not self.datagrams:
            raise OSError(errno.EBADF, "no more scripted datagrams")
        data = self.datagrams.popleft()
        n = min(len(buffer), len(data))
        buffer[:n] = data[:n]
        return n

    def send(self, data):
        self._check('send', errno.ECONNREFUSED)
        payload = bytes(data)
        if self.send_limit is not None:
            payload = payload[:self.send_limit]
        self.sent.append(payload)
        return len(payload)

    def close(self):
        self.closed = True


class FakeSocketFactory:
    """Hands out prepared FakeSockets in creation order"""

    def __init__(self, *sockets, fail_creation_at=None):
        self.sockets = list(sockets)
        self.created = []
        self.fail_creation_at = fail_creation_at

    def __call__(self, family, kind):
        assert family == socket.AF_INET
        assert kind == socket.SOCK_DGRAM
        if self.fail_creation_at == len(self.created):
            raise OSError(errno.EMFILE, "Too many open files")
        sock = self.sockets[len(self.created)] if len(self.created) < len(self.sockets) else FakeSocket()
        self.created.append(sock)
        return sock


@pytest.fixture
def make_config():
    def _make(sources=('10.0.0.1',), dests=('10.0.1.255',), port=5000, **extra):
        return RelayConfiguration.create(port=port, sources=list(sources), dests=list(dests), **extra)
    return _make


loopback_only = pytest.mark.skipif(
    not sys.platform.startswith('linux'),
    reason="needs the whole 127.0.0.0/8 range on loopback"
)


@pytest.fixture
def free_port():
    with socket.socket(socket.AF_INET, socket.SOCK_DGRAM) as probe:
        probe.bind(('127.0.0.1', 0))
        return probe.getsockname()[1]


@pytest.fixture
def udp_endpoint():
    """Factory for bound UDP sockets used as traffic generators and sinks"""
    opened = []

    def _open(host='127.0.0.1', port=0):
        sock = socket.socket(socket.AF_INET, socket.SOCK_DGRAM)
        sock.settimeout(2.0)
        sock.bind((host, port))
        opened.append(sock)
        return sock

    yield _open
    for sock in opened:
        sock.close()
