import enum
import logging
import select
import socket
from datetime import datetime

from .binding import bind_as_source, connect_as_dest, create_binding
from .errors import ReadError, RelayError, ShortWriteError
from .multiplexer import make_multiplexer

logger = logging.getLogger(__name__)

# Largest payload relayed; longer datagrams are truncated by the read
BUFFER_SIZE = 8192


class EngineState(enum.Enum):
    IDLE = "idle"
    SETUP_SOCKETS = "setup_sockets"
    SERVING = "serving"
    TERMINATED = "terminated"


class RelayStats:
    """Counters for forwarded traffic.

    Counters are keyed by binding; addresses are rendered only in snapshot().
    """

    def __init__(self):
        self.started = datetime.now()
        self.received = {}
        self.sent = {}

    def record_received(self, source, nbytes):
        entry = self.received.setdefault(source, {'datagrams': 0, 'bytes': 0})
        entry['datagrams'] += 1
        entry['bytes'] += nbytes

    def record_sent(self, dest, nbytes):
        entry = self.sent.setdefault(dest, {'datagrams': 0, 'bytes': 0})
        entry['datagrams'] += 1
        entry['bytes'] += nbytes

    def snapshot(self):
        received = {str(binding): dict(entry) for binding, entry in list(self.received.items())}
        sent = {str(binding): dict(entry) for binding, entry in list(self.sent.items())}
        return {
            'started': self.started.isoformat(),
            'received': received,
            'sent': sent,
            'datagrams_received': sum(entry['datagrams'] for entry in received.values()),
            'bytes_received': sum(entry['bytes'] for entry in received.values()),
            'datagrams_sent': sum(entry['datagrams'] for entry in sent.values()),
            'bytes_sent': sum(entry['bytes'] for entry in sent.values()),
        }


class RelayEngine:
    """Receives datagrams on every source and writes each one to every dest.

    Each datagram is fully fanned out before the next read, so datagrams
    from one source reach every dest in the order the source sent them.
    """

    def __init__(self, config, socket_factory=socket.socket, select_fn=select.select, stats=None):
        self.config = config
        self.socket_factory = socket_factory
        self.select_fn = select_fn
        self.stats = stats if stats is not None else RelayStats()
        self.state = EngineState.IDLE
        self.sources = []
        self.dests = []
        self.multiplexer = None
        self.buffer = bytearray(BUFFER_SIZE)

    def setup(self):
        """Open and configure every binding, sources first, in configured order"""
        self.state = EngineState.SETUP_SOCKETS
        try:
            for address in self.config.source_addresses():
                binding = create_binding(address, self.socket_factory)
                self.sources.append(binding)
                bind_as_source(binding, self.config.port)

            for address in self.config.dest_addresses():
                binding = create_binding(address, self.socket_factory)
                self.dests.append(binding)
                connect_as_dest(binding, self.config.port)

            self.multiplexer = make_multiplexer(self.sources, self.select_fn)
        except RelayError:
            self.state = EngineState.TERMINATED
            raise

        if self.config.verbose:
            for index, source in enumerate(self.sources):
                logger.info(source.describe(f"source {index}"))
            for index, dest in enumerate(self.dests):
                logger.info(dest.describe(f"dest {index}"))
            logger.info("ready...")

        self.state = EngineState.SERVING

    def serve_once(self):
        """Service one readiness batch: one datagram from each readable source"""
        try:
            for source in self.multiplexer.wait():
                self.forward(source)
        except RelayError:
            self.state = EngineState.TERMINATED
            raise

    def serve_forever(self):
        if self.state is EngineState.IDLE:
            self.setup()
        while True:
            self.serve_once()

    def forward(self, source):
        try:
            nbytes = source.read_into(self.buffer)
        except OSError as e:
            raise ReadError(f"read from {source}", e) from e

        if self.config.verbose:
            logger.info(f"{nbytes} bytes from {source}")
        self.stats.record_received(source, nbytes)

        payload = memoryview(self.buffer)[:nbytes]
        try:
            for dest in self.dests:
                try:
                    written = dest.write(payload)
                except OSError as e:
                    raise ShortWriteError(f"write to {dest}", e) from e
                if written < nbytes:
                    raise ShortWriteError(f"write to {dest}: {written} of {nbytes} bytes sent")
                self.stats.record_sent(dest, nbytes)
                logger.debug(f"Wrote {nbytes} bytes to {dest}")
        finally:
            payload.release()

    def close(self):
        for binding in self.sources + self.dests:
            binding.close()
        self.sources = []
        self.dests = []
        self.multiplexer = None


def run(config, **engine_options) -> int:
    """Relay until a fatal error occurs; return the process exit code"""
    engine = RelayEngine(config, **engine_options)
    try:
        engine.serve_forever()
    except RelayError as e:
        logger.error(f"losing: {e}")
        return 1
    finally:
        engine.close()
