import argparse
import logging
import sys

from .config import RelayConfiguration
from .engine import RelayStats, run
from .errors import BindError, ConfigurationError
from .status import start_status_server

logger = logging.getLogger(__name__)

LOG_FORMAT = '%(asctime)s - %(name)s - %(levelname)s - %(message)s'
LOG_DATEFMT = '%Y-%m-%d %H:%M:%S'


class _ArgumentParser(argparse.ArgumentParser):
    """Reports bad arguments as ConfigurationError instead of exiting with 2"""

    def error(self, message):
        self.print_usage(sys.stderr)
        raise ConfigurationError(message)


def build_parser() -> argparse.ArgumentParser:
    parser = _ArgumentParser(
        prog='netforward',
        description="Forward UDP datagrams, including broadcasts, from local addresses to other addresses"
    )
    parser.add_argument('-v', dest='verbose', action='count', default=0,
                        help="increase verbosity; repeat for debug output")
    parser.add_argument('-p', dest='port', type=int, required=True,
                        help="UDP port used for both receiving and sending")
    parser.add_argument('-s', dest='sources', action='append', required=True, metavar='SOURCE_IP',
                        help="local interface address to receive on (repeatable)")
    parser.add_argument('-d', dest='dests', action='append', required=True, metavar='DEST_IP',
                        help="address to send every datagram to, broadcast allowed (repeatable)")
    parser.add_argument('--status-host', default='127.0.0.1',
                        help="interface for the HTTP status endpoint (default: %(default)s)")
    parser.add_argument('--status-port', type=int, default=None,
                        help="serve /health and /stats on this port")
    return parser


def parse_config(argv=None) -> RelayConfiguration:
    parser = build_parser()
    args = parser.parse_args(argv)
    try:
        return RelayConfiguration.create(
            port=args.port,
            sources=args.sources,
            dests=args.dests,
            verbose=args.verbose,
            status_host=args.status_host,
            status_port=args.status_port,
        )
    except ConfigurationError:
        parser.print_usage(sys.stderr)
        raise


def configure_logging(verbose):
    if verbose >= 2:
        level = logging.DEBUG
    elif verbose == 1:
        level = logging.INFO
    else:
        level = logging.WARNING
    logging.basicConfig(level=level, format=LOG_FORMAT, datefmt=LOG_DATEFMT)


def main(argv=None) -> int:
    try:
        config = parse_config(argv)
    except ConfigurationError as e:
        print(f"netforward: error: {e}", file=sys.stderr)
        return 1

    configure_logging(config.verbose)
    logger.info(f"Relaying port {config.port} from {len(config.sources)} source(s) to {len(config.dests)} dest(s)")

    stats = RelayStats()
    if config.status_port:
        try:
            start_status_server(stats, config.status_host, config.status_port, config)
        except BindError as e:
            logger.error(f"losing: {e}")
            return 1

    try:
        return run(config, stats=stats)
    except KeyboardInterrupt:
        logger.info("Relay stopped.")
        return 130
