"""Read-only HTTP status endpoint for a running relay.

Served by Flask from a daemon thread. It only reads the engine's
counters and never touches the relay sockets.
"""

import logging
import threading

from flask import Flask, jsonify
from werkzeug.serving import make_server, prepare_socket

from .errors import BindError

logger = logging.getLogger(__name__)


def create_status_app(stats, config=None):
    app = Flask(__name__)

    @app.route('/health', methods=['GET'])
    def health_check():
        """Health check endpoint"""
        return jsonify({'status': 'healthy', 'service': 'UDP Relay'})

    @app.route('/stats', methods=['GET'])
    def relay_stats():
        """Forwarded datagram and byte counters"""
        data = stats.snapshot()
        if config is not None:
            data['port'] = config.port
            data['sources'] = [str(address) for address in config.source_addresses()]
            data['dests'] = [str(address) for address in config.dest_addresses()]
        return jsonify(data)

    return app


def start_status_server(stats, host, port, config=None):
    """Bind the status server, then serve it from a daemon thread.

    The port is bound before this returns, so a port that is already taken
    raises BindError here rather than inside the thread. Returns the
    werkzeug server; its `thread` attribute is the serving thread.
    """
    app = create_status_app(stats, config)
    try:
        sock = prepare_socket(host, port)
    except OSError as e:
        raise BindError(f"status endpoint binding {host}:{port}", e) from e

    # the server works on its own duplicate of the listening descriptor
    with sock:
        bound_port = sock.getsockname()[1]
        server = make_server(host, bound_port, app, threaded=True, fd=sock.fileno())

    server.thread = threading.Thread(
        target=server.serve_forever,
        name='netforward-status',
        daemon=True
    )
    server.thread.start()
    logger.info(f"Status endpoint listening on http://{host}:{bound_port}")
    return server
