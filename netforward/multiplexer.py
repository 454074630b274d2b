"""Readiness waiting across the source bindings.

A single source needs no polling: the engine blocks directly in that
socket's read. With more than one source a single select() call spans all
of them, without a timeout, and the readable ones come back in source order.
"""

import logging
import select

from .errors import ReadinessWaitError

logger = logging.getLogger(__name__)


class SingleSourceWait:
    """Hands back the only source and lets its read block"""

    def __init__(self, source):
        self.source = source
        self.ready = (source,)

    def wait(self):
        return self.ready


class MultiSourceWait:
    def __init__(self, sources, select_fn=select.select):
        self.sources = tuple(sources)
        self.select_fn = select_fn

    def wait(self):
        """Block until at least one source is readable.

        Readable sources are returned in ascending source order, whatever
        order the readiness primitive reported them in, so each batch reads
        at most one datagram per source before polling again.
        """
        try:
            readable, _, _ = self.select_fn(self.sources, [], [])
        except (OSError, ValueError) as e:
            raise ReadinessWaitError("select", e) from e

        ready = set(readable)
        batch = tuple(source for source in self.sources if source in ready)
        logger.debug(f"{len(batch)} of {len(self.sources)} sources readable")
        return batch


def make_multiplexer(sources, select_fn=select.select):
    sources = list(sources)
    if not sources:
        raise ValueError("at least one source binding is required")
    if len(sources) == 1:
        return SingleSourceWait(sources[0])
    return MultiSourceWait(sources, select_fn)
