# simulator.py
import collections
import logging

from cache import Cache

logger = logging.getLogger(__name__)

LOAD = "L"
STORE = "S"

StatsSnapshot = collections.namedtuple(
    "StatsSnapshot",
    ["hits", "misses", "evictions", "dirty_eviction_blocks", "dirty_resident_blocks"],
)


class Stats:
    """Counters for one simulation run."""

    def __init__(self):
        self.hits = 0
        self.misses = 0
        self.evictions = 0
        self.dirty_eviction_blocks = 0
        self.dirty_resident_blocks = 0

    def snapshot(self):
        return StatsSnapshot(
            self.hits,
            self.misses,
            self.evictions,
            self.dirty_eviction_blocks,
            self.dirty_resident_blocks,
        )


def result_record(snapshot, block_size):
    """
    Convert a snapshot to the reported record; dirty counts become bytes.
    """
    total = snapshot.hits + snapshot.misses
    return {
        "hits": snapshot.hits,
        "misses": snapshot.misses,
        "evictions": snapshot.evictions,
        "dirty_bytes_evicted": snapshot.dirty_eviction_blocks * block_size,
        "dirty_bytes_resident": snapshot.dirty_resident_blocks * block_size,
        "hit_rate": (snapshot.hits / total) if total else 0,
    }


def format_summary(record):
    return (
        f"hits:{record['hits']} misses:{record['misses']} evictions:{record['evictions']} "
        f"dirty_bytes_in_cache:{record['dirty_bytes_resident']} dirty_bytes_evicted:{record['dirty_bytes_evicted']}"
    )


class Simulator:
    def __init__(self, geometry):
        self.geometry = geometry
        self.cache = Cache(geometry)
        self.stats = Stats()

    def access(self, op, address):
        """
        Apply one event. Returns "hit" or "miss" (with " eviction" appended
        when a line was evicted), or None when the event was ignored.
        """
        if op == LOAD:
            is_write = False
        elif op == STORE:
            is_write = True
        else:
            return None
        tag, set_index = self.cache.locate(address)
        s = self.cache.select(set_index)
        line = s.probe(tag)
        if line is not None:
            s.on_hit(line, is_write, self.stats)
            outcome = "hit"
        else:
            victim = s.on_miss(tag, is_write, self.stats)
            outcome = "miss" if victim is None else "miss eviction"
        if logger.isEnabledFor(logging.DEBUG):
            logger.debug("%s %x %s", op, address, outcome)
        return outcome

    def run(self, events):
        """
        Drive the cache over an iterable of (op, address) events, tear it
        down, and return the final StatsSnapshot.
        """
        for op, address in events:
            self.access(op, address)
        self.cache.teardown(self.stats)
        return self.stats.snapshot()


def simulate(geometry, events):
    return Simulator(geometry).run(events)
