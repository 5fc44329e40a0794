# cache.py
import collections

ADDRESS_BITS = 64


class ConfigError(Exception):
    """Invalid geometry, missing parameters or an unreadable resource."""


def decode_address(address, set_bits, block_bits):
    """
    Split a 64-bit address into (tag, set_index).
    The block offset is dropped: the model works at block granularity.
    """
    tag = address >> (set_bits + block_bits)
    if set_bits == 0:
        # fully associative: a single set
        return tag, 0
    set_index = (address >> block_bits) & ((1 << set_bits) - 1)
    return tag, set_index


class Geometry:
    def __init__(self, set_bits, associativity, block_bits):
        self.set_bits = set_bits
        self.associativity = associativity
        self.block_bits = block_bits

    @property
    def num_sets(self):
        return 1 << self.set_bits

    @property
    def block_size(self):
        return 1 << self.block_bits

    @property
    def tag_bits(self):
        return ADDRESS_BITS - self.set_bits - self.block_bits

    def validate(self):
        for name in ("set_bits", "associativity", "block_bits"):
            value = getattr(self, name)
            if value is None:
                raise ConfigError(f"missing cache parameter: {name}")
            if isinstance(value, bool) or not isinstance(value, int):
                raise ConfigError(f"{name} must be an integer, got {value!r}")
        if self.set_bits < 0:
            raise ConfigError(f"set_bits must be >= 0, got {self.set_bits}")
        if self.associativity < 1:
            raise ConfigError(f"associativity must be >= 1, got {self.associativity}")
        if self.block_bits < 0:
            raise ConfigError(f"block_bits must be >= 0, got {self.block_bits}")
        if self.set_bits + self.block_bits > ADDRESS_BITS:
            raise ConfigError(
                f"set_bits + block_bits must be <= {ADDRESS_BITS}, "
                f"got {self.set_bits + self.block_bits}"
            )
        return self

    def describe(self):
        return {
            "set_bits": self.set_bits,
            "associativity": self.associativity,
            "block_bits": self.block_bits,
            "num_sets": self.num_sets,
            "block_size": self.block_size,
            "tag_bits": self.tag_bits,
        }

    def __repr__(self):
        return f"Geometry(s={self.set_bits}, E={self.associativity}, b={self.block_bits})"


class Line:
    __slots__ = ("valid", "dirty", "tag")

    def __init__(self, tag, dirty=False):
        self.valid = True
        self.dirty = dirty
        self.tag = tag

    def __repr__(self):
        return f"Line(tag={self.tag:#x}, dirty={self.dirty})"


class CacheSet:
    """
    Recency-ordered set of at most `associativity` lines.
    Backed by an OrderedDict mapping tag -> Line; the last entry is the
    most recently used, the first entry is the LRU victim.
    """

    def __init__(self, associativity):
        self.associativity = associativity
        self.lines = collections.OrderedDict()

    def __len__(self):
        return len(self.lines)

    def probe(self, tag):
        line = self.lines.get(tag)
        if line is not None and line.valid:
            return line
        return None

    def on_hit(self, line, is_write, stats):
        stats.hits += 1
        if is_write:
            line.dirty = True
        self.lines.move_to_end(line.tag)

    def on_miss(self, tag, is_write, stats):
        """
        Allocate a line for `tag`, evicting the LRU line if the set is full.
        Returns the evicted Line, or None.
        """
        stats.misses += 1
        victim = None
        if len(self.lines) >= self.associativity:
            _, victim = self.lines.popitem(last=False)
            stats.evictions += 1
            if victim.dirty:
                stats.dirty_eviction_blocks += 1
        self.lines[tag] = Line(tag, dirty=is_write)
        return victim

    def recency(self):
        """Resident tags, most recently used first."""
        return list(reversed(self.lines))

    def drain(self):
        """Remove every line, returning the number that were dirty."""
        dirty = sum(1 for line in self.lines.values() if line.dirty)
        self.lines.clear()
        return dirty


class Cache:
    def __init__(self, geometry):
        self.geometry = geometry
        self.sets = [CacheSet(geometry.associativity) for _ in range(geometry.num_sets)]
        self.closed = False

    def _check_open(self):
        if self.closed:
            raise RuntimeError("cache has already been torn down")

    def locate(self, address):
        return decode_address(address, self.geometry.set_bits, self.geometry.block_bits)

    def select(self, set_index):
        self._check_open()
        return self.sets[set_index]

    def teardown(self, stats):
        """
        Release every set, counting lines still dirty at shutdown.
        May be called only once.
        """
        self._check_open()
        for s in self.sets:
            stats.dirty_resident_blocks += s.drain()
        self.sets = []
        self.closed = True
