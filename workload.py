# workload.py
import numpy as np

from cache import ConfigError
from simulator import LOAD, STORE

PATTERNS = ("sequential", "random", "mixed")


class WorkloadGenerator:
    """
    Synthetic Load/Store event stream over a working set of blocks.
    Addresses are block-aligned; `read_ratio` is the fraction of Loads.
    """

    def __init__(self, block_size, working_set_kb=1024, read_ratio=0.8,
                 access_pattern="mixed", random_seed=None):
        if access_pattern not in PATTERNS:
            raise ConfigError(f"unknown access pattern {access_pattern!r}, expected one of {PATTERNS}")
        if not 0.0 <= read_ratio <= 1.0:
            raise ConfigError(f"read_ratio must be within [0, 1], got {read_ratio}")
        self.block_size = block_size
        self.num_blocks = max(1, (working_set_kb * 1024) // block_size)
        self.read_ratio = read_ratio
        self.access_pattern = access_pattern
        self.rng = np.random.default_rng(random_seed)
        self._seq_ptr = 0

    @classmethod
    def from_config(cls, block_size, cfg):
        return cls(
            block_size,
            working_set_kb=cfg.get("working_set_kb", 1024),
            read_ratio=cfg.get("read_ratio", 0.8),
            access_pattern=cfg.get("access_pattern", "mixed"),
            random_seed=cfg.get("random_seed", None),
        )

    def _next_sequential(self):
        block = self._seq_ptr
        self._seq_ptr = (block + 1) % self.num_blocks
        return block

    def _next_block(self):
        if self.access_pattern == "sequential":
            return self._next_sequential()
        elif self.access_pattern == "random":
            return int(self.rng.integers(0, self.num_blocks))
        else:  # mixed: mostly sequential with some random
            if self.rng.random() < 0.8:
                return self._next_sequential()
            return int(self.rng.integers(0, self.num_blocks))

    def events(self, num_requests):
        for _ in range(num_requests):
            op = LOAD if self.rng.random() < self.read_ratio else STORE
            yield op, self._next_block() * self.block_size
