# tracefile.py
import collections
import logging
import os
import re

from cache import ADDRESS_BITS, ConfigError

logger = logging.getLogger(__name__)

TraceRecord = collections.namedtuple("TraceRecord", ["op", "address", "size"])

# "<op> <hex address>,<size>", e.g. "L 7ff000398,8"
RECORD_RE = re.compile(r"^\s*([A-Za-z])\s+(?:0[xX])?([0-9a-fA-F]+)\s*,\s*(\d+)\s*$")


def open_trace(path):
    if not path:
        raise ConfigError("no trace file given")
    try:
        return open(path, "r", errors="replace")
    except OSError as e:
        raise ConfigError(f"cannot read trace file {path}: {e.strerror}") from e


def parse_line(text):
    m = RECORD_RE.match(text)
    if not m:
        return None
    address = int(m.group(2), 16)
    if address >> ADDRESS_BITS:
        return None
    return TraceRecord(m.group(1), address, int(m.group(3)))


def read_events(lines):
    """
    Yield (op, address) for each well-formed record.
    Malformed lines are skipped; the op is passed through unchecked so the
    simulator decides which kinds it handles.
    """
    skipped = 0
    for lineno, text in enumerate(lines, 1):
        record = parse_line(text)
        if record is None:
            if text.strip():
                logger.debug("skipping malformed trace line %d: %r", lineno, text.rstrip("\n"))
                skipped += 1
            continue
        yield record.op, record.address
    if skipped:
        logger.info("skipped %d malformed trace line(s)", skipped)


def write_trace(events, path, size=1):
    directory = os.path.dirname(path)
    if directory:
        os.makedirs(directory, exist_ok=True)
    count = 0
    with open(path, "w") as f:
        for op, address in events:
            f.write(f"{op} {address:x},{size}\n")
            count += 1
    return count
