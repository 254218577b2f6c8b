"""Snowflake-style 64-bit id generator.

Layout (most significant first): 41 bits of milliseconds since ``EPOCH_MS``,
10 bits of node id, 12 bits of per-millisecond sequence. The node id is
derived once from the machine's hardware address (or a hostname hash) so
independent processes on different machines do not collide without a shared
sequencer.
"""

import hashlib
import logging
import socket
import threading
import time
import uuid
from typing import Callable, Optional

logger = logging.getLogger(__name__)

EPOCH_MS = 1288834974657
NODE_BITS = 10
SEQUENCE_BITS = 12
MAX_NODE_ID = (1 << NODE_BITS) - 1
MAX_SEQUENCE = (1 << SEQUENCE_BITS) - 1
NODE_SHIFT = SEQUENCE_BITS
TIME_SHIFT = NODE_BITS + SEQUENCE_BITS


def _hash_to_node(data: bytes) -> int:
    digest = hashlib.blake2b(data, digest_size=8).digest()
    return int.from_bytes(digest, "big") % (MAX_NODE_ID + 1)


def derive_node_id() -> int:
    """Derive a stable node id (0-1023) for this machine."""
    mac = uuid.getnode()
    # uuid.getnode() sets the multicast bit when it had to invent a random address
    if not (mac >> 40) & 0x01:
        return _hash_to_node(mac.to_bytes(6, "big"))
    hostname = socket.gethostname()
    logger.debug("No hardware address available, deriving node id from hostname")
    return _hash_to_node(hostname.encode("utf-8"))


class IDGenerator:
    """Thread-safe, monotonic snowflake id source.

    Construct one per process and pass it to every component that creates
    rows.

    Args:
        node_id: Node identifier 0-1023; derived from the machine when omitted.
        clock_ms: Millisecond clock, injectable for tests.
    """

    def __init__(
        self,
        node_id: Optional[int] = None,
        clock_ms: Optional[Callable[[], int]] = None,
    ):
        if node_id is None:
            node_id = derive_node_id()
        if not 0 <= node_id <= MAX_NODE_ID:
            raise ValueError(f"node_id must be between 0 and {MAX_NODE_ID}, got {node_id}")
        self.node_id = node_id
        self._clock_ms = clock_ms or (lambda: time.time_ns() // 1_000_000)
        self._lock = threading.Lock()
        self._last_ms = -1
        self._sequence = 0

    def generate(self) -> int:
        """Return the next id. Ids from one generator are strictly increasing."""
        with self._lock:
            now = self._clock_ms()
            if now < self._last_ms:
                # Clock stepped back; keep issuing from the last timestamp
                now = self._last_ms

            if now == self._last_ms:
                self._sequence = (self._sequence + 1) & MAX_SEQUENCE
                if self._sequence == 0:
                    # Sequence exhausted; borrow the next millisecond rather than wait
                    now = self._last_ms + 1
            else:
                self._sequence = 0

            self._last_ms = now
            return ((now - EPOCH_MS) << TIME_SHIFT) | (self.node_id << NODE_SHIFT) | self._sequence

    __call__ = generate


def decompose(snowflake_id: int) -> dict:
    """Split an id into its timestamp, node and sequence parts."""
    return {
        "timestamp_ms": (snowflake_id >> TIME_SHIFT) + EPOCH_MS,
        "node_id": (snowflake_id >> NODE_SHIFT) & MAX_NODE_ID,
        "sequence": snowflake_id & MAX_SEQUENCE,
    }
