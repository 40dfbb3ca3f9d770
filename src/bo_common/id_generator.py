"""Business identifiers for betting orders.

``generate_id`` yields the primary key: a snowflake-style, monotonically
increasing string that sorts by creation time (used as the list cursor).
``generate_order_no`` yields the human-readable ``ORD…`` number shown to
customers and admins.
"""

import secrets
import string
import threading
import time

_BASE36 = string.digits + string.ascii_lowercase


class SnowflakeIdGenerator:
    """Single-process snowflake generator.

    Layout (63 bits used):
      - 41 bits: millisecond timestamp since ``_EPOCH_MS``
      - 10 bits: worker id (0-1023)
      - 12 bits: per-millisecond sequence (0-4095)
    """

    _EPOCH_MS = 1_700_000_000_000
    _WORKER_BITS = 10
    _SEQUENCE_BITS = 12
    _SEQUENCE_MASK = (1 << _SEQUENCE_BITS) - 1

    def __init__(self, worker_id: int = 0) -> None:
        if not (0 <= worker_id < (1 << self._WORKER_BITS)):
            raise ValueError(f"worker_id must be 0-{(1 << self._WORKER_BITS) - 1}")
        self._worker_id = worker_id
        self._sequence = 0
        self._last_ms = -1
        self._lock = threading.Lock()

    def next_id(self) -> str:
        with self._lock:
            now_ms = _now_ms()
            if now_ms == self._last_ms:
                self._sequence = (self._sequence + 1) & self._SEQUENCE_MASK
                if self._sequence == 0:
                    # Sequence exhausted for this millisecond
                    while now_ms <= self._last_ms:
                        now_ms = _now_ms()
            else:
                self._sequence = 0
            self._last_ms = now_ms
            value = (
                ((now_ms - self._EPOCH_MS) << (self._WORKER_BITS + self._SEQUENCE_BITS))
                | (self._worker_id << self._SEQUENCE_BITS)
                | self._sequence
            )
            return str(value)


def _now_ms() -> int:
    return int(time.time() * 1000)


_default_generator = SnowflakeIdGenerator()


def generate_id() -> str:
    return _default_generator.next_id()


def generate_order_no() -> str:
    """``ORD`` + epoch millis + 9 random base36 chars, e.g. ``ORD1760000000000k3j9x0a1b``."""
    suffix = "".join(secrets.choice(_BASE36) for _ in range(9))
    return f"ORD{_now_ms()}{suffix}"
