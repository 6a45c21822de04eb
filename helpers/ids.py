import itertools
import os
import threading
from datetime import datetime

# 4 bytes epoch seconds | 5 bytes per-process random | 3 bytes counter, hex encoded.
_PROCESS_BYTES = os.urandom(5)
_counter = itertools.count(int.from_bytes(os.urandom(3), "big"))
_lock = threading.Lock()


def new_message_id(created_at: datetime) -> str:
    """Return a globally unique id whose prefix orders by creation second."""
    seconds = int(created_at.timestamp()) & 0xFFFFFFFF
    with _lock:
        count = next(_counter) & 0xFFFFFF
    raw = seconds.to_bytes(4, "big") + _PROCESS_BYTES + count.to_bytes(3, "big")
    return raw.hex()
