"""
Record id generation. Ids are wall-clock milliseconds as strings; when two ids
are requested within the same millisecond the later one is bumped forward so
ids stay unique and increasing within a process.
"""

import threading
import time

_lock = threading.Lock()
_last_id = 0


def new_record_id() -> str:
    global _last_id
    with _lock:
        candidate = int(time.time() * 1000)
        if candidate <= _last_id:
            candidate = _last_id + 1
        _last_id = candidate
        return str(candidate)
