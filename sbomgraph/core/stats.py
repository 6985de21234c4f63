import threading
import time
from collections import Counter
from dataclasses import dataclass
from dataclasses import field


@dataclass
class BaseStats:
    total: int = 0
    failed: int = 0
    start_time: float = field(default_factory=time.time)
    _lock: threading.Lock = field(default_factory=threading.Lock)

    def inc_failed(self, count: int = 1):
        with self._lock:
            self.failed += count

    @property
    def elapsed_time(self) -> float:
        return time.time() - self.start_time


@dataclass
class TraversalStats(BaseStats):
    scopes: int = 0
    frames: int = 0
    duplicates: int = 0
    depth_exceeded: int = 0


@dataclass
class LicenseStats(BaseStats):
    resolved: int = 0
    unresolved: int = 0
    sources: Counter = field(default_factory=Counter)

    def inc_resolved(self, source: str):
        with self._lock:
            self.resolved += 1
            self.sources[source] += 1

    def inc_unresolved(self):
        with self._lock:
            self.unresolved += 1
