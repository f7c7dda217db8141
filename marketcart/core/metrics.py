from collections import Counter
from threading import Lock
from typing import Dict, Counter as CounterType

_metrics: CounterType[str] = Counter()
_lock = Lock()


def _inc(key: str) -> None:
    with _lock:
        _metrics[key] += 1


def record_remote_failure(operation: str) -> None:
    _inc("remote_failures")
    _inc(f"remote_failures.{operation}")


def record_resync() -> None:
    _inc("resyncs")


def record_seller_conflict() -> None:
    _inc("seller_conflicts")


def record_checkout() -> None:
    _inc("checkouts")


def snapshot() -> Dict[str, int]:
    with _lock:
        return dict(_metrics)


def reset() -> None:
    with _lock:
        _metrics.clear()
