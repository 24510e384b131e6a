from __future__ import annotations

import threading
from collections import defaultdict, deque
from dataclasses import dataclass, field
from typing import Deque


@dataclass
class PathMetrics:
    latencies_ms: Deque[float]
    total: int = 0
    errors: int = 0
    status_counts: dict[str, int] = field(default_factory=dict)


class MetricsRegistry:
    """In-memory request metrics.

    - パス別の直近レイテンシ（p50/p95 算出用のローリングウィンドウ）
    - エラー件数とステータスクラス（2xx/4xx/5xx）別の件数
    """

    def __init__(self, window_size: int = 200) -> None:
        self._window_size = window_size
        self._lock = threading.Lock()
        self._per_path: dict[str, PathMetrics] = defaultdict(
            lambda: PathMetrics(latencies_ms=deque(maxlen=self._window_size))
        )

    def record(
        self,
        path: str,
        latency_ms: float,
        *,
        status_code: int | None = None,
        is_error: bool = False,
    ) -> None:
        with self._lock:
            metrics = self._per_path[path]
            metrics.latencies_ms.append(latency_ms)
            metrics.total += 1
            if is_error:
                metrics.errors += 1
            if status_code is not None:
                bucket = f"{status_code // 100}xx"
                metrics.status_counts[bucket] = metrics.status_counts.get(bucket, 0) + 1

    def snapshot(self) -> dict[str, dict[str, object]]:
        with self._lock:
            return {
                path: {
                    "p50_ms": round(percentile(list(m.latencies_ms), 0.50), 2),
                    "p95_ms": round(percentile(list(m.latencies_ms), 0.95), 2),
                    "count": m.total,
                    "errors": m.errors,
                    "status": dict(m.status_counts),
                }
                for path, m in self._per_path.items()
            }

    def reset(self) -> None:
        with self._lock:
            self._per_path.clear()


def percentile(values: list[float], q: float) -> float:
    """Nearest-rank percentile (lower index); 0.0 for an empty window."""
    if not values:
        return 0.0
    sorted_vals = sorted(values)
    k = int(q * (len(sorted_vals) - 1))
    return sorted_vals[k]


registry = MetricsRegistry()
