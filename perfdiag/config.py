from __future__ import annotations

import os
from dataclasses import dataclass

# 1.6 Mbps, the "slow 4G" throughput commonly used for mobile simulation.
DEFAULT_THROUGHPUT_KBPS = 1638.4
DEFAULT_IGNORE_THRESHOLD_BYTES = 1024
DEFAULT_TOP_SHIFT_NODES = 5
DEFAULT_MARKER_ATTRIBUTE = "perfdiagtemp"


def _env_float(name: str, default: float, *, min_v: float, max_v: float) -> float:
    raw = os.environ.get(name)
    try:
        if raw is None or not raw.strip():
            raise ValueError
        value = float(raw.strip())
    except ValueError:
        value = float(default)
    return max(min_v, min(value, max_v))


def _env_int(name: str, default: int, *, min_v: int, max_v: int) -> int:
    raw = os.environ.get(name)
    try:
        if raw is None or not raw.strip():
            raise ValueError
        value = int(float(raw.strip()))
    except ValueError:
        value = int(default)
    return max(min_v, min(value, max_v))


@dataclass
class AnalysisConfig:
    top_shift_nodes: int = DEFAULT_TOP_SHIFT_NODES
    ignore_threshold_bytes: int = DEFAULT_IGNORE_THRESHOLD_BYTES
    throughput_kbps: float = DEFAULT_THROUGHPUT_KBPS
    rtt_ms: float = 0.0
    cdp_timeout: float = 5.0
    marker_attribute: str = DEFAULT_MARKER_ATTRIBUTE

    @staticmethod
    def normalize_marker(raw: str | None) -> str:
        marker = "".join(ch for ch in (raw or "").strip().lower() if ch.isalnum() or ch in "-_")
        return marker or DEFAULT_MARKER_ATTRIBUTE

    @classmethod
    def from_env(cls) -> AnalysisConfig:
        return cls(
            top_shift_nodes=_env_int("PERFDIAG_TOP_SHIFT_NODES", DEFAULT_TOP_SHIFT_NODES, min_v=1, max_v=100),
            ignore_threshold_bytes=_env_int(
                "PERFDIAG_IGNORE_THRESHOLD_BYTES", DEFAULT_IGNORE_THRESHOLD_BYTES, min_v=0, max_v=100_000_000
            ),
            throughput_kbps=_env_float(
                "PERFDIAG_THROUGHPUT_KBPS", DEFAULT_THROUGHPUT_KBPS, min_v=1.0, max_v=10_000_000.0
            ),
            rtt_ms=_env_float("PERFDIAG_RTT_MS", 0.0, min_v=0.0, max_v=60_000.0),
            cdp_timeout=_env_float("PERFDIAG_CDP_TIMEOUT", 5.0, min_v=0.5, max_v=120.0),
            marker_attribute=cls.normalize_marker(os.environ.get("PERFDIAG_MARKER_ATTRIBUTE")),
        )
