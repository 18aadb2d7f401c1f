"""Convert wasted bytes into an estimated load-time cost."""

from __future__ import annotations

from collections.abc import Mapping
from dataclasses import dataclass
from typing import Protocol


class NetworkModel(Protocol):
    def transfer_time_ms(self, num_bytes: int) -> float: ...


@dataclass(frozen=True)
class ThroughputNetworkModel:
    """Bytes over a fixed-throughput link plus a flat round-trip cost."""

    throughput_kbps: float
    rtt_ms: float = 0.0

    def transfer_time_ms(self, num_bytes: int) -> float:
        if num_bytes <= 0:
            return 0.0
        bits = num_bytes * 8
        return self.rtt_ms + bits / (self.throughput_kbps * 1024) * 1000


def estimate(wasted_bytes_by_url: Mapping[str, int], network_model: NetworkModel) -> float:
    total = sum(wasted_bytes_by_url.values())
    if total <= 0:
        return 0.0
    return float(network_model.transfer_time_ms(total))


__all__ = ["NetworkModel", "ThroughputNetworkModel", "estimate"]
