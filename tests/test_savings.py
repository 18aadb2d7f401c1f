from __future__ import annotations

import math

from perfdiag.savings import ThroughputNetworkModel, estimate


class CountingModel:
    def __init__(self) -> None:
        self.calls: list[int] = []

    def transfer_time_ms(self, num_bytes: int) -> float:
        self.calls.append(num_bytes)
        return num_bytes / 10


def test_estimate_sums_waste_across_urls() -> None:
    model = CountingModel()
    assert estimate({"a.js": 100, "b.js": 250}, model) == 35.0
    assert model.calls == [350]


def test_estimate_empty_is_zero_without_model_call() -> None:
    model = CountingModel()
    assert estimate({}, model) == 0
    assert estimate({"a.js": 0}, model) == 0
    assert model.calls == []


def test_throughput_model() -> None:
    model = ThroughputNetworkModel(throughput_kbps=100)
    # 3750 bytes = 30000 bits over 102400 bits/s
    assert math.isclose(model.transfer_time_ms(3750), 30000 / 102400 * 1000)
    assert ThroughputNetworkModel(throughput_kbps=100, rtt_ms=150).transfer_time_ms(0) == 0.0
    assert math.isclose(ThroughputNetworkModel(throughput_kbps=8, rtt_ms=150).transfer_time_ms(1024), 1150.0)
