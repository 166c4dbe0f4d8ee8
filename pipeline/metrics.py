"""Cost and latency accounting for the optional AI summary enrichment.

A timer may record several model responses; token counts accumulate across
them and the cost is recomputed from the running totals.
"""

import time
from dataclasses import dataclass, field
from typing import Any

# USD per million tokens for the default NMS_AI_MODEL. Other models are
# reported with a zero cost.
MODEL_COSTS: dict[str, dict[str, float]] = {
    "claude-haiku-4-5-20251001": {"input": 1.00, "output": 5.00},
}


def cost_usd(model: str, input_tokens: int, output_tokens: int) -> float:
    rates = MODEL_COSTS.get(model, {"input": 0.0, "output": 0.0})
    return (input_tokens * rates["input"] + output_tokens * rates["output"]) / 1_000_000


@dataclass
class AgentTimer:
    """Times one enrichment step and totals the token usage of its model calls.

    ``metrics`` ends up as ``{"model", "calls", "input_tokens", "output_tokens",
    "cost_usd", "latency_ms"}`` and is stored under the step name in
    ``agent_metrics``.
    """

    agent_name: str
    model: str
    _start: float = field(default=0.0, init=False)
    _metrics: dict[str, Any] = field(default_factory=dict, init=False)

    def __enter__(self) -> "AgentTimer":
        self._start = time.perf_counter()
        self._metrics.update(model=self.model, calls=0, input_tokens=0, output_tokens=0, cost_usd=0.0)
        return self

    def __exit__(self, *args: Any) -> None:
        self._metrics["latency_ms"] = (time.perf_counter() - self._start) * 1000

    def record_usage(self, response: Any) -> None:
        usage = getattr(response, "usage_metadata", None) or {}
        self._metrics["calls"] = self._metrics.get("calls", 0) + 1
        self._metrics["input_tokens"] = self._metrics.get("input_tokens", 0) + usage.get("input_tokens", 0)
        self._metrics["output_tokens"] = self._metrics.get("output_tokens", 0) + usage.get("output_tokens", 0)
        self._metrics["cost_usd"] = cost_usd(
            self.model, self._metrics["input_tokens"], self._metrics["output_tokens"]
        )

    @property
    def metrics(self) -> dict[str, Any]:
        return self._metrics
