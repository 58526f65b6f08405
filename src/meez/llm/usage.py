"""
meez - Token usage and cost accounting.

Providers report usage in different shapes; everything is normalized to
TokenUsage(input_tokens, output_tokens) before it leaves an adapter.
"""

from datetime import datetime, timezone
from typing import Any

from meez.models import TokenUsage

# Cost estimation, USD per 1K tokens
MODEL_COSTS = {
    "gemini-2.5-flash": {"input": 0.0001, "output": 0.0004},
    "gemini-2.5-flash-lite": {"input": 0.0001, "output": 0.0004},
    "gpt-4-turbo": {"input": 0.01, "output": 0.03},
    "gpt-4.1-mini": {"input": 0.00015, "output": 0.0006},
    "text-embedding-3-small": {"input": 0.00002, "output": 0.0},
}

# Field names per provider: (input, output)
_USAGE_FIELDS = {
    "gemini": [
        ("prompt_token_count", "candidates_token_count"),
        ("promptTokenCount", "candidatesTokenCount"),
    ],
    "openai": [
        ("prompt_tokens", "completion_tokens"),
        ("input_tokens", "output_tokens"),
    ],
}


def _read(metadata: Any, name: str) -> Any:
    if isinstance(metadata, dict):
        return metadata.get(name)
    return getattr(metadata, name, None)


def normalize_usage(metadata: Any, provider: str) -> TokenUsage:
    """
    Normalize provider usage metadata.

    Accepts SDK objects or plain dicts; unknown shapes and missing counts
    become zero rather than an error.

    Examples:
        normalize_usage({"promptTokenCount": 10, "candidatesTokenCount": 5}, "gemini")
            -> TokenUsage(10, 5)
        normalize_usage(None, "openai") -> TokenUsage(0, 0)
    """
    if metadata is None:
        return TokenUsage()

    for input_field, output_field in _USAGE_FIELDS.get(provider, []):
        input_tokens = _read(metadata, input_field)
        output_tokens = _read(metadata, output_field)
        if input_tokens is not None or output_tokens is not None:
            return TokenUsage(
                input_tokens=int(input_tokens or 0),
                output_tokens=int(output_tokens or 0),
            )

    return TokenUsage()


def estimate_cost(
    model: str,
    input_tokens: int,
    output_tokens: int,
) -> float:
    """
    Estimate the cost of an LLM call.

    Returns cost in USD. Unknown models cost nothing.
    """
    costs = MODEL_COSTS.get(model)
    if costs is None:
        return 0.0

    input_cost = (input_tokens / 1_000) * costs["input"]
    output_cost = (output_tokens / 1_000) * costs["output"]

    return input_cost + output_cost


class CostTracker:
    """
    Track cumulative costs across calls.

    Usage:
        tracker = CostTracker()
        tracker.add("gemini-2.5-flash", 500, 100, provider="gemini")
        print(tracker.total_cost)
    """

    def __init__(self):
        self.calls: list[dict] = []
        self.total_input_tokens = 0
        self.total_output_tokens = 0
        self.total_cost = 0.0

    def add(
        self,
        model: str,
        input_tokens: int,
        output_tokens: int,
        provider: str = "unknown",
    ) -> float:
        """Add a call and return its estimated cost."""
        cost = estimate_cost(model, input_tokens, output_tokens)

        self.calls.append({
            "timestamp": datetime.now(timezone.utc).isoformat(),
            "model": model,
            "provider": provider,
            "input_tokens": input_tokens,
            "output_tokens": output_tokens,
            "cost": cost,
        })

        self.total_input_tokens += input_tokens
        self.total_output_tokens += output_tokens
        self.total_cost += cost

        return cost

    def summary(self) -> dict:
        """Get a summary of tracked costs."""
        return {
            "total_calls": len(self.calls),
            "total_input_tokens": self.total_input_tokens,
            "total_output_tokens": self.total_output_tokens,
            "total_cost_usd": round(self.total_cost, 6),
            "by_model": self._costs_by("model"),
            "by_provider": self._costs_by("provider"),
        }

    def _costs_by(self, key: str) -> dict[str, float]:
        grouped: dict[str, float] = {}
        for call in self.calls:
            grouped[call[key]] = grouped.get(call[key], 0.0) + call["cost"]
        return {k: round(v, 6) for k, v in grouped.items()}
