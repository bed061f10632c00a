"""Advisory wait-time estimate returned at submission."""
from __future__ import annotations

from typing import Mapping


def estimate_wait(queue_depth: int, model: str, model_costs: Mapping[str, float]) -> float:
    """Seconds until a job submitted behind *queue_depth* others is likely done.

    ``(queue_depth + 1) * cost(model)``, rounded to one decimal.  Computed
    once at submission and never revised.
    """
    if queue_depth < 0:
        raise ValueError(f"queue_depth must be >= 0, got {queue_depth}")
    try:
        per_job = model_costs[model]
    except KeyError:
        raise ValueError(f"No cost configured for model {model!r}") from None
    return round((queue_depth + 1) * per_job, 1)
