from __future__ import annotations

import logging
import math
from pathlib import Path
from typing import Dict, Optional

import yaml

from ticket_agent.config import PACKAGE_DIR
from ticket_agent.models import Cost

logger = logging.getLogger(__name__)

DEFAULT_PRICING_FILE = PACKAGE_DIR / "pricing.yaml"


def load_pricing(path: Optional[Path] = None) -> Dict[str, Dict[str, float]]:
    """Read a model -> {input, output} table priced per 1K tokens."""
    source = Path(path) if path else DEFAULT_PRICING_FILE
    table = yaml.safe_load(source.read_text(encoding="utf-8")) or {}
    pricing: Dict[str, Dict[str, float]] = {}
    for model, row in table.items():
        pricing[str(model)] = {
            "input": float(row.get("input", 0.0)) / 1000,
            "output": float(row.get("output", 0.0)) / 1000,
        }
    if "default" not in pricing:
        pricing["default"] = {"input": 0.01 / 1000, "output": 0.03 / 1000}
    return pricing


def estimate_tokens(text: str) -> int:
    return math.ceil(len(text) / 4)


class CostTracker:
    """Token and USD accumulator for a single run.

    One tracker is created per run or re-run and handed to every step that
    calls a model, so totals never leak between runs.
    """

    def __init__(self, model: str = "default", pricing: Optional[Dict[str, Dict[str, float]]] = None) -> None:
        self.model = model
        self.pricing = pricing if pricing is not None else load_pricing()
        self._cost = Cost()

    def price(self, tokens_in: int, tokens_out: int) -> float:
        row = self.pricing.get(self.model) or self.pricing["default"]
        return tokens_in * row["input"] + tokens_out * row["output"]

    def track(self, tokens_in: int, tokens_out: int) -> Cost:
        delta = Cost(tokens_in=tokens_in, tokens_out=tokens_out, usd=self.price(tokens_in, tokens_out))
        self._cost = self._cost.add(delta)
        logger.debug(
            "tracked tokens_in=%s tokens_out=%s usd=%.6f total_usd=%.6f",
            tokens_in,
            tokens_out,
            delta.usd,
            self._cost.usd,
        )
        return delta

    def get_cost(self) -> Cost:
        return Cost(self._cost.tokens_in, self._cost.tokens_out, self._cost.usd)

    def reset(self) -> None:
        self._cost = Cost()
