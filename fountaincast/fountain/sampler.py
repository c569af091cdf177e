"""Weighted discrete sampling with Vose's alias method.

The alias table is built once from a weight list and then sampled with
two uniform draws per call, so a degree table can be shared by every part
of an encoding without per-draw setup.
"""

from __future__ import annotations

from typing import Callable, Sequence


class RandomSampler:
    """Alias-method sampler over indexes ``0 .. len(weights) - 1``."""

    def __init__(self, weights: Sequence[float]):
        if not weights:
            raise ValueError("weights must not be empty")
        if any(w < 0 for w in weights):
            raise ValueError("weights must be non-negative")

        # Summed left to right so every implementation builds the same table.
        total = 0.0
        for w in weights:
            total += w
        if total <= 0:
            raise ValueError("weights must have a positive sum")

        n = len(weights)
        scaled = [w * float(n) / total for w in weights]

        # Index lists are filled from the top down and consumed from the end.
        small: list[int] = []
        large: list[int] = []
        for i in range(n - 1, -1, -1):
            if scaled[i] < 1:
                small.append(i)
            else:
                large.append(i)

        probs = [0.0] * n
        aliases = [0] * n
        while small and large:
            a = small.pop()
            g = large.pop()
            probs[a] = scaled[a]
            aliases[a] = g
            scaled[g] += scaled[a] - 1
            if scaled[g] < 1:
                small.append(g)
            else:
                large.append(g)

        while large:
            probs[large.pop()] = 1.0
        while small:
            probs[small.pop()] = 1.0

        self.probs = tuple(probs)
        self.aliases = tuple(aliases)

    def __len__(self) -> int:
        return len(self.probs)

    def next(self, rng: Callable[[], float]) -> int:
        """Draw one index using *rng*, a source of uniform floats in [0, 1)."""
        r1 = rng()
        r2 = rng()
        i = int(len(self.probs) * r1)
        return i if r2 < self.probs[i] else self.aliases[i]
