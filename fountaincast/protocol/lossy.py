"""Lossy channel simulator: what a scanner actually sees of a frame stream.

Simulates a one-way camera-at-screen link:
  1. Burst erasures (frames missed while the camera refocuses or the
     viewer looks away)
  2. Duplicates (the same frame scanned on consecutive camera frames)
  3. Reordering (frames scanned out of display order)

Each effect is configured independently via LossConfig and driven by a
seeded random state so runs are reproducible.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Sequence, TypeVar

import numpy as np

T = TypeVar("T")


@dataclass
class LossConfig:
    """Configuration for channel loss effects."""

    # Probability that a burst of erasures starts at a given frame
    loss_rate: float = 0.2
    # Maximum length of each burst (uniform in 1..burst_len)
    burst_len: int = 1

    # Probability that a delivered frame is delivered twice
    duplicate_rate: float = 0.0

    # Deliver in random order instead of display order
    shuffle: bool = False

    # Random seed for reproducibility
    seed: int = 42


class LossyChannel:
    """Drops, repeats and reorders frames."""

    def __init__(self, config: LossConfig | None = None):
        self.config = config or LossConfig()
        self._rng = np.random.RandomState(self.config.seed)
        self.dropped = 0

    def transmit(self, frames: Sequence[T]) -> list[T]:
        """Return the frames that reach the receiver."""
        cfg = self.config
        delivered: list[T] = []
        i = 0
        while i < len(frames):
            if self._rng.random_sample() < cfg.loss_rate:
                burst = int(self._rng.randint(1, max(cfg.burst_len, 1) + 1))
                self.dropped += min(burst, len(frames) - i)
                i += burst
                continue
            delivered.append(frames[i])
            if cfg.duplicate_rate and self._rng.random_sample() < cfg.duplicate_rate:
                delivered.append(frames[i])
            i += 1

        if cfg.shuffle:
            order = self._rng.permutation(len(delivered))
            delivered = [delivered[j] for j in order]
        return delivered
