"""
R-peak detection (Pan-Tompkins-lite) over a filtered window.

1. first difference of the filtered wave
2. squared, integrated over a 100 ms moving window
3. decaying envelope; threshold is a fixed fraction of it
4. local maxima of the integrated energy above threshold are candidates
5. candidates inside the refractory period of the last beat are skipped
6. each accepted candidate is moved to the largest filtered sample within
   +/-50 ms, and that refined index becomes the new refractory anchor
"""
from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import List, Tuple

import numpy as np

from .config import DEFAULT_CONFIG, EcgConfig
from .models import Beat

logger = logging.getLogger(__name__)

NO_BEAT = -(10**9)


@dataclass
class DetectorState:
    """Integration buffer, envelope and refractory anchor for one pass."""

    window: int
    buffer: np.ndarray = field(init=False)
    total: float = 0.0
    cursor: int = 0
    envelope: float = 0.0
    last_accepted: int = NO_BEAT

    def __post_init__(self):
        self.buffer = np.zeros(self.window, dtype=np.float64)

    def integrate(self, squared: float) -> float:
        self.total += squared - self.buffer[self.cursor]
        self.buffer[self.cursor] = squared
        self.cursor = (self.cursor + 1) % self.window
        if self.cursor == 0:
            # Resync once per lap so rounding residue cannot outlive the window.
            self.total = float(self.buffer.sum())
        return self.total / self.window

    def track(self, energy: float, decay: float) -> float:
        self.envelope = max(self.envelope * decay, energy)
        return self.envelope


def integrate_energy(
    filtered: np.ndarray, state: DetectorState, config: EcgConfig = DEFAULT_CONFIG
) -> Tuple[np.ndarray, np.ndarray]:
    """Moving-window integrated squared slope and its adaptive threshold."""
    d = np.diff(filtered, prepend=filtered[:1]) if filtered.size else filtered
    squared = d * d

    energy = np.empty(filtered.size, dtype=np.float64)
    threshold = np.empty(filtered.size, dtype=np.float64)
    for i, sq in enumerate(squared):
        energy[i] = state.integrate(float(sq))
        threshold[i] = config.threshold_gain * state.track(energy[i], config.envelope_decay)
    return energy, threshold


def detect(filtered, fs: int, config: EcgConfig = DEFAULT_CONFIG) -> List[Beat]:
    """Return beats ordered by index, at least one refractory period apart."""
    x = np.asarray(filtered, dtype=np.float64)
    n = x.size
    if n < 3:
        return []

    state = DetectorState(window=config.integration_samples(fs))
    energy, threshold = integrate_energy(x, state, config)
    refractory = config.refractory_samples(fs)
    half = config.peak_search_samples(fs)

    beats: List[Beat] = []
    for i in range(1, n - 1):
        mi = energy[i]
        if not (mi > threshold[i] and mi >= energy[i - 1] and mi >= energy[i + 1]):
            continue
        if i - state.last_accepted < refractory:
            continue
        # Never look back into the refractory period of the previous beat.
        lo = max(0, i - half, state.last_accepted + refractory)
        hi = min(n - 1, i + half)
        peak = lo + int(np.argmax(x[lo:hi + 1]))
        beats.append(Beat(sample_index=peak, amplitude=float(x[peak])))
        state.last_accepted = peak

    logger.debug("Detected %d beats in %d samples at %d Hz", len(beats), n, fs)
    return beats
