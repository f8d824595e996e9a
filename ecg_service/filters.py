"""
Causal single-pass bandpass: one-pole high-pass (baseline wander) followed by
one-pole low-pass (muscle and mains noise).

    hpf[i] = a_h * (hpf[i-1] + x[i] - x[i-1])        a_h = exp(-2*pi*f_h/fs)
    lpf[i] = (1 - a_l) * hpf[i] + a_l * lpf[i-1]     a_l = exp(-2*pi*f_l/fs)

State starts at zero for every window, so each minute begins with a short
settling transient.
"""
from __future__ import annotations

import math
from dataclasses import dataclass, replace
from typing import Tuple

import numpy as np
import scipy.signal as signal

from .config import DEFAULT_CONFIG, EcgConfig


def pole(corner_hz: float, fs: int) -> float:
    return math.exp(-2.0 * math.pi * corner_hz / fs)


@dataclass(frozen=True)
class FilterState:
    fs: int
    alpha_h: float
    alpha_l: float
    prev_input: float = 0.0
    prev_hpf_output: float = 0.0
    prev_lpf_output: float = 0.0

    @classmethod
    def fresh(cls, fs: int, config: EcgConfig = DEFAULT_CONFIG) -> "FilterState":
        if fs <= 0:
            raise ValueError(f"fs must be positive, got {fs}")
        return cls(fs=fs, alpha_h=pole(config.hpf_hz, fs), alpha_l=pole(config.lpf_hz, fs))


def run_filter(x: np.ndarray, state: FilterState) -> Tuple[np.ndarray, FilterState]:
    """Filter ``x`` starting from ``state``; returns the output and the state after the last sample."""
    x = np.asarray(x, dtype=np.float64)
    if x.size == 0:
        return np.zeros(0, dtype=np.float64), state

    a_h, a_l = state.alpha_h, state.alpha_l
    # Direct form II transposed: z[-1] = b1*x[-1] - a1*y[-1]
    zi_h = [a_h * (state.prev_hpf_output - state.prev_input)]
    hpf, _ = signal.lfilter([a_h, -a_h], [1.0, -a_h], x, zi=zi_h)
    zi_l = [a_l * state.prev_lpf_output]
    lpf, _ = signal.lfilter([1.0 - a_l], [1.0, -a_l], hpf, zi=zi_l)

    after = replace(
        state,
        prev_input=float(x[-1]),
        prev_hpf_output=float(hpf[-1]),
        prev_lpf_output=float(lpf[-1]),
    )
    return lpf, after


def bandpass(samples, fs: int, config: EcgConfig = DEFAULT_CONFIG) -> np.ndarray:
    """Filter one window from a zeroed state. Output has the input's length."""
    filtered, _ = run_filter(samples, FilterState.fresh(fs, config))
    return filtered
