"""
Configuration for the ECG service.

Service settings are read from the environment once at import; the signal
processing constants live on ``EcgConfig`` which is passed into every
component call.
"""
from __future__ import annotations

import math
import os

from pydantic import BaseModel, ConfigDict, Field, model_validator

STORAGE_DIR = os.getenv("ECG_STORAGE_DIR", "data")
APP_ORIGINS = os.getenv("ECG_APP_ORIGINS", "http://localhost:3000").split(",")


class EcgConfig(BaseModel):
    """Sampling, filter, detector and page-layout constants."""

    model_config = ConfigDict(frozen=True)

    fs: int = Field(default=125, ge=1, description="Sampling rate in Hz")
    header_bytes: int = Field(default=0, ge=0)
    chunk_bytes: int = Field(default=8192, ge=2)

    # Bandpass corners (Hz)
    hpf_hz: float = Field(default=0.67, gt=0)
    lpf_hz: float = Field(default=35.0, gt=0)

    # Beat detector
    integration_s: float = Field(default=0.10, gt=0)
    envelope_decay: float = Field(default=0.995, gt=0, lt=1)
    threshold_gain: float = Field(default=0.45, gt=0)
    refractory_s: float = Field(default=0.24, ge=0)
    peak_search_s: float = Field(default=0.05, ge=0)

    # Page layout: 6 panels x 10 s = one minute
    panel_count: int = Field(default=6, ge=1)
    panel_seconds: int = Field(default=10, ge=1)
    amp_cap: float = Field(default=1500.0, gt=0)
    vertical_padding: float = Field(default=0.03, ge=0, lt=0.5)

    @model_validator(mode="after")
    def _check_band(self) -> "EcgConfig":
        if self.hpf_hz >= self.lpf_hz:
            raise ValueError("hpf_hz must be below lpf_hz")
        return self

    @staticmethod
    def samples(seconds: float, fs: int) -> int:
        """Whole number of samples in ``seconds`` at ``fs``, rounding half up."""
        return int(math.floor(seconds * fs + 0.5))

    def integration_samples(self, fs: int) -> int:
        return max(1, self.samples(self.integration_s, fs))

    def refractory_samples(self, fs: int) -> int:
        return self.samples(self.refractory_s, fs)

    def peak_search_samples(self, fs: int) -> int:
        return self.samples(self.peak_search_s, fs)

    def panel_samples(self, fs: int) -> int:
        return max(1, self.panel_seconds * fs)

    def page_samples(self, fs: int) -> int:
        return self.panel_count * self.panel_samples(fs)


DEFAULT_CONFIG = EcgConfig()


def load_config() -> EcgConfig:
    """Build an ``EcgConfig`` honouring ``ECG_*`` environment overrides."""
    overrides = {}
    if os.getenv("ECG_FS"):
        overrides["fs"] = int(os.environ["ECG_FS"])
    if os.getenv("ECG_HEADER_BYTES"):
        overrides["header_bytes"] = int(os.environ["ECG_HEADER_BYTES"])
    if os.getenv("ECG_AMP_CAP"):
        overrides["amp_cap"] = float(os.environ["ECG_AMP_CAP"])
    return EcgConfig(**overrides)
