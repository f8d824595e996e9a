"""
Data contract models for the ECG service.

These Pydantic models define the JSON shapes returned by the minute, page,
export and analysis endpoints, so the viewer and the processing code can
change independently.
"""
from __future__ import annotations

from typing import Annotated, List, Literal, Optional, Tuple

from pydantic import BaseModel, Field

Int16 = Annotated[int, Field(ge=-32768, le=32767)]


class Beat(BaseModel):
    """One detected R-peak on the filtered waveform."""

    sample_index: int = Field(..., ge=0, examples=[625])
    amplitude: float = Field(..., examples=[812.4])


class RhythmSummary(BaseModel):
    beat_count: int = 0
    hr_bpm: float = 0.0
    sdnn_ms: float = 0.0
    rmssd_ms: float = 0.0


class AmplitudeScale(BaseModel):
    """Vertical scale shared by every panel of a page."""

    lo: float
    hi: float
    degenerate: bool = Field(
        default=False,
        description="True when the data range collapsed and [-amp_cap, amp_cap] was substituted.",
    )


class GridLines(BaseModel):
    """Grid in normalized panel coordinates (x to the right, y downward)."""

    vertical: List[float] = Field(default_factory=list, description="x of each whole-second line")
    horizontal: List[float] = Field(default_factory=list, description="y of each row divider")


class Panel(BaseModel):
    index: int
    segment_start: int = Field(..., description="First sample of the panel, page-local")
    segment_length: int = Field(..., description="Nominal panel span in samples")
    sample_count: int = Field(..., description="Samples actually available in the span")
    t_start_s: int
    t_end_s: int
    local_beats: List[Beat] = Field(default_factory=list)
    grid: GridLines
    polyline: List[Tuple[float, float]] = Field(default_factory=list)
    midline: Optional[float] = Field(
        default=None, description="Set instead of a polyline when the segment has fewer than 2 samples"
    )
    markers: List[float] = Field(default_factory=list, description="x of each beat marker")


class Page(BaseModel):
    fs: int
    panel_seconds: int
    scale: AmplitudeScale
    panels: List[Panel]


class MinutePage(BaseModel):
    """One minute of a recording, as served to the viewer."""

    schema_version: Literal["ecg-minute/v1"] = "ecg-minute/v1"
    fs: int
    samples: List[int]
    beats: List[Beat]
    total_minutes: int
    current_minute: int
    start_sample: int
    current_ts_rounded: int
    summary: RhythmSummary


class ExportRow(BaseModel):
    global_sample_index: int
    sample_index_in_minute: int
    amplitude: int


class RecordInfo(BaseModel):
    name: str
    size_bytes: int
    fs: int
    total_samples: int
    duration_s: int
    duration_hm: str = Field(..., examples=["07:42"])
    total_minutes: int
    start_ts_rounded: int


class RecordAnalysis(BaseModel):
    """Whole-recording analysis: one filter and detection pass."""

    duration_s: float
    beats: List[Beat]
    rr_ms: List[float]
    summary: RhythmSummary
    wave_head: List[int] = Field(default_factory=list, description="First 10 s of the filtered wave")


class EcgSegment(BaseModel):
    """Input payload: a short single-lead segment posted for analysis."""

    schema_version: Literal["ecg-seg/v1"] = "ecg-seg/v1"
    segment_id: str = Field(..., examples=["demo_1700000000000"])
    sampling_rate_hz: int = Field(..., ge=1, examples=[125])
    samples: List[Int16] = Field(
        ...,
        description="Signed 16-bit samples, one per sample time.",
        examples=[[12, 15, 31, 40]],
    )


class SegmentAnalysis(BaseModel):
    schema_version: Literal["ecg-feat/v1"] = "ecg-feat/v1"
    segment_id: str
    beats: List[Beat]
    rr_intervals_ms: List[float]
    summary: RhythmSummary
