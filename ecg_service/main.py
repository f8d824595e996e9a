import io
import logging
import os
from typing import List, Literal

from fastapi import Depends, FastAPI, HTTPException, Query, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse, Response

from .config import APP_ORIGINS, STORAGE_DIR, EcgConfig, load_config
from .models import EcgSegment, MinutePage, Page, RecordAnalysis, RecordInfo, SegmentAnalysis
from .pipeline import (
    analyze_recording,
    analyze_segment,
    export_rows,
    minute_page,
    page_for_minute,
    record_info,
    write_rows_csv,
)
from .render import render_page_png
from .store import SampleStream, StorageUnreadable, open_stream

logger = logging.getLogger(__name__)

app = FastAPI(title="ECG Service", version="1.0.0")

app.add_middleware(
    CORSMiddleware,
    allow_origins=APP_ORIGINS,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


def get_storage_dir() -> str:
    return STORAGE_DIR


def get_config() -> EcgConfig:
    return load_config()


def open_record(
    name: str,
    storage_dir: str = Depends(get_storage_dir),
    config: EcgConfig = Depends(get_config),
) -> SampleStream:
    """Resolve a record name inside the storage directory."""
    if not name or name in (".", "..") or os.path.basename(name) != name:
        raise HTTPException(status_code=400, detail=f"Invalid record name: {name!r}")
    return open_stream(os.path.join(storage_dir, name), fs=config.fs, header_bytes=config.header_bytes)


@app.exception_handler(StorageUnreadable)
async def storage_unreadable_handler(request: Request, exc: StorageUnreadable):
    logger.warning("%s %s: %s", request.method, request.url.path, exc)
    return JSONResponse(status_code=404, content={"detail": f"Record not readable: {os.path.basename(exc.path)}"})


@app.get("/health")
def health():
    return {"status": "ok"}


@app.get("/ecg/records", response_model=List[RecordInfo])
def list_records(storage_dir: str = Depends(get_storage_dir), config: EcgConfig = Depends(get_config)):
    if not os.path.isdir(storage_dir):
        return []
    records = []
    for name in sorted(os.listdir(storage_dir)):
        path = os.path.join(storage_dir, name)
        if name.startswith(".") or not os.path.isfile(path):
            continue
        stream = open_stream(path, fs=config.fs, header_bytes=config.header_bytes)
        records.append(record_info(stream, name))
    return records


@app.get("/ecg/records/{name}", response_model=RecordInfo)
def get_record(name: str, stream: SampleStream = Depends(open_record)):
    return record_info(stream, name)


@app.get("/ecg/records/{name}/minute", response_model=MinutePage)
def get_minute(
    minute: int = Query(1, alias="min"),
    stream: SampleStream = Depends(open_record),
    config: EcgConfig = Depends(get_config),
):
    """One minute of raw samples with the beats detected in it."""
    return minute_page(stream, minute, config)


@app.get("/ecg/records/{name}/page", response_model=Page)
def get_page(
    minute: int = Query(1, alias="min"),
    source: Literal["raw", "filtered"] = "raw",
    stream: SampleStream = Depends(open_record),
    config: EcgConfig = Depends(get_config),
):
    return page_for_minute(stream, minute, config, source)


@app.get("/ecg/records/{name}/page.png")
def get_page_png(
    name: str,
    minute: int = Query(1, alias="min"),
    source: Literal["raw", "filtered"] = "raw",
    stream: SampleStream = Depends(open_record),
    config: EcgConfig = Depends(get_config),
):
    page = page_for_minute(stream, minute, config, source)
    png = render_page_png(page, title=f"{name} - minute {max(1, minute)}")
    return Response(content=png, media_type="image/png")


@app.get("/ecg/records/{name}/export.csv")
def export_csv(
    name: str,
    minute: int = Query(1, alias="min"),
    beats_only: bool = False,
    stream: SampleStream = Depends(open_record),
    config: EcgConfig = Depends(get_config),
):
    buf = io.StringIO()
    write_rows_csv(export_rows(stream, minute, config, beats_only=beats_only), buf)
    filename = f"{name}_min{max(1, minute)}{'_beats' if beats_only else ''}.csv"
    return Response(
        content=buf.getvalue(),
        media_type="text/csv",
        headers={"Content-Disposition": f'attachment; filename="{filename}"'},
    )


@app.get("/ecg/records/{name}/analysis", response_model=RecordAnalysis)
def get_analysis(
    seconds: int = Query(0, ge=0),
    stream: SampleStream = Depends(open_record),
    config: EcgConfig = Depends(get_config),
):
    """Whole-recording (or leading ``seconds``) beat and HRV analysis."""
    return analyze_recording(stream, config, seconds)


@app.post("/ecg/analyze", response_model=SegmentAnalysis)
def analyze(segment: EcgSegment, config: EcgConfig = Depends(get_config)) -> SegmentAnalysis:
    """Beat and HRV analysis of a posted segment."""
    return analyze_segment(segment.segment_id, segment.samples, segment.sampling_rate_hz, config)
