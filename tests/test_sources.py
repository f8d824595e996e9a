import os

import numpy as np
import wfdb

from ecg_service.sources import import_wfdb_record
from ecg_service.store import read_window


def write_record(tmp_path, digital, fs=360):
    wfdb.wrsamp(
        "rec100",
        fs=fs,
        units=["mV", "mV"],
        sig_name=["MLII", "V5"],
        d_signal=digital,
        fmt=["16", "16"],
        adc_gain=[200.0, 200.0],
        baseline=[0, 0],
        write_dir=str(tmp_path),
    )
    return os.path.join(str(tmp_path), "rec100")


def test_import_single_channel(tmp_path):
    rng = np.random.default_rng(5)
    digital = rng.integers(-2000, 2000, size=(720, 2)).astype(np.int64)
    record = write_record(tmp_path, digital)

    out = str(tmp_path / "rec100.bin")
    stream = import_wfdb_record(record, out, channel=1)
    assert stream.fs == 360
    assert stream.total_samples == 720
    assert os.path.getsize(out) == 720 * 2
    assert read_window(stream, 0, 720).samples.tolist() == digital[:, 1].tolist()


def test_import_sampto(tmp_path):
    digital = np.tile(np.arange(-100, 100, dtype=np.int64)[:, None], (1, 2))
    record = write_record(tmp_path, digital)
    stream = import_wfdb_record(record, str(tmp_path / "head.bin"), sampto=50)
    assert stream.total_samples == 50
    assert read_window(stream, 0, 50).samples.tolist() == list(range(-100, -50))
