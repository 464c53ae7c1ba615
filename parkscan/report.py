"""Tabular reports (pandas) for analysis results."""

from __future__ import annotations

from pathlib import Path

import pandas as pd

from parkscan.types import AnalysisResult

SLOT_COLUMNS = ["id", "x", "y", "w", "h", "status"]


def slots_frame(result: AnalysisResult) -> pd.DataFrame:
    """One row per slot, in slot id order."""
    rows = [s.to_dict() for s in result.slots]
    return pd.DataFrame(rows, columns=SLOT_COLUMNS)


def summary_frame(result: AnalysisResult) -> pd.DataFrame:
    """Single-row occupancy summary with human-readable column names."""
    s = result.summary
    data = {
        "Total Number of Slots": [s.total],
        "Occupied Slots": [s.occupied],
        "Available Slots": [s.available],
        "Occupancy Rate (%)": [round(s.occupancy_rate_percent, 1)],
    }
    return pd.DataFrame(data)


def write_report(result: AnalysisResult, path: str | Path, per_slot: bool = False) -> Path:
    """Write the summary (or the per-slot table) as CSV and return the path."""
    p = Path(path)
    p.parent.mkdir(parents=True, exist_ok=True)
    df = slots_frame(result) if per_slot else summary_frame(result)
    df.to_csv(p, index=False)
    return p
