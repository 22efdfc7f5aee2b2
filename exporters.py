# exporters.py
import json
from dataclasses import asdict, fields
from enum import Enum

import numpy as np
import pandas as pd

from inputs import Assumptions, normalise


def records_to_frame(records) -> pd.DataFrame:
    """One row per year; the tax breakdown is flattened into tax_* columns."""
    rows = []
    for r in records:
        row = {f.name: getattr(r, f.name) for f in fields(r) if f.name != "tax_breakdown"}
        row.update({f"tax_{k}": v for k, v in asdict(r.tax_breakdown).items()})
        rows.append(row)
    return pd.DataFrame(rows)


def export_projection_csv(records) -> tuple[str, bytes]:
    df = records_to_frame(records)
    return "projection.csv", df.to_csv(index=False).encode()


def _json_default(o):
    if isinstance(o, Enum):
        return o.value
    if isinstance(o, np.ndarray):
        return o.tolist()
    if isinstance(o, (np.float32, np.float64, np.int32, np.int64)):
        return o.item()
    # Let json raise for anything else unexpected
    raise TypeError(f"Object of type {o.__class__.__name__} is not JSON serializable")


def export_assumptions(a: Assumptions) -> tuple[str, bytes]:
    """
    Export the assumptions to JSON that import_assumptions reads back.
    Enums are written as their string values.
    """
    blob = json.dumps(asdict(a), indent=2, default=_json_default)
    return "assumptions.json", blob.encode()


def import_assumptions(blob) -> Assumptions:
    if isinstance(blob, bytes):
        blob = blob.decode()
    data = json.loads(blob)
    if not isinstance(data, dict):
        raise ValueError("Assumptions file must contain a JSON object")
    return normalise(data)
