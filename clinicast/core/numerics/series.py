"""
Reading window preparation.

Windows are normalised into DataFrames with the columns
['ds', 'y', 'unique_id'] and sorted ascending by timestamp. Callers are not
trusted to pre-sort.
"""

from collections.abc import Sequence

import pandas as pd

from clinicast.core.domain.errors import MalformedInputError
from clinicast.core.domain.readings import Reading

COLUMNS = ["ds", "y", "unique_id", "position"]


def readings_to_frame(readings: Sequence[Reading]) -> pd.DataFrame:
    """
    Build a sorted frame for one subject/signal window.

    The ``position`` column holds each reading's index in the input.

    Raises:
        MalformedInputError: mixed signal types, mixed subjects or repeated timestamps
    """
    if len(readings) == 0:
        return pd.DataFrame(columns=COLUMNS)

    if len({r.signal_type for r in readings}) > 1:
        raise MalformedInputError("Reading window mixes signal types")
    if len({r.subject_id for r in readings}) > 1:
        raise MalformedInputError("Reading window mixes subjects")

    df = pd.DataFrame({
        "ds": pd.to_datetime([r.timestamp for r in readings], utc=True),
        "y": [float(r.value) for r in readings],
        "unique_id": [r.subject_id for r in readings],
        "position": range(len(readings)),
    })

    if df["ds"].duplicated().any():
        raise MalformedInputError("Reading window repeats a timestamp; ordering is ambiguous")

    return df.sort_values("ds", kind="stable").reset_index(drop=True)


def order_readings(readings: Sequence[Reading]) -> list[Reading]:
    """Return the readings sorted ascending by timestamp, after validation."""
    df = readings_to_frame(readings)
    return [readings[i] for i in df["position"].tolist()]
