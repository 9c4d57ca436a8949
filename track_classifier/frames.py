"""
Conversion between pandas DataFrames and Fix sequences.

Lets callers who already hold GPS data in a DataFrame (one row per fix)
feed the engine directly, and turns Fix lists back into a DataFrame for
inspection or export.
"""

import numpy as np
import pandas as pd
from typing import List, Sequence

from .models import Fix


FIX_COLUMNS = [
    'timestamp', 'latitude', 'longitude', 'speed',
    'day_key', 'explanation_tag', 'description_tag', 'group_name',
]


def fixes_from_dataframe(
    df: pd.DataFrame,
    time_col: str = 'timestamp',
    lat_col: str = 'latitude',
    lon_col: str = 'longitude',
    speed_col: str = 'speed',
    tz: str = 'UTC',
) -> List[Fix]:
    """
    Build Fix objects from a trajectory DataFrame.

    Naive timestamps are localised to ``tz``. A missing speed column gives
    speed 0. Tag columns are copied when present; otherwise ``day_key`` and
    ``group_name`` default to the fix's calendar date.

    Args:
        df: DataFrame with one row per GPS fix, in time order
        time_col: Name of timestamp column
        lat_col: Name of latitude column (degrees)
        lon_col: Name of longitude column (degrees)
        speed_col: Name of speed column (km/h)
        tz: Timezone for naive timestamps

    Returns:
        List of Fix in row order
    """
    if len(df) == 0:
        return []

    times = pd.to_datetime(df[time_col])
    if times.dt.tz is None:
        times = times.dt.tz_localize(tz)

    speeds = df[speed_col].to_numpy(dtype=float) if speed_col in df.columns else np.zeros(len(df))
    lats = df[lat_col].to_numpy(dtype=float)
    lons = df[lon_col].to_numpy(dtype=float)

    fixes = []
    for i, ts in enumerate(times):
        when = ts.to_pydatetime()
        row = df.iloc[i]
        day_key = str(row['day_key']) if 'day_key' in df.columns else when.date().isoformat()
        fixes.append(Fix(
            latitude=float(lats[i]),
            longitude=float(lons[i]),
            timestamp=when,
            speed=float(speeds[i]),
            day_key=day_key,
            explanation_tag=str(row['explanation_tag']) if 'explanation_tag' in df.columns else '',
            description_tag=str(row['description_tag']) if 'description_tag' in df.columns else '',
            group_name=str(row['group_name']) if 'group_name' in df.columns else day_key,
        ))
    return fixes


def fixes_to_dataframe(fixes: Sequence[Fix]) -> pd.DataFrame:
    """Convert a Fix sequence to a DataFrame with one column per Fix field."""
    return pd.DataFrame(
        [
            {
                'timestamp': f.timestamp,
                'latitude': f.latitude,
                'longitude': f.longitude,
                'speed': f.speed,
                'day_key': f.day_key,
                'explanation_tag': f.explanation_tag,
                'description_tag': f.description_tag,
                'group_name': f.group_name,
            }
            for f in fixes
        ],
        columns=FIX_COLUMNS,
    )
