"""
Reading GPS log files into Fix sequences.

Supported inputs (one file per trip, named
``YYYY-MM-DD[_explanation][_description].ext``):
- ``.txt``: dashcam log, ``A,ddmmyy,hhmmss.sss,lat,N,lon,E,knots,...`` (UTC)
- ``.csv``: CanWay export, ``n,yyyy/mm/dd,hh:mm:ss.ss,...,lat,N,lon,E,alt,speed`` (UTC)
- ``.0805`` / ``.hero8`` / ``.canyon``: EXIF tool export,
  ``yyyy:mm:dd hh:mm:ss,lat,lon,speed`` (``.hero8`` speed in m/s)

After reading, ``merge_descriptions`` and ``group_by_day`` turn the flat
list into ordered per-day sequences ready for classification.
"""

import logging
import re
from dataclasses import dataclass
from datetime import datetime, timezone
from pathlib import Path
from typing import Dict, List, Optional, Sequence, Union

from .config import Settings
from .errors import FixParseError
from .models import Fix

logger = logging.getLogger(__name__)


KNOTS_TO_KMH = 1.852
MPS_TO_KMH = 3.6


@dataclass(frozen=True)
class FileMetadata:
    """Tags carried by a log file's name."""
    date: str
    explanation: str = ''
    description: str = ''

    @property
    def group_name(self) -> str:
        """``date_description``, or just the date when there is no description."""
        if self.description:
            return f"{self.date}_{self.description}"
        return self.date


def parse_filename(name: str, type_file: str) -> FileMetadata:
    """
    Split a log file name into date, explanation and description.

    ``2024-05-02.txt`` has only a date; ``2024-05-02_Tallinn-Parnu.txt`` has a
    description; ``2024-05-02_work_Tallinn-Parnu.txt`` has both, and anything
    after the second underscore belongs to the description. A name like
    ``2024-05-02_work_.txt`` carries an explanation with no description.

    Args:
        name: File name without folder
        type_file: Configured extension, e.g. ``.txt``

    Returns:
        FileMetadata
    """
    stem = name.split('.')[0]
    parts = stem.split('_')
    while len(parts) > 1 and parts[-1] == '':
        parts.pop()

    if len(parts) == 1:
        return FileMetadata(date=parts[0])
    if len(parts) == 2:
        if name.endswith('_' + type_file):
            return FileMetadata(date=parts[0], explanation=parts[1])
        return FileMetadata(date=parts[0], description=parts[1])
    return FileMetadata(date=parts[0], explanation=parts[1], description='_'.join(parts[2:]))


def find_track_files(folder: Union[str, Path], type_file: str) -> List[Path]:
    """
    List log files in ``folder`` whose names start with a date and end with ``type_file``.

    Raises:
        FileNotFoundError: If ``folder`` is not a directory
    """
    p = Path(folder)
    if not p.is_dir():
        raise FileNotFoundError(f"Invalid folder {p}")

    pattern = re.compile(r'^\d{4}-\d{2}-\d{2}.*' + re.escape(type_file) + r'$')
    return sorted(
        (f for f in p.iterdir() if f.is_file() and pattern.match(f.name)),
        key=lambda f: f.name,
    )


def _utc(year: int, month: int, day: int, hour: int, minute: int, second: int) -> datetime:
    try:
        return datetime(year, month, day, hour, minute, second, tzinfo=timezone.utc)
    except ValueError as exc:
        raise FixParseError(f"invalid date/time {year:04d}-{month:02d}-{day:02d} "
                            f"{hour:02d}:{minute:02d}:{second:02d}") from exc


def _make_fix(lat: float, lon: float, when: datetime, speed: float, meta: FileMetadata) -> Fix:
    return Fix(
        latitude=lat,
        longitude=lon,
        timestamp=when,
        speed=speed,
        day_key=meta.date,
        explanation_tag=meta.explanation,
        description_tag=meta.description,
        group_name=meta.group_name,
    )


def parse_txt_line(line: str, meta: FileMetadata, old_camera: bool = True) -> Optional[Fix]:
    """
    Parse a dashcam ``.txt`` line.

    Coordinates are degrees and minutes: the old camera (0803) writes
    ``+5834.7842`` / ``+02430.7068``, the new one (0805) ``5836.5182`` /
    ``2430.3033``. Speed is in knots.

    Returns:
        Fix, or None for lines without an ``A`` (valid fix) status

    Raises:
        FixParseError: If an ``A`` line is malformed
    """
    parts = line.strip().split(',')
    if parts[0].upper() != 'A':
        return None
    try:
        d, t = parts[1], parts[2]
        when = _utc(2000 + int(d[4:6]), int(d[2:4]), int(d[0:2]),
                    int(t[0:2]), int(t[2:4]), int(t[4:6]))
        lat_raw, lon_raw = parts[3], parts[5]
        if old_camera:
            lat = float(lat_raw[:3]) + float(lat_raw[3:]) / 60
            lon = float(lon_raw[:4]) + float(lon_raw[4:]) / 60
        else:
            lat = float(lat_raw[:2]) + float(lat_raw[2:]) / 60
            lon = float(lon_raw[:2]) + float(lon_raw[2:]) / 60
        if parts[4].strip().upper() == 'S':
            lat = -lat
        if parts[6].strip().upper() == 'W':
            lon = -lon
        speed = float(parts[7]) * KNOTS_TO_KMH
    except (IndexError, ValueError) as exc:
        raise FixParseError(f"malformed .txt line: {line.strip()!r}") from exc
    return _make_fix(lat, lon, when, speed, meta)


def parse_csv_line(line: str, meta: FileMetadata, min_speed: float = 0.0) -> Optional[Fix]:
    """
    Parse a CanWay ``.csv`` line.

    Columns 1-2 hold the UTC date and time, 5 and 7 latitude and longitude,
    10 the speed in km/h.

    Returns:
        Fix, or None when the speed is below ``min_speed`` (standing still)

    Raises:
        FixParseError: If the line is malformed
    """
    parts = line.strip().split(',')
    try:
        speed = float(parts[10])
        if speed < min_speed:
            return None
        when = datetime.strptime(f"{parts[1]} {parts[2]}", '%Y/%m/%d %H:%M:%S.%f').replace(tzinfo=timezone.utc)
        lat = float(parts[5])
        lon = float(parts[7])
    except (IndexError, ValueError) as exc:
        raise FixParseError(f"malformed .csv line: {line.strip()!r}") from exc
    return _make_fix(lat, lon, when, speed, meta)


def parse_camera_line(line: str, meta: FileMetadata, type_file: str) -> Optional[Fix]:
    """
    Parse an EXIF tool export line (``.0805``, ``.hero8``, ``.canyon``).

    ``.hero8`` speeds are m/s, the others km/h.

    Raises:
        FixParseError: If the line is malformed
    """
    parts = line.strip().split(',')
    try:
        date_part, time_part = parts[0].split(' ')[:2]
        year, month, day = (int(v) for v in date_part.split(':'))
        hh, mm, ss = (int(v) for v in time_part[:8].split(':'))
        when = _utc(year, month, day, hh, mm, ss)
        lat = float(parts[1])
        lon = float(parts[2])
        speed = float(parts[3])
    except (IndexError, ValueError) as exc:
        raise FixParseError(f"malformed {type_file} line: {line.strip()!r}") from exc
    if type_file == '.hero8':
        speed *= MPS_TO_KMH
    return _make_fix(lat, lon, when, speed, meta)


def parse_line(line: str, meta: FileMetadata, settings: Settings) -> Optional[Fix]:
    """Dispatch one line to the parser for ``settings.type_file``."""
    if settings.type_file == '.txt':
        return parse_txt_line(line, meta, settings.old_camera)
    if settings.type_file == '.csv':
        return parse_csv_line(line, meta, settings.speed_gps)
    return parse_camera_line(line, meta, settings.type_file)


def read_track_file(path: Union[str, Path], settings: Settings) -> List[Fix]:
    """
    Read all fixes from one log file.

    Malformed lines are skipped and counted; the count is logged once per file.
    """
    p = Path(path)
    meta = parse_filename(p.name, settings.type_file)
    fixes = []
    skipped = 0
    with p.open('r', encoding='utf-8', errors='replace') as f:
        for line in f:
            if not line.strip():
                continue
            try:
                fix = parse_line(line, meta, settings)
            except FixParseError as exc:
                skipped += 1
                logger.debug("%s: %s", p.name, exc)
                continue
            if fix is not None:
                fixes.append(fix)
    if skipped:
        logger.warning("%s: skipped %d malformed lines", p.name, skipped)
    return fixes


def load_fixes(settings: Settings, files: Optional[Sequence[Path]] = None) -> List[Fix]:
    """
    Read every matching log file in ``settings.default_folder``.

    Args:
        settings: Folder, file type and parser options
        files: Files to read instead of searching the folder

    Returns:
        Fixes of all files, files in name order, lines in file order
    """
    if files is None:
        files = find_track_files(settings.default_folder, settings.type_file)
    fixes: List[Fix] = []
    for path in files:
        file_fixes = read_track_file(path, settings)
        logger.debug("Read %d fixes from %s", len(file_fixes), path.name)
        fixes.extend(file_fixes)
    logger.info("Read %d fixes from %d files", len(fixes), len(files))
    return fixes


def _combine_descriptions(descriptions: Sequence[str]) -> str:
    # Dash-separated place names, first occurrence wins
    combined: List[str] = []
    for description in descriptions:
        for part in description.split('-'):
            if part and part not in combined:
                combined.append(part)

    first_part = descriptions[0].split('-')[0]
    last_part = descriptions[-1].split('-')[-1]
    if first_part and combined[0] != first_part:
        combined.insert(0, first_part)
    if last_part and combined[-1] != last_part:
        combined.append(last_part)
    return '-'.join(combined)


def merge_descriptions(fixes: Sequence[Fix]) -> List[Fix]:
    """
    Give every fix of a date one shared description.

    Trips of the same day (``Tallinn-Parnu`` and ``Parnu-Tallinn``) merge into
    ``date_Tallinn-Parnu-Tallinn``; a date with no description becomes just
    the date. Returns new Fix objects, the input is left untouched.
    """
    by_date: Dict[str, List[str]] = {}
    for fix in fixes:
        seen = by_date.setdefault(fix.day_key, [])
        if fix.description_tag not in seen:
            seen.append(fix.description_tag)

    merged: Dict[str, str] = {}
    for date, descriptions in by_date.items():
        non_empty = [d for d in descriptions if d]
        if not non_empty:
            combined = ''
        elif len(non_empty) == 1:
            combined = non_empty[0]
        else:
            combined = _combine_descriptions(non_empty)
        merged[date] = f"{date}_{combined}" if combined else date

    return [fix.with_description(merged[fix.day_key]) for fix in fixes]


def group_by_day(fixes: Sequence[Fix], file_merge: bool = False) -> Dict[str, List[Fix]]:
    """
    Group fixes into per-day sequences, sorted by timestamp.

    The key is the (merged) description tag; unless ``file_merge`` is set, a
    file's explanation is appended so that separate files of the same day
    stay separate.

    Returns:
        Ordered mapping of day key -> fixes, in first-seen order
    """
    groups: Dict[str, List[Fix]] = {}
    for fix in fixes:
        key = fix.description_tag
        if not file_merge and fix.explanation_tag:
            key = f"{key}_{fix.explanation_tag}"
        groups.setdefault(key, []).append(fix)

    # sorted() is stable, so equal timestamps keep file order
    return {key: sorted(day, key=lambda f: f.timestamp) for key, day in groups.items()}
