"""
Settings for track conversion.

Values come from an INI file (``settings.ini`` by default) with the
sections ``File``, ``Fixed``, ``Number``, ``Boolean``, ``Color`` and
``Other``. A missing file or a missing key gives the default. A value that
cannot be parsed or is out of range logs a warning and falls back to the
default. Unsupported file or map types raise ConfigError.
"""

import configparser
import logging
from dataclasses import dataclass, field, fields
from datetime import timedelta
from pathlib import Path
from typing import Optional, Tuple, Union
from zoneinfo import ZoneInfo, ZoneInfoNotFoundError

from .errors import ConfigError

logger = logging.getLogger(__name__)


RGB = Tuple[int, int, int]

SETTINGS_FILE = 'settings.ini'

ALLOWED_FILE_TYPES = ('.txt', '.csv', '.0805', '.hero8', '.canyon')
ALLOWED_MAP_TYPES = ('map', 'speed', 'both', 'settings')

# Key -> INI section
_SECTIONS = {
    'default_folder': 'File',
    'file_map': 'File',
    'file_speed': 'File',
    'file_kmz': 'File',
    'type_file': 'Fixed',
    'type_map': 'Fixed',
    'line_width': 'Number',
    'stop_minutes': 'Number',
    'speed_map': 'Number',
    'km_steps': 'Number',
    'max_distance': 'Number',
    'speed_gps': 'Number',
    'direction_scale': 'Number',
    'old_camera': 'Boolean',
    'file_merge': 'Boolean',
    'km_sign': 'Boolean',
    'km_sign_visibility': 'Boolean',
    'kmz_file': 'Boolean',
    'color_road': 'Color',
    'color_speed': 'Color',
    'color_start': 'Color',
    'color_end': 'Color',
    'color_disrupted': 'Color',
    'color_parking': 'Color',
    'color_speed_start': 'Color',
    'color_speed_end': 'Color',
    'color_speed_direction': 'Color',
    'time_zone': 'Other',
}

# Inclusive (low, high) limits for numeric settings
_RANGES = {
    'line_width': (1, 10),
    'stop_minutes': (1, 10),
    'speed_map': (0.0, 200.0),
    'km_steps': (0.001, 1000.0),
    'max_distance': (0.0, 1000.0),
    'speed_gps': (0.0, 10.0),
    'direction_scale': (0.1, 5.0),
}


@dataclass
class Settings:
    """All tunable values; defaults match a typical dashcam setup."""
    # [File]
    default_folder: str = 'data_files'
    file_map: str = 'CameraMap.kml'
    file_speed: str = 'CameraSpeed.kml'
    file_kmz: str = 'CameraKmz.kmz'
    # [Fixed]
    type_file: str = '.txt'
    type_map: str = 'map'
    # [Number]
    line_width: int = 3
    stop_minutes: int = 5  # parking pause
    speed_map: float = 90.0  # km/h, speed map threshold
    km_steps: float = 10.0  # km between posts, 0.2 = 200 m
    max_distance: float = 2.0  # km, jump treated as signal loss
    speed_gps: float = 5.0  # km/h, .csv rows below this are dropped
    direction_scale: float = 1.0
    # [Boolean]
    old_camera: bool = True
    file_merge: bool = False
    km_sign: bool = False
    km_sign_visibility: bool = False
    kmz_file: bool = False
    # [Color]
    color_road: RGB = (0, 0, 255)
    color_speed: RGB = (255, 0, 0)
    color_start: RGB = (0, 255, 75)
    color_end: RGB = (255, 165, 0)
    color_disrupted: RGB = (255, 0, 0)
    color_parking: RGB = (255, 255, 255)
    color_speed_start: RGB = (35, 139, 35)
    color_speed_end: RGB = (220, 20, 60)
    color_speed_direction: RGB = (255, 255, 255)
    # [Other]
    time_zone: str = 'UTC'
    source: Optional[Path] = field(default=None, compare=False)

    def __post_init__(self):
        if self.type_file not in ALLOWED_FILE_TYPES:
            raise ConfigError(f"Invalid file type: {self.type_file!r}. Allowed: {', '.join(ALLOWED_FILE_TYPES)}")
        if self.type_map not in ALLOWED_MAP_TYPES:
            raise ConfigError(f"Invalid map type: {self.type_map!r}. Allowed: {', '.join(ALLOWED_MAP_TYPES)}")

    @property
    def stop_threshold(self) -> timedelta:
        return timedelta(minutes=self.stop_minutes)

    @property
    def zone(self) -> ZoneInfo:
        return ZoneInfo(self.time_zone)

    @staticmethod
    def rgb_to_kml_hex(color: RGB, opacity: int = 100) -> str:
        """
        Convert an RGB colour to KML's ``aabbggrr`` hex notation.

        Args:
            color: (red, green, blue), each 0-255
            opacity: Alpha as a percentage (0-100)

        Returns:
            Eight lowercase hex digits, alpha first
        """
        if not 0 <= opacity <= 100:
            raise ValueError(f"Opacity must be between 0 and 100, got {opacity}")
        red, green, blue = color
        alpha = int(opacity / 100.0 * 255)
        return f"{alpha:02x}{blue:02x}{green:02x}{red:02x}"


def _parse_bool(value: str) -> bool:
    normalized = value.strip().lower()
    if normalized in {'1', 'true', 'yes', 'on'}:
        return True
    if normalized in {'0', 'false', 'no', 'off'}:
        return False
    raise ValueError(f"not a boolean: {value!r}")


def _parse_color(value: str) -> RGB:
    parts = [int(p.strip()) for p in value.split(',')]
    if len(parts) != 3 or not all(0 <= p <= 255 for p in parts):
        raise ValueError(f"not an RGB triple: {value!r}")
    return parts[0], parts[1], parts[2]


def _parse_zone(value: str) -> str:
    try:
        ZoneInfo(value)
    except (ZoneInfoNotFoundError, ValueError) as exc:
        raise ValueError(f"unknown time zone: {value!r}") from exc
    return value


def _parse_value(name: str, raw: str, default):
    if isinstance(default, bool):
        return _parse_bool(raw)
    if isinstance(default, int):
        return int(raw.strip())
    if isinstance(default, float):
        return float(raw.strip())
    if isinstance(default, tuple):
        return _parse_color(raw)
    if name == 'time_zone':
        return _parse_zone(raw.strip())
    value = raw.strip()
    if not value:
        raise ValueError("empty value")
    return value


def load_settings(path: Union[str, Path] = SETTINGS_FILE) -> Settings:
    """
    Load settings from an INI file.

    Args:
        path: Location of the INI file

    Returns:
        Settings; defaults for anything missing or invalid

    Raises:
        ConfigError: If the file is not valid INI, or ``type_file`` or
            ``type_map`` is unsupported
    """
    p = Path(path)
    defaults = Settings()

    if not p.is_file():
        logger.info("Settings file %s not found, using defaults", p)
        return defaults

    parser = configparser.ConfigParser(interpolation=None, inline_comment_prefixes=('#', ';'))
    try:
        parser.read(p, encoding='utf-8')
    except configparser.Error as exc:
        raise ConfigError(f"Cannot read settings {p}: {exc}") from exc

    values = {}
    for f in fields(Settings):
        section = _SECTIONS.get(f.name)
        if section is None:
            continue
        default = getattr(defaults, f.name)
        raw = parser.get(section, f.name, fallback=None)
        if raw is None:
            logger.debug("%s not set, using default %r", f.name, default)
            continue
        try:
            value = _parse_value(f.name, raw, default)
        except ValueError as exc:
            logger.warning("Invalid %s value %r (%s); using default %r", f.name, raw, exc, default)
            continue

        limits = _RANGES.get(f.name)
        if limits is not None and not limits[0] <= value <= limits[1]:
            logger.warning("%s=%r is outside %s..%s; using default %r", f.name, value, limits[0], limits[1], default)
            continue
        values[f.name] = value

    return Settings(source=p, **values)


EXAMPLE_INI = """\
[File]
# Folder searched for GPS log files named YYYY-MM-DD[_explanation][_description].ext
default_folder=data_files
# Map file name, created next to the application
file_map=CameraMap.kml
# Speed map file name
file_speed=CameraSpeed.kml
# KMZ archive name
file_kmz=CameraKmz.kmz
[Fixed]
# Allowed file extensions: .txt, .csv, .0805, .hero8, .canyon
type_file=.txt
# What to create: map, speed, both or settings (writes this example file)
type_map=both
[Number]
# Line thickness on the map (1-10)
line_width=3
# Pause in minutes that counts as parking and starts a new line (1-10)
stop_minutes=5
# Lowest speed (km/h) drawn on the speed map
speed_map=90.0
# Kilometer posts every x kilometers. 0.2 means every 200 meters
km_steps=10
# Distance in km between two fixes that counts as a lost signal
max_distance=2.0
# .csv rows slower than this (km/h) are dropped. Range 0.0 - 10.0
speed_gps=5.0
# Size of speed direction icons, 0.1 - 5.0
direction_scale=1.0
[Boolean]
# .txt files only: old camera (0803) true, new camera (0805) false
old_camera=true
# Merge several files of the same day into one day entry
file_merge=false
# Calculate kilometer posts and speed markers
km_sign=false
# Show kilometer posts and speed markers without clicking
km_sign_visibility=false
# Package everything into a KMZ archive
kmz_file=false
[Color]
# RGB colors, each number 0-255
color_road=0,0,255
color_speed=255,0,0
color_start=0,255,75
color_end=255,165,0
color_disrupted=255,0,0
color_parking=255,255,255
color_speed_start=35,139,35
color_speed_end=220,20,60
color_speed_direction=255,255,255
[Other]
# IANA time zone used for times shown on the map
time_zone=UTC
"""


def write_example_settings(path: Union[str, Path] = 'settings.example.ini') -> Path:
    """Write a commented example settings file and return its path."""
    p = Path(path)
    p.write_text(EXAMPLE_INI, encoding='utf-8')
    logger.info("Wrote example settings to %s", p)
    return p
