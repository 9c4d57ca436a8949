"""
KML and KMZ output.

Turns a RunResult into KML documents:
- Map: month folders, day folders, movement lines, disruption lines,
  parking points, day start/end icons and kilometer posts
- Speed: the same folder layout holding speed lines and speed markers

``write_kmz`` packages the documents with a ``doc.kml`` whose LookAt comes
from the run's ViewFrame. Icons are referenced by relative href under
``files/``; they are only shipped when an icon folder is given, otherwise
viewers show a missing-image marker in their place.
"""

import logging
import shutil
import xml.etree.ElementTree as ET
import zipfile
from datetime import datetime, timedelta, tzinfo
from pathlib import Path
from typing import Dict, List, Optional, Union

from .config import Settings
from .models import (
    LINE_STYLE_DISRUPTED,
    LINE_STYLE_ROAD,
    LINE_STYLE_SPEED,
    DayResult,
    DisruptionEvent,
    Fix,
    KmPost,
    RunResult,
    Segment,
    SpeedRun,
    StopEvent,
    ViewFrame,
)

logger = logging.getLogger(__name__)


KML_NS = 'http://www.opengis.net/kml/2.2'
DOC_FILE = 'doc.kml'
KMZ_KML_FOLDER = 'kml/'

ICON_START = 'a.png'
ICON_END = 'b.png'
ICON_PARKING = 'parking.png'
ICON_DIRECTION = 'direction.png'
ICON_FILES = (ICON_START, ICON_END, ICON_PARKING, ICON_DIRECTION)
ICON_FOLDER = 'files/'

ICON_STYLE_START = 'iconStyleStart'
ICON_STYLE_END = 'iconStyleEnd'
ICON_STYLE_PARKING = 'iconStyleParking'
ICON_STYLE_DIRECTION = 'iconStyleDirection'
ICON_STYLE_SPEED_START = 'iconStyleSpeedStart'
ICON_STYLE_SPEED_END = 'iconStyleSpeedEnd'
ICON_STYLE_SPEED_DIRECTION = 'iconStyleSpeedDirection'

LOCAL_TIME_FORMAT = '%d.%m.%Y %H:%M:%S'


def format_duration(duration: timedelta) -> str:
    """Format a duration as ``HH:MM:SS`` (hours are not wrapped at 24)."""
    total = int(duration.total_seconds())
    hours, rest = divmod(total, 3600)
    minutes, seconds = divmod(rest, 60)
    return f"{hours:02d}:{minutes:02d}:{seconds:02d}"


def format_local(when: datetime, zone: tzinfo) -> str:
    """Format a timestamp in ``zone`` as ``dd.mm.yyyy HH:MM:SS``."""
    return when.astimezone(zone).strftime(LOCAL_TIME_FORMAT)


def _text(parent: ET.Element, tag: str, value) -> ET.Element:
    el = ET.SubElement(parent, tag)
    el.text = str(value)
    return el


def _point(parent: ET.Element, longitude: float, latitude: float) -> None:
    point = ET.SubElement(parent, 'Point')
    _text(point, 'coordinates', f"{longitude},{latitude}")


class _KmlWriter:
    """Shared element helpers bound to one Settings instance."""

    def __init__(self, settings: Settings):
        self.settings = settings
        self.zone = settings.zone
        self.icon_folder = ('../' if settings.kmz_file else '') + ICON_FOLDER

    def color(self, rgb) -> str:
        return Settings.rgb_to_kml_hex(rgb, 100)

    def visibility(self, parent: ET.Element) -> None:
        _text(parent, 'visibility', '1' if self.settings.km_sign_visibility else '0')

    def local(self, when: datetime) -> str:
        return format_local(when, self.zone)

    def document(self, name: str, description: str):
        root = ET.Element('kml', {'xmlns': KML_NS})
        doc = ET.SubElement(root, 'Document')
        _text(doc, 'name', name)
        _text(doc, 'description', description)
        return root, doc

    def line_style(self, parent: ET.Element, style_id: str, rgb) -> None:
        style = ET.SubElement(parent, 'Style', {'id': style_id})
        line = ET.SubElement(style, 'LineStyle')
        _text(line, 'color', self.color(rgb))
        _text(line, 'width', self.settings.line_width)

    def icon_style(self, parent: ET.Element, style_id: str, icon: str, rgb, scale: float) -> None:
        style = ET.SubElement(parent, 'Style', {'id': style_id})
        icon_style = ET.SubElement(style, 'IconStyle')
        _text(icon_style, 'color', self.color(rgb))
        _text(icon_style, 'scale', scale)
        href_parent = ET.SubElement(icon_style, 'Icon')
        _text(href_parent, 'href', self.icon_folder + icon)

    def month_folders(self, root_doc: ET.Element, days: List[DayResult]) -> List:
        """Create YYYY-MM folders and one day folder per day, in run order."""
        months: Dict[str, ET.Element] = {}
        pairs = []
        for day in days:
            month_folder = months.get(day.month)
            if month_folder is None:
                month_folder = ET.SubElement(root_doc, 'Folder')
                _text(month_folder, 'name', day.month)
                months[day.month] = month_folder
            day_folder = ET.SubElement(month_folder, 'Folder')
            _text(day_folder, 'name', day.group_name)
            pairs.append((day, day_folder))
        return pairs

    def segment_placemark(self, parent: ET.Element, segment: Segment) -> None:
        placemark = ET.SubElement(parent, 'Placemark')
        _text(placemark, 'name', segment.label)
        start, end = segment.start, segment.end
        _text(placemark, 'description', (
            f"<b>Start:</b> {self.local(start.timestamp)}<br>"
            f"<b>End:</b> {self.local(end.timestamp)}<br>"
            f"<b>Length:</b> {format_duration(segment.duration)}<br>"
            f"<b>Start Coordinates:</b> {start.latitude:f}, {start.longitude:f}<br>"
            f"<b>End Coordinates:</b> {end.latitude:f}, {end.longitude:f}<br>"
            f"<b>Distance:</b> {segment.length_km:.2f} km"
        ))
        _text(placemark, 'styleUrl', '#' + segment.style_id)
        if segment.is_degenerate:
            # A single fix has no line to draw
            _point(placemark, start.longitude, start.latitude)
            return
        line = ET.SubElement(placemark, 'LineString')
        _text(line, 'coordinates', ' '.join(f"{p.longitude},{p.latitude},0" for p in segment.points))

    def icon_placemark(self, parent: ET.Element, fix: Fix, style_id: str, name: str) -> None:
        placemark = ET.SubElement(parent, 'Placemark')
        _text(placemark, 'name', name)
        _text(placemark, 'styleUrl', '#' + style_id)
        _text(placemark, 'description', f"{name} {self.local(fix.timestamp)}")
        _point(placemark, fix.longitude, fix.latitude)

    def disruption_placemark(self, parent: ET.Element, event: DisruptionEvent) -> None:
        a, b = event.from_fix, event.to_fix
        placemark = ET.SubElement(parent, 'Placemark')
        _text(placemark, 'name', 'Disruption')
        _text(placemark, 'description', (
            f"<b>Start:</b> {self.local(a.timestamp)}<br><b>End:</b> {self.local(b.timestamp)}<br>"
            f"<b>Start Coordinates:</b> {a.latitude:f}, {a.longitude:f}<br>"
            f"<b>End Coordinates:</b> {b.latitude:f}, {b.longitude:f}"
        ))
        _text(placemark, 'styleUrl', '#' + LINE_STYLE_DISRUPTED)
        line = ET.SubElement(placemark, 'LineString')
        _text(line, 'coordinates', f"{a.longitude},{a.latitude} {b.longitude},{b.latitude}")

    def parking_placemark(self, parent: ET.Element, event: StopEvent) -> None:
        placemark = ET.SubElement(parent, 'Placemark')
        _text(placemark, 'name', 'Parking')
        _text(placemark, 'description', (
            f"Start: <b>{self.local(event.from_fix.timestamp)}</b><br>"
            f"End: <b>{self.local(event.to_fix.timestamp)}</b><br>"
            f"Length: <b>{format_duration(event.duration)}</b>"
        ))
        _text(placemark, 'styleUrl', '#' + ICON_STYLE_PARKING)
        _point(placemark, event.from_fix.longitude, event.from_fix.latitude)

    def km_placemark(self, parent: ET.Element, post: KmPost) -> None:
        placemark = ET.SubElement(parent, 'Placemark')
        _text(placemark, 'name', f"{post.cumulative_distance_km:.2f} km.")
        self.visibility(placemark)
        _text(placemark, 'description', (
            f"The direction on the <b>{post.cumulative_distance_km:.2f}</b> kilometer post is "
            f"<b>{post.heading_degrees:.3f}</b> degrees. Local time: <b>{self.local(post.fix.timestamp)}</b>"
        ))
        _point(placemark, post.fix.longitude, post.fix.latitude)
        style = ET.SubElement(placemark, 'Style')
        icon_style = ET.SubElement(style, 'IconStyle')
        icon = ET.SubElement(icon_style, 'Icon')
        _text(icon, 'href', self.icon_folder + ICON_DIRECTION)
        _text(icon_style, 'scale', '1.0')
        _text(icon_style, 'color', 'ffffffff')
        _text(icon_style, 'heading', post.heading_degrees)

    def speed_markers(self, parent: ET.Element, run: SpeedRun) -> None:
        markers = run.markers
        for point, name, style_id in (
            (markers.start, 'Speed Start', ICON_STYLE_SPEED_START),
            (markers.end, 'Speed End', ICON_STYLE_SPEED_END),
        ):
            placemark = ET.SubElement(parent, 'Placemark')
            _text(placemark, 'name', name)
            self.visibility(placemark)
            _text(placemark, 'styleUrl', '#' + style_id)
            _point(placemark, point.longitude, point.latitude)

        # Heading is per marker, so the style is inline
        placemark = ET.SubElement(parent, 'Placemark')
        _text(placemark, 'name', 'Speed Direction')
        self.visibility(placemark)
        style = ET.SubElement(placemark, 'Style')
        icon_style = ET.SubElement(style, 'IconStyle')
        _text(icon_style, 'heading', f"{markers.heading_degrees:.1f}")
        icon = ET.SubElement(icon_style, 'Icon')
        _text(icon, 'href', self.icon_folder + ICON_DIRECTION)
        _text(icon_style, 'scale', self.settings.direction_scale)
        ET.SubElement(icon_style, 'hotSpot', {'x': '0.5', 'y': '0.5', 'xunits': 'fraction', 'yunits': 'fraction'})
        _point(placemark, markers.start.longitude, markers.start.latitude)


def build_map_document(run: RunResult, settings: Settings) -> ET.ElementTree:
    """
    Build the movement map KML.

    Args:
        run: Processed run
        settings: Colours, widths, time zone and visibility options

    Returns:
        ElementTree rooted at ``kml``
    """
    w = _KmlWriter(settings)
    s = settings
    root, doc = w.document('GPS to KML Map', f"Draws lines on the map. File type {s.type_file}")

    w.line_style(doc, LINE_STYLE_ROAD, s.color_road)
    w.line_style(doc, LINE_STYLE_DISRUPTED, s.color_disrupted)
    w.icon_style(doc, ICON_STYLE_START, ICON_START, s.color_start, 1.5)
    w.icon_style(doc, ICON_STYLE_END, ICON_END, s.color_end, 1.5)
    w.icon_style(doc, ICON_STYLE_PARKING, ICON_PARKING, s.color_parking, 1.5)
    w.icon_style(doc, ICON_STYLE_DIRECTION, ICON_DIRECTION, s.color_speed_direction, s.direction_scale)

    for day, folder in w.month_folders(doc, run.days):
        if day.first_fix is None:
            continue
        w.icon_placemark(folder, day.first_fix, ICON_STYLE_START, 'Start')
        for event in day.events:
            if isinstance(event, Segment):
                w.segment_placemark(folder, event)
            elif isinstance(event, DisruptionEvent):
                w.disruption_placemark(folder, event)
            elif isinstance(event, StopEvent):
                w.parking_placemark(folder, event)
        w.icon_placemark(folder, day.last_fix, ICON_STYLE_END, 'End')

        if day.km_posts:
            km_folder = ET.SubElement(folder, 'Folder')
            _text(km_folder, 'name', 'Kilometer posts')
            w.visibility(km_folder)
            for post in day.km_posts:
                w.km_placemark(km_folder, post)

    return ET.ElementTree(root)


def build_speed_document(run: RunResult, settings: Settings) -> ET.ElementTree:
    """
    Build the speed map KML: only stretches at or above ``settings.speed_map``.

    Args:
        run: Processed run
        settings: Colours, widths, time zone and visibility options

    Returns:
        ElementTree rooted at ``kml``
    """
    w = _KmlWriter(settings)
    s = settings
    root, doc = w.document(
        'GPS to KML Speed',
        f"This KML shows only the segments where speed is at least {s.speed_map} km/h.",
    )

    w.line_style(doc, LINE_STYLE_SPEED, s.color_speed)
    w.icon_style(doc, ICON_STYLE_START, ICON_START, s.color_start, 1.5)
    w.icon_style(doc, ICON_STYLE_END, ICON_END, s.color_end, 1.5)
    w.icon_style(doc, ICON_STYLE_SPEED_START, ICON_START, s.color_speed_start, s.direction_scale)
    w.icon_style(doc, ICON_STYLE_SPEED_END, ICON_END, s.color_speed_end, s.direction_scale)
    w.icon_style(doc, ICON_STYLE_SPEED_DIRECTION, ICON_DIRECTION, s.color_speed_direction, s.direction_scale)

    for day, folder in w.month_folders(doc, run.days):
        marker_folder = None
        for speed_run in day.speed_runs:
            w.segment_placemark(folder, speed_run.segment)
            if speed_run.markers is None:
                continue
            if marker_folder is None:
                marker_folder = ET.Element('Folder')
                _text(marker_folder, 'name', 'Speed Markers')
                w.visibility(marker_folder)
            w.speed_markers(marker_folder, speed_run)
        if marker_folder is not None:
            folder.append(marker_folder)

    return ET.ElementTree(root)


def _serialize(tree: ET.ElementTree) -> bytes:
    ET.indent(tree, space='    ', level=0)
    return ET.tostring(tree.getroot(), encoding='UTF-8', xml_declaration=True)


def write_kml(tree: ET.ElementTree, path: Union[str, Path]) -> Path:
    """Write a KML tree to ``path`` (UTF-8, indented)."""
    p = Path(path)
    p.write_bytes(_serialize(tree))
    logger.info("Wrote %s", p)
    return p


def build_kmz_index(
    view_frame: ViewFrame,
    settings: Settings,
    map_name: Optional[str] = None,
    speed_name: Optional[str] = None,
) -> ET.ElementTree:
    """
    Build ``doc.kml``: a LookAt framing the run and a NetworkLink per document.

    Args:
        view_frame: Camera placement for the whole run
        settings: Source of file type and speed threshold for descriptions
        map_name: Map KML file name inside the archive, if included
        speed_name: Speed KML file name inside the archive, if included
    """
    root = ET.Element('kml', {'xmlns': KML_NS})
    doc = ET.SubElement(root, 'Document')
    look_at = ET.SubElement(doc, 'LookAt')
    _text(look_at, 'longitude', view_frame.center_longitude)
    _text(look_at, 'latitude', view_frame.center_latitude)
    _text(look_at, 'altitude', view_frame.altitude_meters)
    _text(look_at, 'range', view_frame.range_meters)
    _text(look_at, 'tilt', 0)
    _text(look_at, 'heading', 0)
    _text(doc, 'name', 'GPS to KML')
    _text(doc, 'description', 'One or more different contents')

    links = []
    if map_name:
        links.append(('Map', f"Draw lines to map. File type: {settings.type_file}", map_name))
    if speed_name:
        links.append(('Speed', f"Speed {settings.speed_map} km/h or more. File type: {settings.type_file}",
                      speed_name))
    for name, description, href in links:
        link = ET.SubElement(doc, 'NetworkLink')
        _text(link, 'name', name)
        _text(link, 'description', description)
        href_parent = ET.SubElement(link, 'Link')
        _text(href_parent, 'href', KMZ_KML_FOLDER + href)

    return ET.ElementTree(root)


def _icon_files(icon_dir: Union[str, Path]) -> List[Path]:
    """Icons present in ``icon_dir``; missing ones are logged and skipped."""
    folder = Path(icon_dir)
    found = []
    for name in ICON_FILES:
        source = folder / name
        if source.is_file():
            found.append(source)
        else:
            logger.warning("Icon %s not found in %s", name, folder)
    return found


def copy_icons(icon_dir: Union[str, Path], out_dir: Union[str, Path] = '.') -> List[Path]:
    """
    Copy the map icons next to written KML files, into ``out_dir/files/``.

    Icons already present in the target folder are left alone.

    Returns:
        Paths of the icons copied
    """
    target_dir = Path(out_dir) / ICON_FOLDER
    target_dir.mkdir(parents=True, exist_ok=True)
    copied = []
    for source in _icon_files(icon_dir):
        target = target_dir / source.name
        if target.exists():
            continue
        shutil.copyfile(source, target)
        copied.append(target)
    logger.debug("Copied %d icons to %s", len(copied), target_dir)
    return copied


def write_kmz(
    path: Union[str, Path],
    view_frame: ViewFrame,
    settings: Settings,
    map_tree: Optional[ET.ElementTree] = None,
    speed_tree: Optional[ET.ElementTree] = None,
    icon_dir: Optional[Union[str, Path]] = None,
) -> Path:
    """
    Package map and/or speed documents into a KMZ archive.

    The archive holds ``doc.kml`` at the root, the documents under ``kml/``
    and, when ``icon_dir`` is given, the icons under ``files/``. Without
    icons the placemarks still reference ``files/`` and show as broken
    images in a viewer.

    Raises:
        ValueError: If neither document is given
    """
    if map_tree is None and speed_tree is None:
        raise ValueError("A KMZ needs at least one KML document")

    map_name = settings.file_map if map_tree is not None else None
    speed_name = settings.file_speed if speed_tree is not None else None
    index = build_kmz_index(view_frame, settings, map_name, speed_name)
    icons = _icon_files(icon_dir) if icon_dir is not None else []

    p = Path(path)
    with zipfile.ZipFile(p, 'w', compression=zipfile.ZIP_DEFLATED) as zf:
        zf.writestr(DOC_FILE, _serialize(index))
        if map_tree is not None:
            zf.writestr(KMZ_KML_FOLDER + map_name, _serialize(map_tree))
        if speed_tree is not None:
            zf.writestr(KMZ_KML_FOLDER + speed_name, _serialize(speed_tree))
        for icon in icons:
            zf.write(icon, ICON_FOLDER + icon.name)
    logger.info("Wrote %s", p)
    return p


def export_run(
    run: RunResult,
    settings: Settings,
    out_dir: Union[str, Path] = '.',
    icon_dir: Optional[Union[str, Path]] = None,
) -> List[Path]:
    """
    Write the outputs selected by ``settings.type_map`` and ``settings.kmz_file``.

    Icons are bundled into the KMZ, or copied to ``out_dir/files/`` next to
    plain KML files, only when ``icon_dir`` is given. Without it the icon
    hrefs point at files that do not exist.

    Returns:
        KML/KMZ paths written, in creation order
    """
    out = Path(out_dir)
    map_tree = build_map_document(run, settings) if settings.type_map in ('map', 'both') else None
    speed_tree = build_speed_document(run, settings) if settings.type_map in ('speed', 'both') else None

    if map_tree is None and speed_tree is None:
        return []

    if settings.kmz_file and run.view_frame is not None:
        return [write_kmz(out / settings.file_kmz, run.view_frame, settings, map_tree, speed_tree, icon_dir)]

    written = []
    if map_tree is not None:
        written.append(write_kml(map_tree, out / settings.file_map))
    if speed_tree is not None:
        written.append(write_kml(speed_tree, out / settings.file_speed))
    if icon_dir is not None:
        copy_icons(icon_dir, out)
    return written
