"""
Command-line interface for track_classifier.

Run:
    python -m track_classifier --settings settings.ini
    python -m track_classifier --folder data_files --type-file .csv --type-map both
"""

import argparse
import logging
from dataclasses import replace
from pathlib import Path
from typing import List, Optional

from .config import ALLOWED_FILE_TYPES, ALLOWED_MAP_TYPES, SETTINGS_FILE, Settings, load_settings, write_example_settings
from .errors import TrackClassifierError
from .kml import export_run
from .pipeline import TrackPipeline
from .readers import find_track_files, group_by_day, load_fixes, merge_descriptions

logger = logging.getLogger(__name__)


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog='track_classifier',
        description='Convert GPS logs into KML/KMZ maps of movement, parking, signal loss and speed.',
    )
    parser.add_argument('--settings', type=str, default=SETTINGS_FILE, help='INI settings file')
    parser.add_argument('--folder', type=str, default=None, help='Folder with GPS log files (overrides settings)')
    parser.add_argument('--type-file', choices=ALLOWED_FILE_TYPES, default=None,
                        help='Log file extension (overrides settings)')
    parser.add_argument('--type-map', choices=ALLOWED_MAP_TYPES, default=None,
                        help='What to create (overrides settings)')
    parser.add_argument('--out-dir', type=str, default='.', help='Folder for KML/KMZ output')
    parser.add_argument('--icons', type=str, default=None, metavar='DIR',
                        help='Folder with a.png, b.png, parking.png and direction.png to ship with the output')
    parser.add_argument('--workers', type=int, default=None, help='Process days on this many threads')
    parser.add_argument('--plot', type=str, default=None, help='Also save a PNG overview of all days')
    parser.add_argument('--example-settings', type=str, default=None, metavar='PATH',
                        help='Write a commented example settings file and exit')
    parser.add_argument('-v', '--verbose', action='store_true', help='Debug logging')
    return parser


def _apply_overrides(settings: Settings, args: argparse.Namespace) -> Settings:
    overrides = {}
    if args.folder is not None:
        overrides['default_folder'] = args.folder
    if args.type_file is not None:
        overrides['type_file'] = args.type_file
    if args.type_map is not None:
        overrides['type_map'] = args.type_map
    return replace(settings, **overrides) if overrides else settings


def _log_settings(settings: Settings) -> None:
    logger.info("Settings: %s", settings.source or 'defaults')
    logger.info("Folder %s, file type %s, map type %s", settings.default_folder, settings.type_file, settings.type_map)
    logger.info(
        "Stop %d min, max distance %.2f km, speed map %.1f km/h, km posts %s every %g km, merge files %s",
        settings.stop_minutes, settings.max_distance, settings.speed_map,
        'on' if settings.km_sign else 'off', settings.km_steps, settings.file_merge,
    )


def run(settings: Settings, out_dir: str = '.', workers: Optional[int] = None,
        plot_path: Optional[str] = None, icon_dir: Optional[str] = None) -> int:
    """Read, classify and export one folder of logs. Returns a process exit code."""
    try:
        files = find_track_files(settings.default_folder, settings.type_file)
    except FileNotFoundError as exc:
        logger.error("%s", exc)
        return 1
    if not files:
        logger.error("No %s files found in %s", settings.type_file, settings.default_folder)
        return 1
    logger.info("Found %d files", len(files))

    fixes = load_fixes(settings, files)
    if not fixes:
        logger.error("No valid fixes in %d files", len(files))
        return 1

    by_day = group_by_day(merge_descriptions(fixes), file_merge=settings.file_merge)
    result = TrackPipeline.from_settings(settings).process(by_day, max_workers=workers)

    out = Path(out_dir)
    out.mkdir(parents=True, exist_ok=True)
    for path in export_run(result, settings, out, icon_dir=icon_dir):
        logger.info("Created file %s", path)

    if plot_path:
        from .visualization import plot_run

        plot_run(result, save_path=plot_path)
        logger.info("Created file %s", plot_path)
    return 0


def main(argv: Optional[List[str]] = None) -> int:
    """CLI entrypoint."""
    parser = build_parser()
    args = parser.parse_args(argv)

    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.INFO,
        format='%(asctime)s %(levelname)s %(name)s: %(message)s',
    )

    if args.example_settings:
        write_example_settings(args.example_settings)
        return 0

    try:
        settings = _apply_overrides(load_settings(args.settings), args)
        if settings.type_map == 'settings':
            write_example_settings()
            return 0
        _log_settings(settings)
        return run(settings, out_dir=args.out_dir, workers=args.workers, plot_path=args.plot,
                   icon_dir=args.icons)
    except TrackClassifierError as exc:
        logger.error("%s", exc)
        return 1


if __name__ == '__main__':
    raise SystemExit(main())
