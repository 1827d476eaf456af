from __future__ import annotations

import argparse
from pathlib import Path
import sys

from loguru import logger

from app.dispatcher import MediaDispatcher
from core.errors import ArchiveError
from core.exif.block import EncodingProfile
from core.models import PHOTO_EXTENSIONS, VIDEO_EXTENSIONS, ErrorPolicy, RunOptions
from infrastructure.archive_repository import ArchiveRepository
from infrastructure.logging import find_latest_log_file, init_logging
from infrastructure.settings import JsonSettings

BASE_DIR = Path(__file__).parent
PROG_NAME = "archive-exif"
VERSION = "0.3.0"


def _build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog=PROG_NAME,
        description="Transform and organize photos and videos from an exported archive "
        "according to the associated metadata",
    )
    parser.add_argument("-d", "--dry-run", action="store_true", help="compute but write nothing")
    parser.add_argument("-i", "--input", type=Path, default=Path("."), help="archive root")
    parser.add_argument("-o", "--output", type=Path, default=Path("./out"), help="output root")
    parser.add_argument("--skip-photos", action="store_true")
    parser.add_argument("--skip-videos", action="store_true")
    parser.add_argument(
        "-v", "--verbosity", action="count", default=0, help="repeat for info/debug/trace"
    )
    parser.add_argument(
        "--profile",
        choices=[p.value for p in EncodingProfile],
        default=None,
        help="which EXIF tags carry caption and date (default: image-description)",
    )
    parser.add_argument(
        "--keep-going",
        action="store_true",
        default=None,
        help="skip failing items instead of aborting the run",
    )
    parser.add_argument(
        "--verify", action="store_true", default=None, help="read back every written photo"
    )
    parser.add_argument(
        "--settings", type=Path, default=None, help="settings JSON (default: ./settings.json)"
    )
    parser.add_argument("--log-dir", type=Path, default=None, help="also log to files here")
    parser.add_argument("--version", action="version", version=f"%(prog)s {VERSION}")
    return parser


def build_options(args: argparse.Namespace, settings: JsonSettings) -> RunOptions:
    """Merge CLI arguments over settings into one immutable `RunOptions`."""
    profile = args.profile or settings.get(
        "encoding.profile", EncodingProfile.IMAGE_DESCRIPTION.value
    )
    byte_order = str(settings.get("encoding.byte_order", "MM"))
    if byte_order not in ("MM", "II"):
        raise ValueError(f"encoding.byte_order must be MM or II, got {byte_order!r}")
    if args.keep_going:
        policy = ErrorPolicy.SKIP_ITEM
    else:
        policy = ErrorPolicy(settings.get("run.error_policy", ErrorPolicy.ABORT.value))
    verify = args.verify if args.verify is not None else settings.get_bool("run.verify")
    return RunOptions(
        input_root=args.input,
        output_root=args.output,
        dry_run=args.dry_run,
        skip_photos=args.skip_photos,
        skip_videos=args.skip_videos,
        profile=EncodingProfile(profile),
        byte_order=byte_order,
        error_policy=policy,
        verify=verify,
        photo_extensions=settings.get_extensions("media.photo_extensions", PHOTO_EXTENSIONS),
        video_extensions=settings.get_extensions("media.video_extensions", VIDEO_EXTENSIONS),
    )


def run(options: RunOptions) -> int:
    repo = ArchiveRepository(options.input_root)
    albums = list(repo.load_albums())
    logger.trace("Albums: {}", albums)
    videos = repo.load_videos() if options.videos_enabled else []

    summary = MediaDispatcher(options).run(albums, videos)
    return 0 if summary.ok else 1


def main(argv: list[str] | None = None) -> int:
    args = _build_parser().parse_args(argv)
    init_logging(args.verbosity, args.log_dir)
    logger.info("{} version: {}", PROG_NAME, VERSION)

    try:
        if args.settings is not None:
            settings = JsonSettings.load(args.settings)
        else:
            settings = JsonSettings.load_optional(BASE_DIR / "settings.json")
        options = build_options(args, settings)
    except (OSError, ValueError) as ex:
        logger.error("Invalid configuration: {}", ex)
        return 2

    if options.dry_run:
        logger.info("Dry run: no files will be written")
    try:
        code = run(options)
    except ArchiveError as ex:
        logger.error("{}", ex)
        code = 1

    if args.log_dir is not None:
        logger.info("Log file: {}", find_latest_log_file(args.log_dir))
    return code


if __name__ == "__main__":
    raise SystemExit(main(sys.argv[1:]))
