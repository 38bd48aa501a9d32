"""
CLI interface for credly2png
"""
import argparse
import logging
import sys
from datetime import date
from pathlib import Path

from .config import load_settings
from .converter import BadgeConverter
from .errors import Credly2PngError
from .exporter import ARCHIVE_NAME, CSV_NAME
from .models import BatchFilters, ProfileOutcome
from .pipeline import PipelineListener


class ConsoleListener(PipelineListener):
    """Print per-profile progress as the batch runs"""

    def __init__(self, verbose: bool = False):
        self.verbose = verbose

    def profile_started(self, profile_id: str) -> None:
        if self.verbose:
            print(f"Fetching badges for user: {profile_id}...")

    def profile_reserved(self, profile_id: str, display_name: str, slots: range) -> None:
        print(f"Found {len(slots)} badges for {display_name}. Processing images...")

    def profile_failed(self, outcome: ProfileOutcome) -> None:
        print(f"{outcome.profile_id}: profile fetch failed ({outcome.error})", file=sys.stderr)


def create_parser() -> argparse.ArgumentParser:
    """Create CLI argument parser"""
    parser = argparse.ArgumentParser(
        description="Fetch Credly badges and render them onto fixed-size PNG canvases"
    )

    parser.add_argument(
        "profiles",
        nargs="*",
        help="Credly profile URLs or usernames"
    )

    parser.add_argument(
        "--input-file", "-i",
        help="File with one profile URL or username per line"
    )

    parser.add_argument(
        "--width",
        type=int,
        help="Canvas width in pixels (default 512)"
    )

    parser.add_argument(
        "--height",
        type=int,
        help="Canvas height in pixels (default 254)"
    )

    parser.add_argument(
        "--keyword",
        help="Keep badges whose name, issuer or description contains this text"
    )

    parser.add_argument(
        "--since",
        type=_parse_date,
        help="Keep badges issued on or after this date (YYYY-MM-DD)"
    )

    parser.add_argument(
        "--output-dir", "-o",
        default="outputs",
        help="Directory for exported files"
    )

    parser.add_argument(
        "--no-images",
        action="store_true",
        help="Do not write individual PNG files"
    )

    parser.add_argument(
        "--zip",
        nargs="?",
        const=ARCHIVE_NAME,
        help="Also write a ZIP archive (path relative to the output dir)"
    )

    parser.add_argument(
        "--csv",
        nargs="?",
        const=CSV_NAME,
        help="Also write a CSV summary (path relative to the output dir)"
    )

    parser.add_argument(
        "--common",
        action="store_true",
        help="Print badges shared by two or more profiles"
    )

    parser.add_argument(
        "--profile-concurrency",
        type=int,
        help="Profiles fetched at the same time"
    )

    parser.add_argument(
        "--image-concurrency",
        type=int,
        help="Images loaded at the same time, across all profiles"
    )

    parser.add_argument(
        "--config",
        help="YAML settings file"
    )

    parser.add_argument(
        "--verbose", "-v",
        action="store_true",
        help="Verbose output"
    )

    return parser


def main():
    """Main CLI entry point"""
    parser = create_parser()
    args = parser.parse_args()

    logging.basicConfig(
        level=logging.INFO if args.verbose else logging.WARNING,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )

    try:
        lines = _collect_input_lines(args)
        if not lines:
            parser.error("Please enter a Credly profile URL or use --input-file")

        settings = load_settings(
            args.config,
            width=args.width,
            height=args.height,
            profile_concurrency=args.profile_concurrency,
            image_concurrency=args.image_concurrency,
        )
        converter = BadgeConverter(settings, listener=ConsoleListener(verbose=args.verbose))

        if args.verbose:
            print(f"Profiles: {len(lines)}")
            print(f"Canvas: {settings.width}x{settings.height}")
            print(f"Output dir: {args.output_dir}")

        filters = BatchFilters(keyword=args.keyword, issued_after=args.since)
        result = converter.fetch(lines, filters)

        if result.invalid_lines:
            print(
                f"Skipped {len(result.invalid_lines)} invalid line(s), continuing with the rest.",
                file=sys.stderr,
            )

        _print_summary(result)

        output_dir = Path(args.output_dir)
        if not args.no_images and result.store.rendered_slots():
            written = converter.save_images(result, str(output_dir))
            print(f"Images written: {len(written)} -> {output_dir}")
        if args.zip:
            if result.store.rendered_slots():
                print(f"Archive written: {converter.save_archive(result, str(output_dir / args.zip))}")
            else:
                print("No processed badges to archive, ZIP skipped.", file=sys.stderr)
        if args.csv:
            print(f"CSV written: {converter.save_csv(result, str(output_dir / args.csv))}")

        if args.common:
            report = converter.common_report(result)
            print("\nShared badges:")
            print(report or "No badges shared by two or more profiles.")
    except Credly2PngError as exc:
        if args.verbose:
            raise
        print(f"Error: {exc}", file=sys.stderr)
        sys.exit(1)


def _collect_input_lines(args) -> list:
    lines = list(args.profiles or [])
    if args.input_file:
        try:
            text = Path(args.input_file).expanduser().read_text(encoding="utf-8")
        except OSError as exc:
            raise Credly2PngError(f"Unable to read input file: {args.input_file}") from exc
        lines.extend(text.splitlines())
    return [line for line in lines if line.strip()]


def _parse_date(value: str) -> date:
    try:
        return date.fromisoformat(value)
    except ValueError as exc:
        raise argparse.ArgumentTypeError(f"Invalid date (expected YYYY-MM-DD): {value}") from exc


def _print_summary(result) -> None:
    store = result.store
    for outcome in result.outcomes:
        if outcome.failed:
            print(f"{outcome.profile_id}: fetch failed ({outcome.error})")
            continue
        name = store.display_name(outcome.profile_id)
        failed = sum(1 for index in outcome.slots if store.slot(index).error)
        line = f"{name}: {outcome.record_count} badges"
        if outcome.fetched_count != outcome.record_count:
            line += f" ({outcome.fetched_count} before filters)"
        if failed:
            line += f", {failed} image(s) failed to load"
        print(line)

    if not len(store) and not result.failed_profiles:
        print("No badges found for this user.")


if __name__ == "__main__":
    main()
