#!/usr/bin/env python3
"""
Command-line interface for epub2json.

Usage:
    # Convert every .epub in a directory to one .json file each
    epub2json convert -i ./epubs -o ./json

    # Same, with debug logging
    epub2json -v convert -i ./epubs -o ./json
"""

import argparse
import logging
import sys

from . import __version__

logger = logging.getLogger(__name__)

EXAMPLES = """\
  Examples:
    $ epub2json convert -i </path/to/epubs> -o </path/to/output>
"""


def setup_logging(verbose: bool = False) -> None:
    """Configure logging."""
    level = logging.DEBUG if verbose else logging.INFO
    logging.basicConfig(
        level=level,
        format="%(asctime)s [%(levelname)s] %(message)s",
        datefmt="%H:%M:%S",
    )


def cmd_convert(args: argparse.Namespace) -> int:
    """Convert a directory of EPUB files to JSON."""
    from .config import ConverterConfig
    from .errors import ValidationError
    from .scheduler import BatchScheduler
    from .validator import require_directories

    input_path = args.input_path or ""
    output_path = args.output_path or ""

    if not input_path:
        print("Missing input path", file=sys.stderr)
        print(EXAMPLES, file=sys.stderr)
        return 1

    if not output_path:
        print("Missing output path", file=sys.stderr)
        print(EXAMPLES, file=sys.stderr)
        return 1

    try:
        require_directories(input_path, output_path)
    except ValidationError as e:
        print(str(e), file=sys.stderr)
        return 1

    config = ConverterConfig(
        input_dir=input_path,
        output_dir=output_path,
        show_progress=not args.no_progress,
    )

    scheduler = BatchScheduler.from_config(config)
    summary = scheduler.run_sync(config.input_dir, config.output_dir)

    print(f"\n{summary.summary()}", file=sys.stderr)
    return 0


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="epub2json",
        description="Convert a directory of EPUB files to JSON documents",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog=EXAMPLES,
    )
    parser.add_argument("-v", "--verbose", action="store_true", help="Verbose output")
    parser.add_argument("-V", "--version", action="version", version=f"%(prog)s {__version__}")

    subparsers = parser.add_subparsers(dest="command")

    p_convert = subparsers.add_parser(
        "convert",
        help="Convert epub files to json files",
        description="Convert every .epub file in the input path to a .json file in the output path",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog=EXAMPLES,
    )
    p_convert.add_argument("-i", "--input-path", help="the path to the epub files")
    p_convert.add_argument("-o", "--output-path", help="the path to output the json files")
    p_convert.add_argument("--no-progress", action="store_true", help="Don't show the progress line")
    p_convert.set_defaults(func=cmd_convert)

    return parser


def main(argv: list[str] | None = None) -> int:
    """Main entry point."""
    parser = build_parser()
    args = parser.parse_args(argv)

    if not getattr(args, "func", None):
        parser.print_help()
        return 1

    setup_logging(args.verbose)
    return args.func(args)


if __name__ == "__main__":
    sys.exit(main())
