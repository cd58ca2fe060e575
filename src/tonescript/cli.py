#!/usr/bin/env python3
"""tonescript - Render melody notation to raw 16-bit stereo PCM."""

import argparse
import json
import logging
import sys
from contextlib import ExitStack
from pathlib import Path
from typing import BinaryIO, TextIO

from .config import ConfigError, DEFAULT_CONFIG, load_audio_config, save_config
from .parser import NoteParser, ParseError
from .paths import config_file
from .pipeline import iter_parsed, render
from .synthesis import SampleOutOfRange


def setup_logging(quiet: bool = False, verbose: bool = False) -> None:
    """Send log records to stderr at the level chosen on the command line."""
    if quiet:
        level = logging.ERROR
    elif verbose:
        level = logging.DEBUG
    else:
        level = logging.WARNING
    logging.basicConfig(level=level, format="%(levelname)s %(name)s: %(message)s", stream=sys.stderr)


def _open_input(stack: ExitStack, path: str | None) -> TextIO:
    if path is None or path == "-":
        return sys.stdin
    return stack.enter_context(open(path, encoding="utf-8"))


def _open_output(stack: ExitStack, path: str | None) -> BinaryIO:
    if path is None or path == "-":
        return sys.stdout.buffer
    return stack.enter_context(open(path, "wb"))


def _audio_config(args: argparse.Namespace):
    return load_audio_config(
        sample_rate=getattr(args, "sample_rate", None),
        volume=getattr(args, "volume", None),
        max_octave=getattr(args, "max_octave", None),
        enforce_nyquist=False if getattr(args, "allow_aliasing", False) else None,
    )


def cmd_render(args: argparse.Namespace) -> int:
    """Handle the render command."""
    try:
        config = _audio_config(args)
    except ConfigError as e:
        print(f"Error: {e}", file=sys.stderr)
        return 1

    created = None
    try:
        with ExitStack() as stack:
            source = _open_input(stack, args.input)
            sink = _open_output(stack, args.output)
            if sink is not sys.stdout.buffer:
                created = Path(args.output)
            stats = render(source, sink, config)
    except (OSError, SampleOutOfRange) as e:
        # Don't leave a truncated PCM file behind
        if created is not None:
            created.unlink(missing_ok=True)
        print(f"Error: {e}", file=sys.stderr)
        return 1

    if not args.quiet:
        seconds = stats.frames / config.sample_rate
        print(
            f"Rendered {stats.notes} note(s), {seconds:.2f}s at {config.sample_rate} Hz"
            + (f" ({stats.skipped} token(s) skipped)" if stats.skipped else ""),
            file=sys.stderr,
        )
    return 0


def cmd_parse(args: argparse.Namespace) -> int:
    """Handle the parse command: show how each token is understood."""
    try:
        parser = NoteParser(_audio_config(args))
    except ConfigError as e:
        print(f"Error: {e}", file=sys.stderr)
        return 1

    failures = 0
    try:
        with ExitStack() as stack:
            source = _open_input(stack, args.input)
            for _, token, result in iter_parsed(source, parser):
                if isinstance(result, ParseError):
                    failures += 1
                    print(f"{token}\t{type(result).__name__}\t{result.message}")
                else:
                    print(f"{token}\t{result.duration}\t{result.frequency:.4f}")
    except OSError as e:
        print(f"Error: {e}", file=sys.stderr)
        return 1

    return 1 if failures and args.strict else 0


def cmd_config(args: argparse.Namespace) -> int:
    """Handle the config command."""
    if args.init:
        path = config_file()
        if path.exists() and not args.force:
            print(f"Config already exists: {path} (use --force to overwrite)", file=sys.stderr)
            return 1
        save_config(DEFAULT_CONFIG)
        print(f"Wrote default config to: {path}", file=sys.stderr)
        return 0

    try:
        config = load_audio_config()
    except ConfigError as e:
        print(f"Error: {e}", file=sys.stderr)
        return 1

    print(json.dumps({"config_file": str(config_file()), "audio": config.to_dict()}, indent=2))
    return 0


def _add_audio_arguments(parser: argparse.ArgumentParser) -> None:
    # SUPPRESS keeps a -v given before the subcommand from being reset
    parser.add_argument(
        "-v", "--verbose", action="store_true", default=argparse.SUPPRESS, help="Log every parsed note"
    )
    parser.add_argument("--sample-rate", type=int, help="Sample rate in Hz (default: 44100)")
    parser.add_argument("--max-octave", type=int, help="Highest accepted octave (default: 10)")
    parser.add_argument(
        "--allow-aliasing",
        action="store_true",
        help="Accept notes above the Nyquist frequency instead of skipping them",
    )


def main(argv: list[str] | None = None) -> int:
    """Main entry point."""
    parser = argparse.ArgumentParser(
        prog="tonescript",
        description="Render melody notation (e.g. '1/8c#4 do4 z') to raw PCM",
    )
    parser.add_argument("-v", "--verbose", action="store_true", help="Log every parsed note")
    subparsers = parser.add_subparsers(dest="command", help="Commands")

    # render command
    render_parser = subparsers.add_parser(
        "render", help="Render notation to raw s16le stereo PCM"
    )
    render_parser.add_argument(
        "input", nargs="?", help="Notation file (reads from stdin if not provided)"
    )
    render_parser.add_argument(
        "-o", "--output", help="Output file (writes to stdout if not provided)"
    )
    render_parser.add_argument("--volume", type=float, help="Volume between 0 and 1 (default: 0.5)")
    _add_audio_arguments(render_parser)
    render_parser.add_argument(
        "-q", "--quiet", action="store_true", help="Suppress progress messages and warnings"
    )
    render_parser.set_defaults(func=cmd_render)

    # parse command
    parse_parser = subparsers.add_parser("parse", help="Show the duration and frequency of each token")
    parse_parser.add_argument(
        "input", nargs="?", help="Notation file (reads from stdin if not provided)"
    )
    parse_parser.add_argument(
        "--strict", action="store_true", help="Exit with status 1 if any token fails to parse"
    )
    _add_audio_arguments(parse_parser)
    parse_parser.set_defaults(func=cmd_parse, quiet=False)

    # config command
    config_parser = subparsers.add_parser("config", help="Show the effective audio configuration")
    config_parser.add_argument("--init", action="store_true", help="Write the default config file")
    config_parser.add_argument("--force", action="store_true", help="Overwrite an existing config file")
    config_parser.set_defaults(func=cmd_config, quiet=False)

    args = parser.parse_args(argv)

    if args.command is None:
        parser.print_help()
        return 0

    setup_logging(quiet=args.quiet, verbose=args.verbose)
    return args.func(args)


if __name__ == "__main__":
    sys.exit(main())
