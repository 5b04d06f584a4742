"""CLI entrypoints for chaingen commands."""

from __future__ import annotations

import argparse
import sys
from pathlib import Path

from .errors import ChaingenError
from .logging import configure_logging
from .orchestrator import Orchestrator


def _add_verbose_option(
    parser: argparse.ArgumentParser, *, suppress_default: bool = False
) -> None:
    parser.add_argument(
        "-v",
        "--verbose",
        action="store_true",
        default=argparse.SUPPRESS if suppress_default else False,
        help="Increase log verbosity for troubleshooting.",
    )


def _build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="chaingen",
        description="Generate forwarding methods for composed Python classes.",
    )
    _add_verbose_option(parser)
    subparsers = parser.add_subparsers(dest="command", required=True)

    generate_parser = subparsers.add_parser(
        "generate",
        help="Generate *_chain.py modules for the components under a directory.",
    )
    _add_verbose_option(generate_parser, suppress_default=True)
    generate_parser.add_argument(
        "path",
        nargs="?",
        default=".",
        help="Source directory holding .chaingen.yml (defaults to current directory).",
    )
    generate_parser.add_argument(
        "--type",
        dest="types",
        help="Comma separated root component names (overrides the config file).",
    )
    generate_parser.add_argument(
        "--no-recursive",
        dest="recursive",
        action="store_false",
        default=None,
        help="Only emit modules for the root components.",
    )
    generate_parser.add_argument(
        "--file-suffix",
        help="Suffix of generated modules (defaults to _chain.py).",
    )
    generate_parser.add_argument(
        "--lenient",
        action="store_true",
        help="Drop conflicting operations instead of failing.",
    )
    generate_parser.add_argument(
        "--tag",
        help="dataclasses.field metadata key holding edge annotations.",
    )
    generate_parser.add_argument(
        "--dry-run",
        action="store_true",
        help="Print unified diffs instead of writing files.",
    )
    generate_parser.add_argument(
        "--log-file",
        type=Path,
        help="Also write logs to this file, including debug messages.",
    )
    return parser


def main(argv: list[str] | None = None) -> None:
    """CLI entrypoint for chaingen commands."""
    parser = _build_parser()
    args = parser.parse_args(argv)

    configure_logging(verbose=bool(args.verbose), log_file=getattr(args, "log_file", None))

    orchestrator = Orchestrator()

    if args.command == "generate":
        overrides = {
            "types": args.types,
            "recursive": args.recursive,
            "file_suffix": args.file_suffix,
            "tag": args.tag,
            "err_on_conflict": False if args.lenient else None,
        }
        try:
            outcome = orchestrator.run_generate(args.path, overrides=overrides, dry_run=bool(args.dry_run))
        except ChaingenError as exc:
            parser.exit(1, f"chaingen generate failed: {exc}\n")
        if outcome.dry_run:
            print(outcome.diff or "(no diff)")
        elif not outcome.written:
            print("No composed components found; nothing generated")
        else:
            for path in outcome.written:
                print(f"Generated {_relativize(path)}")
    else:  # pragma: no cover - argparse enforces choices
        parser.exit(2, "Unknown command\n")


def _relativize(path: Path) -> str:
    try:
        return str(path.relative_to(Path.cwd()))
    except ValueError:
        return str(path)


if __name__ == "__main__":
    main(sys.argv[1:])
