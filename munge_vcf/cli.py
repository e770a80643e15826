"""Command-line entrypoints for the VCF munging workflow."""
from __future__ import annotations

import argparse
import datetime
import logging
import sys
from pathlib import Path
from typing import Optional, Sequence

from . import filtering, merging
from .logging_utils import (
    MungeVCFError,
    configure_logging,
    log_message,
)

# Re-export frequently patched helpers for easier test monkeypatching.
munge_vcfs = merging.munge_vcfs
filter_vcf = filtering.filter_vcf


def _validate_comment(arg: str) -> str:
    """Reject comments that would break the header line they are written to."""
    if arg is None:
        raise argparse.ArgumentTypeError("Comment cannot be empty")
    if "\n" in arg or "\r" in arg:
        raise argparse.ArgumentTypeError("Comments must fit on a single line")
    return arg.strip()


def _add_logging_arguments(parser: argparse.ArgumentParser) -> None:
    parser.add_argument(
        "--log-file",
        dest="log_file",
        help="Optional file that receives a copy of the log.",
    )
    parser.add_argument("-v", "--verbose", action="store_true", help="Verbose console logging.")


def build_parser() -> argparse.ArgumentParser:
    """Return the argument parser for ``munge-vcf``."""
    parser = argparse.ArgumentParser(
        prog="munge_vcf",
        description=(
            "Combine multiple sorted VCF files into a single VCF, merging records "
            "at the same locus and reconciling samples across files."
        ),
    )
    parser.add_argument(
        "-I",
        "--input",
        action="append",
        dest="inputs",
        required=True,
        help=(
            "VCF input file (repeatable), or a file with a '.list' suffix containing "
            "one input path per line."
        ),
    )
    parser.add_argument(
        "-O",
        "--output",
        dest="output",
        required=True,
        help="The merged VCF. Paths ending in .gz are BGZF-compressed.",
    )
    parser.add_argument(
        "-D",
        "--sequence-dictionary",
        dest="sequence_dictionary",
        help=(
            "Sequence dictionary (.dict, .sam, .bam, .cram or VCF header) to use "
            "instead of the contig declarations of the input files."
        ),
    )
    parser.add_argument(
        "-CO",
        "--comment",
        action="append",
        dest="comments",
        type=_validate_comment,
        default=[],
        help="Comment to include in the merged output file's header (repeatable).",
    )
    parser.add_argument(
        "--create-index",
        dest="create_index",
        action=argparse.BooleanOptionalAction,
        default=True,
        help="Write a tabix index next to BGZF-compressed output (default: on).",
    )
    _add_logging_arguments(parser)
    return parser


def build_filter_parser() -> argparse.ArgumentParser:
    """Return the argument parser for ``filter-vcf``."""
    parser = argparse.ArgumentParser(
        prog="filter_vcf",
        description="Apply hard filters to a VCF, tagging sites and genotypes.",
    )
    parser.add_argument("-I", "--input", dest="input", required=True, help="The input VCF.")
    parser.add_argument("-O", "--output", dest="output", required=True, help="The filtered VCF.")
    parser.add_argument(
        "--min-ab",
        type=float,
        default=filtering.DEFAULT_MIN_AB,
        help="Minimum heterozygote allele balance before a site is filtered.",
    )
    parser.add_argument(
        "--min-dp",
        type=int,
        default=filtering.DEFAULT_MIN_DP,
        help="Minimum depth supporting a genotype before it is filtered.",
    )
    parser.add_argument(
        "--min-gq",
        type=int,
        default=filtering.DEFAULT_MIN_GQ,
        help="Minimum genotype quality before a genotype is filtered.",
    )
    parser.add_argument(
        "--max-fs",
        type=float,
        default=filtering.DEFAULT_MAX_FS,
        help="Maximum phred-scaled Fisher strand value before a site is filtered.",
    )
    parser.add_argument(
        "--create-index",
        dest="create_index",
        action=argparse.BooleanOptionalAction,
        default=True,
        help="Write a tabix index next to BGZF-compressed output (default: on).",
    )
    _add_logging_arguments(parser)
    return parser


def parse_arguments(argv: Optional[Sequence[str]] = None):
    """Parse CLI args for the VCF munging tool."""
    parser = build_parser()
    args = parser.parse_args(argv)
    args.inputs = [str(Path(p)) for p in args.inputs]
    args.output = str(Path(args.output))
    args.comments = [c for c in args.comments if c]
    return args


def _configure_from_args(args) -> None:
    configure_logging(
        log_level=logging.DEBUG if args.verbose else logging.INFO,
        log_file=args.log_file,
        enable_file_logging=bool(args.log_file),
        enable_console=True,
    )


def main(argv: Optional[Sequence[str]] = None) -> int:
    args = parse_arguments(argv)
    _configure_from_args(args)
    log_message("Script Execution Log - " + datetime.datetime.now().strftime("%Y-%m-%d %H:%M:%S"))

    try:
        output = munge_vcfs(
            args.inputs,
            args.output,
            sequence_dictionary=args.sequence_dictionary,
            comments=args.comments,
            create_index=args.create_index,
            verbose=args.verbose,
        )
    except MungeVCFError as exc:
        print(f"ERROR: {exc}", file=sys.stderr)
        return 1
    except OSError as exc:
        log_message(f"Filesystem error: {exc}", level=logging.ERROR, exc_info=exc)
        print(f"ERROR: Filesystem error: {exc}", file=sys.stderr)
        return 1

    print(f"Wrote: {output}")
    return 0


def filter_main(argv: Optional[Sequence[str]] = None) -> int:
    args = build_filter_parser().parse_args(argv)
    _configure_from_args(args)

    try:
        output = filter_vcf(
            args.input,
            args.output,
            min_ab=args.min_ab,
            min_dp=args.min_dp,
            min_gq=args.min_gq,
            max_fs=args.max_fs,
            create_index=args.create_index,
            verbose=args.verbose,
        )
    except MungeVCFError as exc:
        print(f"ERROR: {exc}", file=sys.stderr)
        return 1
    except OSError as exc:
        log_message(f"Filesystem error: {exc}", level=logging.ERROR, exc_info=exc)
        print(f"ERROR: Filesystem error: {exc}", file=sys.stderr)
        return 1

    print(f"Wrote: {output}")
    return 0


def run() -> None:  # pragma: no cover - console script
    sys.exit(main())


def run_filter() -> None:  # pragma: no cover - console script
    sys.exit(filter_main())
