"""
Command-line interface for the tutor classification service.

Usage:
    python -m tutor_api classify "Solve for x: 2x + 5 = 15"
    python -m tutor_api batch-classify problems.txt
"""

import argparse
import json
import os
import sys
from typing import List, Optional

from tutor_api.services.problem_classifier import (
    MAX_BATCH_SIZE,
    classify_batch,
    classify_problem,
    summarize_batch,
)


def create_parser() -> argparse.ArgumentParser:
    """Create CLI argument parser."""
    parser = argparse.ArgumentParser(
        prog="tutor-classify",
        description="Classify math problems by subject, difficulty and grade level"
    )

    subparsers = parser.add_subparsers(dest="command", help="Available commands")

    classify_parser = subparsers.add_parser(
        "classify",
        help="Classify a single problem"
    )
    classify_parser.add_argument(
        "text",
        type=str,
        help="Problem text"
    )
    classify_parser.add_argument(
        "--metadata",
        "-m",
        type=str,
        default=None,
        help="JSON object merged into the result metadata"
    )

    batch_parser = subparsers.add_parser(
        "batch-classify",
        help="Classify every line of a text file"
    )
    batch_parser.add_argument(
        "file",
        type=str,
        help="File with one problem per line"
    )
    batch_parser.add_argument(
        "--max-batch-size",
        "-n",
        type=int,
        default=MAX_BATCH_SIZE,
        help=f"Maximum number of problems (default: {MAX_BATCH_SIZE})"
    )

    return parser


def classify_command(args: argparse.Namespace) -> int:
    """
    Classify one problem and print the result as JSON.

    Returns:
        int: 0 on success, 1 for bad metadata or a fallback classification
    """
    metadata = None
    if args.metadata:
        try:
            metadata = json.loads(args.metadata)
        except json.JSONDecodeError as e:
            print(f"Error: --metadata is not valid JSON: {e}")
            return 1
        if not isinstance(metadata, dict):
            print("Error: --metadata must be a JSON object")
            return 1

    result = classify_problem(args.text, metadata)
    print(json.dumps(result.model_dump(mode="json", by_alias=True), indent=2, ensure_ascii=False))

    return 1 if result.is_fallback else 0


def batch_classify_command(args: argparse.Namespace) -> int:
    """
    Classify each line of a file and print per-item results plus a summary.

    Returns:
        int: 0 if at least one problem was classified, 1 otherwise
    """
    if args.max_batch_size < 1 or args.max_batch_size > MAX_BATCH_SIZE:
        print(f"Error: --max-batch-size must be between 1 and {MAX_BATCH_SIZE}")
        return 1

    if not os.path.isfile(args.file):
        print(f"Error: File not found: {args.file}")
        return 1

    with open(args.file, encoding="utf-8") as f:
        problems = [line.rstrip("\n") for line in f]

    try:
        results = classify_batch(problems, max_batch_size=args.max_batch_size)
    except ValueError as e:
        print(f"Error: {e}")
        return 1

    summary = summarize_batch(results)
    output = {
        "results": [r.model_dump(mode="json", by_alias=True) for r in results],
        "summary": summary,
    }
    print(json.dumps(output, indent=2, ensure_ascii=False))

    return 0 if summary["successful"] > 0 else 1


def main(argv: Optional[List[str]] = None) -> int:
    """Main CLI entry point."""
    parser = create_parser()
    args = parser.parse_args(argv)

    if not args.command:
        parser.print_help()
        return 1

    if args.command == "classify":
        return classify_command(args)
    elif args.command == "batch-classify":
        return batch_classify_command(args)
    else:
        print(f"Unknown command: {args.command}")
        return 1


if __name__ == "__main__":
    sys.exit(main())
