"""Slicelens CLI: data lineage queries over a bundle of parsed slices."""

import argparse
import logging
import sys
from importlib.metadata import version as get_version, PackageNotFoundError
from pathlib import Path
from typing import Optional


def _configure_logging(quiet: bool, verbose: bool) -> None:
    level = logging.WARNING
    if verbose:
        level = logging.DEBUG
    elif quiet:
        level = logging.ERROR
    logging.basicConfig(level=level, format="%(levelname)s %(name)s: %(message)s")


def _format_source(result) -> str:
    if not result.resolved:
        return "(no source)"
    return repr(result.source)


def main():
    """Main CLI entry point for slicelens commands."""
    try:
        slicelens_version = get_version("slicelens")
    except PackageNotFoundError:
        slicelens_version = "dev"

    parser = argparse.ArgumentParser(
        prog="slicelens",
        description="Slicelens: data lineage and dependency resolution for event-model slices"
    )
    parser.add_argument("--version", action="version", version=f"slicelens {slicelens_version}")
    # Common arguments
    parent_parser = argparse.ArgumentParser(add_help=False)
    parent_parser.add_argument(
        "--bundle",
        type=Path,
        required=True,
        help="Path to slice bundle JSON ({\"slices\": [...]})"
    )
    parent_parser.add_argument(
        "--out",
        type=Path,
        default=None,
        help="Write the result as canonical JSON to this file"
    )
    parent_parser.add_argument(
        "--json",
        action="store_true",
        help="Print the result as canonical JSON instead of text"
    )
    parent_parser.add_argument(
        "--quiet",
        action="store_true",
        help="Suppress all non-error output."
    )
    parent_parser.add_argument(
        "--verbose",
        action="store_true",
        help="Enable debug logging."
    )
    # Arguments for single-slice commands
    slice_parser = argparse.ArgumentParser(add_help=False)
    slice_parser.add_argument(
        "--slice",
        dest="slice_id",
        default=None,
        help="Slice id (defaults to the first slice in the bundle)"
    )
    slice_parser.add_argument(
        "--overrides",
        type=Path,
        default=None,
        help="Path to source overrides JSON ({\"<nodeKey>:<key>\": \"<candidate>\"})"
    )

    subparsers = parser.add_subparsers(dest="command", help="Available commands")

    issues_parser = subparsers.add_parser(
        "issues",
        help="Report missing and ambiguous uses sources in one slice",
        parents=[parent_parser, slice_parser]
    )
    issues_parser.add_argument(
        "--fail-on-issues",
        action="store_true",
        help="Exit with status 2 when any issue is found"
    )

    trace_parser = subparsers.add_parser(
        "trace",
        help="Trace where a node's uses keys come from",
        parents=[parent_parser, slice_parser]
    )
    trace_parser.add_argument("node_ref", help="Node ref, e.g. cmd:buy (any version)")
    trace_parser.add_argument("--key", default=None, help="Only show this key")

    usage_parser = subparsers.add_parser(
        "usage",
        help="List slices that reference a node",
        parents=[parent_parser]
    )
    usage_parser.add_argument("node_ref", help="Node ref, e.g. evt:thing-added")

    data_parser = subparsers.add_parser(
        "data",
        help="Show a node's literal data across slices",
        parents=[parent_parser]
    )
    data_parser.add_argument("node_ref", help="Node ref, e.g. evt:thing-added")

    validate_parser = subparsers.add_parser(
        "validate",
        help="Preflight check of every slice in the bundle",
        parents=[parent_parser]
    )
    validate_parser.add_argument(
        "--overrides",
        type=Path,
        default=None,
        help="Path to source overrides JSON"
    )

    args = parser.parse_args()

    if not args.command:
        parser.print_help()
        sys.exit(1)

    _configure_logging(args.quiet, args.verbose)

    from .api import SliceBundleError
    from ._internal.canonical_json import dump_result

    def _emit(result, render_text) -> None:
        if args.out is not None:
            args.out.parent.mkdir(parents=True, exist_ok=True)
            args.out.write_text(dump_result(result) + "\n", encoding="utf-8")
            if not args.quiet:
                print(f"  Report: {args.out}")
            return
        if args.quiet:
            return
        if args.json:
            print(dump_result(result))
        else:
            render_text(result)

    try:
        if args.command == "issues":
            from .api import analyze_slice

            result = analyze_slice(args.bundle, slice_id=args.slice_id, source_overrides=args.overrides)

            def _render(result) -> None:
                print(f"Slice: {result.slice_name} ({result.slice_id})")
                if not result.issues:
                    print("[OK] No data issues")
                for issue in result.issues:
                    line = f"  {issue.code.value}: {issue.node_ref}.{issue.key}"
                    if issue.candidates:
                        line += f" (candidates: {', '.join(issue.candidates)})"
                    print(line)
                for warning in result.integrity_warnings + result.mapping_warnings:
                    print(f"  {warning.level.value}: {warning.message}")

            _emit(result, _render)
            if args.fail_on_issues and result.issues:
                sys.exit(2)
            sys.exit(0)

        elif args.command == "trace":
            from .api import trace

            report = trace(args.bundle, args.node_ref, slice_id=args.slice_id, source_overrides=args.overrides)
            if args.key is not None:
                report.traces = {k: v for k, v in report.traces.items() if k == args.key}

            def _render(report) -> None:
                print(f"Trace: {report.node_ref} in slice {report.slice_id}")
                if not report.traces:
                    print("  (no uses keys)")
                for key, entries in report.traces.items():
                    print(f"  {key}:")
                    for entry in entries:
                        result = entry.result
                        chain = " <- ".join(f"{hop.node_key}.{hop.key}" for hop in result.hops)
                        print(f"    [{entry.node_key}] {chain or '(direct)'} = {_format_source(result)}")
                        for contributor in result.contributors or []:
                            hops = " <- ".join(f"{hop.node_key}.{hop.key}" for hop in contributor.hops)
                            print(f"      {contributor.label}: {hops} = {contributor.value!r}")

            _emit(report, _render)
            sys.exit(0)

        elif args.command == "usage":
            from .api import cross_slice_usage

            report = cross_slice_usage(args.bundle, args.node_ref)

            def _render(report) -> None:
                print(f"Usage: {report.node_ref}")
                if not report.slice_refs:
                    print("  (not used in any slice)")
                for ref in report.slice_refs:
                    print(f"  {ref.slice_name} ({ref.slice_id}): {ref.node_key}")

            _emit(report, _render)
            sys.exit(0)

        elif args.command == "data":
            from .api import cross_slice_data

            report = cross_slice_data(args.bundle, args.node_ref)

            def _render(report) -> None:
                print(f"Data: {report.node_ref}")
                for key in report.keys:
                    print(f"  {key}:")
                    for value in report.by_key[key]:
                        print(f"    {value.slice_name}: {value.value!r}")

            _emit(report, _render)
            sys.exit(0)

        elif args.command == "validate":
            from .api import validate

            result = validate(args.bundle, source_overrides=args.overrides)

            def _render(result) -> None:
                status = "OK" if result.ok else "FAILED"
                print(f"[{status}] Validation complete")
                print(f"  Errors: {len(result.errors)}")
                print(f"  Warnings: {len(result.warnings)}")
                for issue in result.errors + result.warnings:
                    print(f"  {issue.code.value}: {issue.message}")

            _emit(result, _render)
            if not result.ok:
                sys.exit(1)
            sys.exit(0)

    except SliceBundleError as e:
        print(f"Error: {e}", file=sys.stderr)
        sys.exit(1)


if __name__ == "__main__":
    main()
