#!/usr/bin/env python3
"""
Latency Lab - Main entry point for running benchmarks.

Usage:
    python main.py [command] [options]

Commands:
    ping        - Round-trip latency of a trivial query
    nocache     - Query latency with the query cache bypassed (MySQL)
    persistent  - Pooled vs non-persistent connections
    records     - CRUD operations over a scratch table
    http        - GET request latency against an HTTP endpoint
"""

import argparse
import logging
import sys
from pathlib import Path
from typing import Optional

from dotenv import load_dotenv

# Add latency-lab to path for package imports
sys.path.insert(0, str(Path(__file__).parent / "latency-lab"))

from harness.errors import BenchmarkError, InvalidConfiguration  # noqa: E402
from harness.reporter import ChartReporter, ConsoleReporter, JSONReporter  # noqa: E402
from harness.runner import BenchmarkRunner  # noqa: E402
from instrumentation.traces import Tracer, TracingConfig  # noqa: E402
from targets import DATABASE, HTTP, Target, make_target, resolve_target  # noqa: E402

logger = logging.getLogger("latency_lab")

DEFAULT_TRIALS = 100
DEFAULT_RECORD_TRIALS = 5


def resolve(args, kind: str, default_name: Optional[str] = None) -> Target:
    """The target named on the command line, checked before any timing."""
    url = getattr(args, "url", None)
    if url:
        target = make_target("cli", url)
        if target.kind != kind:
            raise InvalidConfiguration(f"{url!r} is a {target.kind} URL, expected {kind}")
        return target
    return resolve_target(args.target or default_name, kind=kind)


def make_suite(suite_cls, args, target: Target, tracer: Tracer, **extra):
    """Wire a suite to the reporters and runner the options ask for."""
    log = None
    if not args.no_log:
        log = JSONReporter(args.log_file, context={"driver": target.driver, "target": target.name})
    charts = ChartReporter(args.output_dir / "charts") if args.charts else None
    return suite_cls(
        target,
        runner=BenchmarkRunner(tracer=tracer, verbose=not args.quiet),
        console=ConsoleReporter(use_color=not args.no_color),
        log=log,
        charts=charts,
        deadline_seconds=args.deadline,
        quiet=args.quiet,
        **extra,
    )


def trials_for(args, default: int = DEFAULT_TRIALS) -> int:
    return args.trials if args.trials is not None else default


def finish(suite, args) -> None:
    """Point at the log file and charts a suite produced."""
    if args.quiet:
        return
    if suite.log is not None:
        print(f"\nAll benchmark results have been logged to {suite.log.log_file}")
    for path in suite.chart_files:
        print(f"Chart saved: {path}")


def run_ping(args, tracer: Tracer):
    """Run the ping benchmark."""
    from benchmarks.ping import PingBenchmarkSuite

    target = resolve(args, DATABASE)
    suite = make_suite(PingBenchmarkSuite, args, target, tracer)
    result = suite.run(trials=trials_for(args), table=args.table)
    finish(suite, args)
    return result


def run_nocache(args, tracer: Tracer):
    """Run the query cache benchmarks."""
    from benchmarks.caching import CachingBenchmarkSuite

    target = resolve(args, DATABASE)
    suite = make_suite(CachingBenchmarkSuite, args, target, tracer)
    result = suite.run(trials=trials_for(args), compare=args.compare, table=args.table)
    finish(suite, args)
    return result


def run_persistent(args, tracer: Tracer):
    """Run the connection persistence benchmarks."""
    from benchmarks.persistence import PersistenceBenchmarkSuite

    target = resolve(args, DATABASE)
    suite = make_suite(PersistenceBenchmarkSuite, args, target, tracer)
    result = suite.run(
        trials=trials_for(args),
        persistent=args.persistent,
        compare=args.compare,
        no_cache=args.no_cache,
        table=args.table,
    )
    finish(suite, args)
    return result


def run_records(args, tracer: Tracer):
    """Run the CRUD benchmarks."""
    from benchmarks.records import RecordsBenchmarkSuite

    target = resolve(args, DATABASE)
    operations = [op for op in (args.operations or "").split(",") if op.strip()]
    suite = make_suite(RecordsBenchmarkSuite, args, target, tracer)
    results = suite.run(
        trials=trials_for(args, DEFAULT_RECORD_TRIALS),
        records=args.records,
        chunk_size=args.chunk_size,
        operations=operations,
    )
    finish(suite, args)
    return results


def run_http(args, tracer: Tracer):
    """Run the HTTP latency benchmarks."""
    from benchmarks.network import NetworkBenchmarkSuite

    target = resolve(args, HTTP, default_name="http")
    suite = make_suite(NetworkBenchmarkSuite, args, target, tracer, timeout=args.timeout)
    result = suite.run(trials=trials_for(args), persistent=args.persistent, compare=args.compare)
    finish(suite, args)
    return result


COMMANDS = {
    "ping": run_ping,
    "nocache": run_nocache,
    "persistent": run_persistent,
    "records": run_records,
    "http": run_http,
}


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        description="Latency Lab - Benchmark database and HTTP round-trip latency",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
    python main.py ping --trials 200
    python main.py nocache --compare --table users
    python main.py persistent --compare
    python main.py records --records 500 --operations insert,find
    python main.py http --url https://example.com/health --compare
        """,
    )

    parser.add_argument(
        "command",
        choices=list(COMMANDS),
        help="Benchmark to run",
    )
    parser.add_argument(
        "--trials", "--queries",
        dest="trials",
        type=int,
        default=None,
        help=f"Number of timed trials (default: {DEFAULT_TRIALS}, "
             f"{DEFAULT_RECORD_TRIALS} for records)",
    )
    parser.add_argument(
        "--target",
        default=None,
        help="Named target (default: LATENCY_LAB_DEFAULT_TARGET or 'default')",
    )
    parser.add_argument(
        "--deadline",
        type=float,
        default=None,
        help="Fail the run if a single trial takes longer than this many seconds",
    )
    parser.add_argument(
        "--compare",
        action="store_true",
        help="Run both modes and compare them (nocache, persistent, http)",
    )
    parser.add_argument(
        "--persistent",
        action="store_true",
        help="Use a persistent connection (persistent, http)",
    )
    parser.add_argument(
        "--no-cache",
        action="store_true",
        help="Bypass the query cache in the probe query (persistent)",
    )
    parser.add_argument(
        "--table",
        default=None,
        help="Select one row from this table instead of SELECT 1",
    )
    parser.add_argument(
        "--records",
        type=int,
        default=100,
        help="Records per trial for the records benchmark (default: 100)",
    )
    parser.add_argument(
        "--chunk-size",
        type=int,
        default=10,
        help="Chunk size for bulk inserts (default: 10)",
    )
    parser.add_argument(
        "--operations",
        default=None,
        help="Comma-separated record operations "
             "(insert,bulk_insert,find,query,update,delete; default: all)",
    )
    parser.add_argument(
        "--url",
        default=None,
        help="HTTP endpoint to benchmark (default: the 'http' target)",
    )
    parser.add_argument(
        "--timeout",
        type=float,
        default=5.0,
        help="HTTP request timeout in seconds (default: 5)",
    )
    parser.add_argument(
        "--log-file",
        type=Path,
        default=Path("results") / "latency-lab.jsonl",
        help="JSON-lines results log (default: results/latency-lab.jsonl)",
    )
    parser.add_argument(
        "--no-log",
        action="store_true",
        help="Do not write the JSON-lines results log",
    )
    parser.add_argument(
        "--output-dir",
        type=Path,
        default=Path("results"),
        help="Directory to save charts (default: results/)",
    )
    parser.add_argument(
        "--charts",
        action="store_true",
        help="Write latency charts to <output-dir>/charts",
    )
    parser.add_argument(
        "--trace",
        action="store_true",
        help="Print OpenTelemetry spans for each benchmark phase",
    )
    parser.add_argument(
        "--no-color",
        action="store_true",
        help="Disable ANSI colors",
    )
    parser.add_argument(
        "--quiet",
        action="store_true",
        help="Suppress progress and report output",
    )
    parser.add_argument(
        "-v", "--verbose",
        action="store_true",
        help="Enable debug logging",
    )
    return parser


def main(argv=None) -> int:
    # Load environment variables from .env file
    load_dotenv()

    parser = build_parser()
    args = parser.parse_args(argv)

    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.WARNING,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )

    tracer = Tracer(TracingConfig(enable_console_export=args.trace))

    # Run the selected command
    try:
        COMMANDS[args.command](args, tracer)
    except InvalidConfiguration as e:
        print(f"\nConfiguration error: {e}", file=sys.stderr)
        return e.exit_code
    except BenchmarkError as e:
        print(f"\nBenchmark failed: {e}", file=sys.stderr)
        return e.exit_code
    except KeyboardInterrupt:
        print("\nBenchmark interrupted by user", file=sys.stderr)
        return 130
    finally:
        tracer.shutdown()

    return 0


if __name__ == "__main__":
    sys.exit(main())
