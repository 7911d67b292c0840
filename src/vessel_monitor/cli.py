"""
Command-line interface for the Vessel Monitor.

Provides commands for:
- Serving the instrumented HTTP API
- Drawing outcome samples offline to check a sampling policy
- Listing routes and the outcome category behind each
"""

import argparse
import sys
from collections import Counter

from .config import ConfigError, Settings, load_settings
from .defaults import CONTAINER_LOG_FILE, EXPORTER_CHOICES, PROTOCOL_CHOICES
from .server.app import ROUTES
from .simulation import OutcomeSampler, build_policies

EXIT_CONFIG_ERROR = 2


def create_parser() -> argparse.ArgumentParser:
    """Create the argument parser."""
    parser = argparse.ArgumentParser(
        prog="vessel-monitor",
        description="Synthetic maritime vessel telemetry service for observability pipelines",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  # Serve on :8080, exporting to the in-cluster collector
  vessel-monitor serve

  # Local run with console telemetry and background self traffic
  vessel-monitor serve --exporter console --self-traffic

  # Check the failure-prone policy over 10000 seeded draws
  vessel-monitor sample --category alerts --count 10000 --seed 7
        """,
    )
    # --config on every subcommand.
    common = argparse.ArgumentParser(add_help=False)
    common.add_argument(
        "--config",
        type=str,
        default=None,
        help="YAML config file (default: $VESSEL_MONITOR_CONFIG if set)",
    )

    subparsers = parser.add_subparsers(dest="command", help="Command to run")

    serve_parser = subparsers.add_parser(
        "serve", parents=[common], help="Serve the instrumented HTTP API"
    )
    serve_parser.add_argument("--host", type=str, default=None, help="Bind address")
    serve_parser.add_argument("--port", type=int, default=None, help="Listen port (default: 8080)")
    serve_parser.add_argument(
        "--endpoint",
        type=str,
        default=None,
        help="OTLP collector endpoint "
        "(default: $OTEL_EXPORTER_OTLP_ENDPOINT or the in-cluster collector)",
    )
    serve_parser.add_argument(
        "--protocol", choices=PROTOCOL_CHOICES, default=None, help="OTLP protocol"
    )
    serve_parser.add_argument(
        "--exporter",
        choices=EXPORTER_CHOICES,
        default=None,
        help="Telemetry backend (default: otlp)",
    )
    serve_parser.add_argument(
        "--output-dir",
        type=str,
        default=None,
        help="Directory for traces.jsonl / metrics.jsonl with --exporter file",
    )
    serve_parser.add_argument(
        "--log-file",
        type=str,
        nargs="?",
        const=CONTAINER_LOG_FILE,
        default=None,
        help=f"Also write JSON logs to a file (bare flag: {CONTAINER_LOG_FILE})",
    )
    serve_parser.add_argument("--log-level", type=str, default=None, help="Log level")
    serve_parser.add_argument(
        "--seed", type=int, default=None, help="Seed outcome sampling for reproducible runs"
    )
    serve_parser.add_argument(
        "--self-traffic",
        action="store_true",
        default=None,
        help="Issue background requests against this service",
    )
    serve_parser.add_argument(
        "--self-traffic-interval",
        type=int,
        default=None,
        metavar="MS",
        help="Interval between self traffic requests in ms (default: 100)",
    )

    sample_parser = subparsers.add_parser(
        "sample", parents=[common], help="Draw outcomes for a category"
    )
    sample_parser.add_argument(
        "--category", type=str, required=True, help="Outcome category (see `routes`)"
    )
    sample_parser.add_argument("--count", type=int, default=20, help="Number of draws")
    sample_parser.add_argument("--seed", type=int, default=None, help="Random seed")
    sample_parser.add_argument(
        "--quiet", action="store_true", help="Print only the summary, not each draw"
    )

    subparsers.add_parser(
        "routes", parents=[common], help="List routes and their outcome categories"
    )

    return parser


def _serve_settings(settings: Settings, args: argparse.Namespace) -> Settings:
    return settings.override(
        host=args.host,
        port=args.port,
        otlp_endpoint=args.endpoint,
        otlp_protocol=args.protocol,
        exporter=args.exporter,
        output_dir=args.output_dir,
        log_file=args.log_file,
        log_level=args.log_level,
        seed=args.seed,
        self_traffic=args.self_traffic,
        self_traffic_interval_ms=args.self_traffic_interval,
    )


def cmd_serve(settings: Settings) -> None:
    """Serve until SIGINT/SIGTERM, then drain in-flight requests and flush telemetry."""
    import uvicorn

    from .server.app import create_app
    from .telemetry import build_telemetry, configure_logging

    telemetry = build_telemetry(settings)
    logger = configure_logging(settings.log_level, settings.log_file, telemetry.logger_provider)
    logger.info(
        "starting maritime vessel monitoring system",
        extra={
            "exporter": settings.exporter,
            "endpoint": settings.otlp_endpoint,
            "addr": f"{settings.host}:{settings.port}",
        },
    )
    try:
        app = create_app(settings, telemetry, logger=logger)
        uvicorn.run(
            app,
            host=settings.host,
            port=settings.port,
            log_config=None,
            timeout_graceful_shutdown=int(settings.shutdown_timeout_s),
        )
        logger.info("shutting down vessel monitoring system")
    finally:
        telemetry.shutdown()
        logger.info("server exited")


def cmd_sample(settings: Settings, args: argparse.Namespace) -> None:
    """Draw outcomes and print them with branch rates."""
    sampler = OutcomeSampler(build_policies(settings.sampling), seed=args.seed)
    try:
        policy = sampler.policy(args.category)
    except KeyError:
        print(f"Unknown category: {args.category}")
        print(f"   Available categories: {', '.join(sampler.categories)}")
        sys.exit(1)

    branches: Counter[str] = Counter()
    latencies: list[int] = []
    print(f"Sampling {args.count} outcomes for {args.category} ({policy.kind.value})")
    for i in range(args.count):
        sample = sampler.sample(args.category)
        branches[sample.branch.value] += 1
        latencies.append(sample.latency_ms)
        if not args.quiet:
            variant = f" variant={sample.variant}" if sample.variant is not None else ""
            print(
                f"   [{i + 1}] latency_ms={sample.latency_ms} "
                f"branch={sample.branch.value}{variant}"
            )

    if not latencies:
        return
    print()
    print(f"   Latency ms: min={min(latencies)} max={max(latencies)} "
          f"mean={sum(latencies) / len(latencies):.1f}")
    for branch, n in sorted(branches.items()):
        print(f"   {branch}: {n} ({n / args.count:.2%})")


def cmd_routes(settings: Settings) -> None:
    """List routes and the sampling policy behind each."""
    policies = build_policies(settings.sampling)
    print("Routes:")
    for spec in ROUTES:
        if spec.category is None:
            print(f"  GET {spec.path}  (no sampling)")
            continue
        policy = policies[spec.category]
        low, high = policy.latency_bounds()
        print(f"  GET {spec.path}  category={spec.category} "
              f"kind={policy.kind.value} latency_ms=[{low}, {high})")


def main(argv: list[str] | None = None):
    """Main entry point."""
    parser = create_parser()
    args = parser.parse_args(argv)

    if args.command is None:
        parser.print_help()
        sys.exit(0)

    try:
        settings = load_settings(args.config)
        if args.command == "serve":
            settings = _serve_settings(settings, args)
            cmd_serve(settings)
        elif args.command == "sample":
            cmd_sample(settings, args)
        elif args.command == "routes":
            cmd_routes(settings)
        else:
            parser.print_help()
            sys.exit(1)
    except ConfigError as e:
        print(f"Configuration error: {e}", file=sys.stderr)
        sys.exit(EXIT_CONFIG_ERROR)
    except KeyboardInterrupt:
        sys.exit(0)


if __name__ == "__main__":
    main()
