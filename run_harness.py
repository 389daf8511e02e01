#!/usr/bin/env python3
# run_harness.py
# This file is part of Tessera - A Linearizability Test Harness
#
# Command-line interface for running and re-checking register tests

import sys
import argparse
from pathlib import Path
from typing import Optional, Sequence

from client.retry import RetryPolicy
from model.topology import DEFAULT_CLIENT_PORT, ClusterTopology
from parser import read_history
from parser.exceptions import HistoryParseError
from runner import HarnessError, TestConfig, analyze, run_test
from utils.history_log import write_history
from utils.logger import configure_logging, get_logger

DEFAULT_NODES = ("n1", "n2", "n3", "n4", "n5")

EXIT_LINEARIZABLE = 0
EXIT_INVALID = 1
EXIT_FATAL = 2
EXIT_BAD_HISTORY = 3
EXIT_INTERRUPTED = 4


def build_topology(
    nodes: Optional[Sequence[str]], inventory: Optional[Path], port: int
) -> ClusterTopology:
    """Cluster from an inventory file, explicit node names, or the default five.

    Raises:
        ValueError: The inventory cannot be read or describes no nodes
    """
    if inventory is not None:
        try:
            text = inventory.read_text(encoding="utf-8")
        except OSError as e:
            raise ValueError(f"Could not read inventory {inventory}: {e}")
        return ClusterTopology.from_inventory(text, port)
    return ClusterTopology.of(nodes or DEFAULT_NODES, port)


def create_argument_parser() -> argparse.ArgumentParser:
    """Create and configure argument parser for command line interface.

    Returns:
        Configured ArgumentParser instance
    """
    parser = argparse.ArgumentParser(
        description="Tessera linearizability test for a replicated register",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  python run_harness.py --node n1 --node n2 --node n3
  python run_harness.py --inventory ips --time-limit 60 --history-out run.history
  python run_harness.py --check run.history --verbose

Exit codes:
  0 linearizable, 1 not linearizable or unknown, 2 setup or nemesis failure,
  3 unreadable history file, 4 interrupted
        """,
    )

    cluster = parser.add_argument_group("cluster")
    cluster.add_argument(
        "--node", action="append", dest="nodes", help="Node name (repeatable)"
    )
    cluster.add_argument(
        "--inventory", type=Path, help="Inventory file: [jepsen-n1@ip/mask,...]"
    )
    cluster.add_argument(
        "--port", type=int, default=DEFAULT_CLIENT_PORT, help="Client port on each node"
    )

    workload = parser.add_argument_group("workload")
    workload.add_argument("--concurrency", type=int, default=5, help="Worker processes")
    workload.add_argument(
        "--time-limit", type=float, default=30.0, help="Seconds of load"
    )
    workload.add_argument(
        "--stagger", type=float, default=1.0, help="Mean think time per process (s)"
    )
    workload.add_argument(
        "--fault-interval",
        type=float,
        default=5.0,
        help="Seconds between partition start and stop",
    )
    workload.add_argument(
        "--timeout", type=float, default=5.0, help="Per-operation timeout (s)"
    )
    workload.add_argument("--key", default="foo", help="Register key")
    workload.add_argument("--seed", type=int, help="Seed for random choices")
    workload.add_argument(
        "--no-nemesis", action="store_true", help="Run without network partitions"
    )

    output = parser.add_argument_group("output")
    output.add_argument(
        "--history-out", type=Path, help="Write the recorded history to this file"
    )
    output.add_argument(
        "--check",
        type=Path,
        metavar="HISTORY",
        help="Re-check a saved history instead of running a test",
    )
    output.add_argument(
        "--max-configurations",
        type=int,
        help="Give up with verdict unknown after this many configurations",
    )

    parser.add_argument(
        "-v", "--verbose", action="store_true", help="Enable verbose output"
    )
    parser.add_argument(
        "--debug", action="store_true", help="Enable debug output (overrides --verbose)"
    )

    return parser


def main(argv: Optional[Sequence[str]] = None) -> int:
    """Main entry point.

    Returns:
        Exit code (see --help)
    """
    parser = create_argument_parser()
    args = parser.parse_args(argv)

    configure_logging(verbose=args.verbose, debug=args.debug)
    logger = get_logger()

    try:
        if args.check is not None:
            log = read_history(args.check)
            logger.info(f"Re-checking {len(log.history)} events from {args.check}")
            result = analyze(log.history, args.max_configurations)
        else:
            topology = build_topology(args.nodes, args.inventory, args.port)
            config = TestConfig(
                topology=topology,
                concurrency=args.concurrency,
                time_limit=args.time_limit,
                stagger=args.stagger,
                fault_interval=args.fault_interval,
                nemesis=not args.no_nemesis,
                key=args.key,
                timeout=args.timeout,
                retry=RetryPolicy(),
                seed=args.seed,
            )
            result = run_test(config, max_configurations=args.max_configurations)
            if args.history_out is not None:
                write_history(args.history_out, result.history, topology.nodes)
                logger.info(f"History written to {args.history_out}")

        print(str(result.check))
        for finding in result.fault_report:
            print(f"unconfirmed: {finding}")
        return EXIT_LINEARIZABLE if result.valid else EXIT_INVALID

    except HistoryParseError as e:
        logger.error(f"History file error: {e}")
        return EXIT_BAD_HISTORY

    except HarnessError as e:
        logger.error(f"Test aborted: {e}")
        return EXIT_FATAL

    except ValueError as e:
        logger.error(f"Configuration error: {e}")
        return EXIT_FATAL

    except KeyboardInterrupt:
        logger.error("Test interrupted by user")
        return EXIT_INTERRUPTED


if __name__ == "__main__":
    sys.exit(main())
