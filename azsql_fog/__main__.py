"""CLI entry-point:  python -m azsql_fog [OPTIONS]

Examples:
    python -m azsql_fog
    python -m azsql_fog --config sample.yaml --replication-wait 0 -v
"""

import argparse
import json
import logging
import sys

from .clients import ManagementClients
from .credentials import AzureSettings
from .sample import FailoverGroupSample

logger = logging.getLogger(__name__)


def _log_summary(results: list) -> None:
    """Print a human-readable summary of the executed steps."""
    errors = []
    total = 0.0

    logger.info("=" * 72)
    logger.info("FAILOVER GROUP SAMPLE SUMMARY")
    logger.info("=" * 72)

    for r in results:
        if r.get("status") == "error":
            errors.append(r)
            logger.error("  %-32s  %-36s  ERROR: %s", r["step"], r.get("name"), r.get("error", "unknown"))
            continue
        duration = r.get("duration_seconds", 0)
        total += duration
        logger.info("  %-32s  %-36s  %6.1fs", r["step"], r.get("name"), duration)

    logger.info("-" * 72)
    logger.info("Completed: %d step(s) | %.1fs", len(results) - len(errors), total)
    if errors:
        logger.warning("Failed: %d step(s)", len(errors))
    logger.info("=" * 72)


def main() -> None:
    parser = argparse.ArgumentParser(
        prog="azsql_fog",
        description="Create, update, list and delete an Azure SQL failover group.",
    )
    parser.add_argument(
        "--config",
        default=None,
        help="Path to YAML or JSON config file (default: built-in settings)",
    )
    parser.add_argument(
        "--replication-wait",
        type=float,
        default=None,
        help="Seconds to wait before reading the database from the secondary (overrides config)",
    )
    parser.add_argument(
        "--verbose", "-v",
        action="store_true",
        help="Enable debug-level logging",
    )

    args = parser.parse_args()

    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.INFO,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )

    try:
        if args.config:
            sample = FailoverGroupSample.from_config(
                args.config, replication_wait_seconds=args.replication_wait,
            )
        else:
            clients = ManagementClients.from_settings(AzureSettings())
            kwargs = {}
            if args.replication_wait is not None:
                kwargs["replication_wait_seconds"] = args.replication_wait
            sample = FailoverGroupSample(clients, **kwargs)
    except Exception as exc:
        logger.error("Failed to configure sample: %s", exc)
        sys.exit(1)

    logger.info("Sample: %s", sample)

    try:
        results = sample.run()
    except Exception as exc:
        logger.error("Sample failed: %s", exc)
        _log_summary(sample.results)
        sys.exit(1)
    finally:
        sample.clients.close()

    _log_summary(results)

    for r in results:
        print(json.dumps(r, indent=2))


if __name__ == "__main__":
    main()
