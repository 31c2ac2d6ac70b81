#!/usr/bin/env python3
"""Example: run the failover-group lifecycle with settings from sample.yaml.

Usage:
    # Set CLIENT_ID, CLIENT_SECRET, TENANT_ID and SUBSCRIPTION_ID in .env
    # or as environment variables, then:
    python examples/run_sample.py
"""

import logging
from pathlib import Path

from azsql_fog import FailoverGroupSample

logging.basicConfig(
    level=logging.INFO,
    format="%(asctime)s %(levelname)s %(name)s: %(message)s",
)

if __name__ == "__main__":
    sample = FailoverGroupSample.from_config(Path(__file__).with_name("sample.yaml"))
    print(sample)
    try:
        results = sample.run()
    finally:
        sample.clients.close()
    for r in results:
        print(f"  {r['step']:<32} {r['name']} ({r['status']})")
