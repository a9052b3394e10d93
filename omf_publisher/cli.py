"""CLI: reproduce lotes JSON-lines contra un receptor OMF.

Cada línea de entrada es un lote: un array JSON de registros, por ejemplo
    [{"assetName": "Pump1", "assetTimestamp": 1706688000000, "Temp": 21.5}]
"""

from __future__ import annotations

import argparse
import dataclasses
import json
import logging
import sys
import time
from typing import IO, Iterator, List

from .config import get_settings
from .core.publisher import OmfPublisher

logger = logging.getLogger(__name__)


def read_batches(stream: IO[str]) -> Iterator[List[dict]]:
    for line_number, line in enumerate(stream, start=1):
        line = line.strip()
        if not line:
            continue
        try:
            batch = json.loads(line)
        except json.JSONDecodeError as e:
            logger.error("Line %d is not valid JSON: %s", line_number, e)
            continue
        if isinstance(batch, dict):
            batch = [batch]
        if not isinstance(batch, list):
            logger.error("Line %d is not a record or an array of records", line_number)
            continue
        yield batch


def main() -> None:
    logging.basicConfig(
        level=logging.INFO,
        format="%(asctime)s - %(levelname)s - %(name)s - %(message)s",
        handlers=[logging.StreamHandler()],
    )

    p = argparse.ArgumentParser(description="Publish JSON-lines telemetry batches to an OMF target")
    p.add_argument("input", nargs="?", default="-", help="JSON-lines file, '-' for stdin")
    p.add_argument("--target-url")
    p.add_argument("--producer-token")
    p.add_argument("--device-name")
    p.add_argument("--interval-ms", type=int)
    p.add_argument("--insecure", action="store_true", help="disable SSL certificate verification")
    p.add_argument("--drain-timeout", type=float, default=30.0,
                   help="seconds to wait for the in-flight queue to drain")
    args = p.parse_args()

    settings = get_settings()
    overrides = {
        "target_url": args.target_url,
        "producer_token": args.producer_token,
        "device_name": args.device_name,
        "in_flight_interval_ms": args.interval_ms,
    }
    overrides = {k: v for k, v in overrides.items() if v is not None}
    if args.insecure:
        overrides["ssl_verify"] = False
    settings = dataclasses.replace(settings, **overrides)

    publisher = OmfPublisher()
    if not publisher.start(settings):
        sys.exit(2)

    stream = sys.stdin if args.input == "-" else open(args.input, encoding="utf-8")
    try:
        for batch in read_batches(stream):
            publisher.on_batch(batch)
    finally:
        if stream is not sys.stdin:
            stream.close()

    deadline = time.monotonic() + args.drain_timeout
    while not publisher.queue.is_empty and time.monotonic() < deadline:
        time.sleep(0.1)

    remaining = publisher.queue.size
    publisher.stop()

    if remaining:
        logger.error("%d batches were not delivered before the drain timeout", remaining)
        sys.exit(1)
    logger.info("All batches delivered")


if __name__ == "__main__":
    main()
