#!/usr/bin/env python3
"""
Zone Monitor - run script
Starts the API service with uvicorn using MONITOR_* settings.
"""
import sys

import uvicorn

from zone_monitor.config import get_settings


def main() -> int:
    settings = get_settings()
    print("Zone Monitor - Starting Application")
    print("=" * 40)
    print(f"Upstream: {settings.monitor_url}")
    print(f"Refresh interval: {settings.refresh_interval_sec:g}s")
    print(f"Listening on http://{settings.host}:{settings.port}")
    print("=" * 40)

    uvicorn.run(
        "zone_monitor.app:app",
        host=settings.host,
        port=settings.port,
        log_level=settings.log_level.lower(),
    )
    return 0


if __name__ == "__main__":
    sys.exit(main())
