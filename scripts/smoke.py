#!/usr/bin/env python3
"""Smoke check for a running MongoStats collector.

Waits for the first collection cycle, then checks every endpoint answers
with a sane payload. Exits non-zero on the first failure.
"""

from __future__ import annotations

import json
import sys
import time

import httpx

BASE_URL = "http://127.0.0.1:8000"
TIMEOUT = 30.0
FIRST_CYCLE_WAIT = 30.0


def expect(condition: bool, message: str) -> None:
    if not condition:
        raise AssertionError(message)


def get(client: httpx.Client, path: str, expected: int = 200, **kwargs):
    resp = client.get(f"{BASE_URL}{path}", **kwargs)
    expect(resp.status_code == expected, f"GET {path} -> {resp.status_code} != {expected}; body={resp.text[:500]}")
    return resp


def main() -> int:
    with httpx.Client(timeout=TIMEOUT) as client:
        live = get(client, "/api/health/live").json()
        expect(live.get("status") == "alive", "liveness check failed")

        deadline = time.monotonic() + FIRST_CYCLE_WAIT
        snapshot = get(client, "/api/metrics").json()["metrics"]
        while snapshot["cycles_total"] == 0 and time.monotonic() < deadline:
            time.sleep(1)
            snapshot = get(client, "/api/metrics").json()["metrics"]
        expect(snapshot["cycles_total"] > 0, "no collection cycle ran")
        expect(
            snapshot["last_status"] == "ok",
            f"last cycle failed: {snapshot['last_diagnostics']}",
        )

        values = get(client, "/api/readings").json()["values"]
        expect("uptime_in_hours" in values, "uptime gauge missing from readings")
        expect("current_connections" in values, "connection gauge missing from readings")

        state = get(client, "/api/state").json()
        expect(state["total"] > 0, "no remembered counter state after first cycle")

    print(json.dumps({"ok": True, "message": "MongoStats smoke passed"}))
    return 0


if __name__ == "__main__":
    try:
        sys.exit(main())
    except Exception as exc:  # noqa: BLE001
        print(json.dumps({"ok": False, "error": str(exc)}))
        sys.exit(1)
