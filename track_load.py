"""
track_load.py - simple async load script posting tracking events

Simulates `--devices` distinct devices clicking `--campaigns` campaigns; each
event reuses a device's fingerprint, so repeat clicks exercise the dedup
upsert and, past the limit, the rate limiter.

Usage:
  python track_load.py --base http://127.0.0.1:8000 --count 2000 --devices 300 --concurrency 100
"""
import argparse
import asyncio
import collections
import hashlib
import random
import time
from datetime import datetime, timezone

import httpx

USER_AGENTS = [
    ("mobile", "Chrome", "Android",
     "Mozilla/5.0 (Linux; Android 14; Pixel 8) AppleWebKit/537.36 (KHTML, like Gecko) Chrome/120.0.6099.144 Mobile Safari/537.36"),
    ("mobile", "Safari", "iOS",
     "Mozilla/5.0 (iPhone; CPU iPhone OS 17_1 like Mac OS X) AppleWebKit/605.1.15 (KHTML, like Gecko) Version/17.1 Mobile/15E148 Safari/604.1"),
    ("desktop", "Chrome", "Windows",
     "Mozilla/5.0 (Windows NT 10.0; Win64; x64) AppleWebKit/537.36 (KHTML, like Gecko) Chrome/120.0.0.0 Safari/537.36"),
    ("tablet", "Safari", "iOS",
     "Mozilla/5.0 (iPad; CPU OS 16_6 like Mac OS X) AppleWebKit/605.1.15 (KHTML, like Gecko) Version/16.6 Mobile/15E148 Safari/604.1"),
]
TARGETS = ["https://example.com/shop", "https://example.org/blog", "https://example.net/promo"]


def _now_iso():
    return datetime.now(timezone.utc).isoformat()


def _device(idx: int) -> dict:
    device_type, browser, os_name, ua = USER_AGENTS[idx % len(USER_AGENTS)]
    server_hash = hashlib.sha256(f"{ua}|10.0.{idx}|en-US".encode()).hexdigest()
    client_hash = hashlib.sha256(f"client-{idx}".encode()).hexdigest()[:32]
    return {
        "fingerprint": hashlib.sha256(f"{server_hash}:{client_hash}".encode()).hexdigest(),
        "server_hash": server_hash,
        "client_hash": client_hash,
        "device": {"type": device_type, "browser": browser, "os": os_name, "user_agent": ua},
    }


async def _track_one(client: httpx.AsyncClient, base: str, device: dict, campaign: str) -> int:
    payload = dict(device, campaign_id=campaign, target_url=random.choice(TARGETS), language="en-US")
    try:
        r = await client.post(f"{base}/api/track", json=payload, timeout=10)
        return r.status_code
    except httpx.HTTPError:
        return 0


async def main():
    parser = argparse.ArgumentParser()
    parser.add_argument("--base", default="http://127.0.0.1:8000")
    parser.add_argument("--count", type=int, default=2000)
    parser.add_argument("--devices", type=int, default=300)
    parser.add_argument("--campaigns", type=int, default=5)
    parser.add_argument("--concurrency", type=int, default=100)
    args = parser.parse_args()

    devices = [_device(i) for i in range(args.devices)]
    campaigns = [f"campaign-{i}" for i in range(args.campaigns)]

    start_iso = _now_iso()
    t0 = time.perf_counter()
    statuses = collections.Counter()

    limit = httpx.Limits(max_connections=args.concurrency, max_keepalive_connections=args.concurrency)
    async with httpx.AsyncClient(limits=limit) as client:
        sem = asyncio.Semaphore(args.concurrency)

        async def _task(i):
            async with sem:
                status = await _track_one(client, args.base, random.choice(devices), random.choice(campaigns))
                statuses[status] += 1

        await asyncio.gather(*(_task(i) for i in range(args.count)))

    dt = time.perf_counter() - t0
    end_iso = _now_iso()
    ok = statuses.get(200, 0)
    print(f"START: {start_iso}")
    print(f"END:   {end_iso}")
    print(f"TOTAL: {dt:.3f} s")
    print(f"OPS:   events={args.count}, ok={ok}, rate_limited={statuses.get(429, 0)}, "
          f"other={args.count - ok - statuses.get(429, 0)}")
    if dt > 0:
        print(f"TPS:   {ok/dt:.1f} req/s")


if __name__ == "__main__":
    asyncio.run(main())
