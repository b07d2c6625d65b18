#!/usr/bin/env python3
"""
Fire N parallel GET requests at the service to watch pool backpressure.

With DB_POOL_MAX_SIZE=50 and DB_POOL_ACQUIRE_TIMEOUT_MS=100, requests beyond
what the pool can serve within 100ms come back as HTTP 500
("Error fetching cities data") instead of queueing forever.

Usage:
  python scripts/load_cities.py [--url URL] [--concurrent N]
  Or set env: CITIES_URL, CONCURRENT
"""

import argparse
import os
from collections import Counter
from concurrent.futures import ThreadPoolExecutor, as_completed

import requests


def do_request(url: str, index: int) -> tuple[int, int, str]:
    """Send one GET request; return (index, status_code, error message or "")."""
    try:
        r = requests.get(url, timeout=30)
    except requests.RequestException as e:
        return (index, -1, str(e))  # -1 = transport error
    error = ""
    if r.status_code >= 400:
        try:
            error = str(r.json().get("error", ""))
        except ValueError:
            error = r.text[:200]
    return (index, r.status_code, error)


def main() -> None:
    parser = argparse.ArgumentParser(
        description="Load /api/cities with N parallel requests."
    )
    parser.add_argument(
        "--url",
        default=os.environ.get("CITIES_URL", "http://localhost:3000/api/cities"),
        help="Endpoint to hit (default: local /api/cities)",
    )
    parser.add_argument(
        "--concurrent",
        type=int,
        default=int(os.environ.get("CONCURRENT", "100")),
        help="Number of concurrent requests (default 100)",
    )
    args = parser.parse_args()

    print(f"Sending {args.concurrent} concurrent GET requests to {args.url}")
    print("---")

    codes: Counter[int] = Counter()
    errors: Counter[str] = Counter()
    with ThreadPoolExecutor(max_workers=args.concurrent) as executor:
        futures = [
            executor.submit(do_request, args.url, i)
            for i in range(1, args.concurrent + 1)
        ]
        for fut in as_completed(futures):
            idx, code, error = fut.result()
            codes[code] += 1
            if error:
                errors[error] += 1
            print(f"{idx} HTTP {code if code >= 0 else 'ERR'}")

    print("---")
    summary = " ".join(f"{c if c >= 0 else 'ERR'}={n}" for c, n in sorted(codes.items()))
    print(f"Done. {summary}")
    for message, n in errors.most_common(5):
        print(f"  {n}x {message}")


if __name__ == "__main__":
    main()
