#!/usr/bin/env python3
"""
Send one signed test alert to a running relay.

Usage:
  python3 scripts/send_test_webhook.py
  python3 scripts/send_test_webhook.py --url https://relay.example.com/webhook/tradingview
  python3 scripts/send_test_webhook.py --ping      # connectivity check, rejected as 400
"""

import argparse
import json
import sys
import time
from datetime import datetime, timezone

import httpx

from signal_relay.config import Settings
from signal_relay.signature import SIGNATURE_HEADER, compute_signature

from generate_signature import encode_payload, sample_payload


def ping_payload() -> dict:
    return {
        "ping": True,
        "timestamp": datetime.now(timezone.utc).isoformat(),
        "message": "Ping test - please log but don't execute trade",
    }


def main():
    settings = Settings()
    parser = argparse.ArgumentParser(description="Send a signed test webhook")
    parser.add_argument("--url", default=f"http://localhost:{settings.port}/webhook/tradingview")
    parser.add_argument("--secret", default=settings.webhook_secret)
    parser.add_argument("--ping", action="store_true", help="Send a ping payload instead of a trade")
    parser.add_argument("--timeout", type=float, default=30.0)
    args = parser.parse_args()

    payload = ping_payload() if args.ping else sample_payload()
    body = encode_payload(payload)
    headers = {
        "Content-Type": "application/json",
        SIGNATURE_HEADER: compute_signature(body, args.secret),
    }

    print(f"Sending test webhook to: {args.url}")
    print(f"Payload: {json.dumps(payload, indent=2)}")

    started = time.perf_counter()
    try:
        resp = httpx.post(args.url, content=body, headers=headers, timeout=args.timeout)
    except httpx.HTTPError as e:
        print(f"Error sending webhook: {e}", file=sys.stderr)
        sys.exit(1)
    latency_ms = (time.perf_counter() - started) * 1000

    print(f"Response status: {resp.status_code}")
    try:
        print(f"Response data: {json.dumps(resp.json(), indent=2)}")
    except ValueError:
        print(f"Response body: {resp.text}")
    print(f"Total round-trip latency: {latency_ms:.0f}ms")
    sys.exit(0 if resp.is_success else 2)


if __name__ == "__main__":
    main()
