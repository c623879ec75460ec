#!/usr/bin/env python3
"""
Generate an x-tv-signature for a TradingView alert payload.

The signature covers the exact body bytes, so the alert must send the
payload byte-for-byte as printed here (compact JSON, same key order).

Usage:
  python3 scripts/generate_signature.py                     # sample payload
  python3 scripts/generate_signature.py --payload alert.json
  python3 scripts/generate_signature.py --secret s3cr3t
"""

import argparse
import json
import sys
from datetime import datetime, timezone

from signal_relay.config import Settings
from signal_relay.signature import SIGNATURE_HEADER, compute_signature


def sample_payload() -> dict:
    return {
        "symbol": "BTCUSDT",
        "side": "buy",  # {{strategy.order.action}}
        "quantity": "0.001",
        "price": "50000",  # {{close}}
        "type": "LIMIT",
        "strategy": "MA_CROSSOVER",
        "timestamp": datetime.now(timezone.utc).isoformat(),  # {{timenow}}
        "message": "Buy signal from TradingView",  # {{strategy.order.comment}}
    }


def encode_payload(payload: dict) -> bytes:
    """Compact JSON, matching JSON.stringify output."""
    return json.dumps(payload, separators=(",", ":"), ensure_ascii=False).encode("utf-8")


def main():
    parser = argparse.ArgumentParser(description="Generate a TradingView webhook signature")
    parser.add_argument("--payload", help="Path to a JSON payload file (default: sample payload)")
    parser.add_argument("--secret", help="Webhook secret (default: WEBHOOK_SECRET from env/.env)")
    args = parser.parse_args()

    secret = args.secret if args.secret is not None else Settings().webhook_secret
    if not secret:
        print("WEBHOOK_SECRET is not set; pass --secret", file=sys.stderr)
        sys.exit(1)

    if args.payload:
        with open(args.payload, "r") as f:
            payload = json.load(f)
    else:
        payload = sample_payload()

    body = encode_payload(payload)
    signature = compute_signature(body, secret)

    print("=" * 45)
    print("  TradingView Webhook Signature Generator")
    print("=" * 45)
    print("\nBody (send exactly these bytes):")
    print(body.decode("utf-8"))
    print("\nHeader:")
    print(f"  {SIGNATURE_HEADER}: {signature}")
    print("\nTradingView substitutes placeholders per alert, so production alerts")
    print("need a signing proxy that recomputes the signature for each body.")


if __name__ == "__main__":
    main()
