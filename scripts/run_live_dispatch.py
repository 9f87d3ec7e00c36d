#!/usr/bin/env python3
"""
Live smoke test: send one envelope through the configured SMS gateway.

Uses the same DispatchService the API and Lambda hosts build, so the
rate limiter, retry policy and attribute output match production.

Gateway settings come from the environment (or the project-root .env):
GATEWAY_BASE_URL, GATEWAY_API_KEY and optionally GATEWAY_SENDER_ID.

Usage:
    python scripts/run_live_dispatch.py --to +15148887777 +15148887779 --body "SMS Message."
    python scripts/run_live_dispatch.py --email message.eml
    python scripts/run_live_dispatch.py --to +15148887777 --body hi --dry-run
"""

import argparse
import json
import sys
import time
from pathlib import Path

# Add src to path
sys.path.insert(0, str(Path(__file__).parent.parent / 'src'))

from sms_dispatch.config import get_settings
from sms_dispatch.errors import ConfigurationError, MalformedEnvelopeError
from sms_dispatch.engine.parser import parse_envelope
from sms_dispatch.ingest.email import extract_envelope_from_email
from sms_dispatch.service import DispatchService, ProcessOutcome


def build_payload(args: argparse.Namespace) -> dict:
    """Wire envelope from the CLI arguments or an .eml file."""
    if args.email:
        return extract_envelope_from_email(Path(args.email).read_bytes())
    return {'to': args.to or [], 'body': args.body or ''}


def print_outcome(outcome: ProcessOutcome, elapsed_ms: int) -> None:
    print("=" * 70)
    print(f"ROUTE: {outcome.route.value.upper()}")
    print("=" * 70)
    if outcome.outcome is not None:
        print(f"Classification: {outcome.outcome.classification.value}")
        print(f"Succeeded: {outcome.outcome.success_count}")
        print(f"Failed: {outcome.outcome.failure_count}")
    print("\nAttributes:")
    print(json.dumps(outcome.attributes, indent=2))
    print(f"\nTotal time: {elapsed_ms} ms")


def main():
    """CLI entry point."""
    parser = argparse.ArgumentParser(
        description='Send one envelope through the live SMS gateway'
    )
    parser.add_argument(
        '--to', '-t',
        nargs='+',
        help='Recipient phone numbers'
    )
    parser.add_argument(
        '--body', '-b',
        help='Message body'
    )
    parser.add_argument(
        '--email', '-e',
        help='Read recipients and body from an RFC 5322 .eml file instead'
    )
    parser.add_argument(
        '--dry-run', '-n',
        action='store_true',
        help='Validate the envelope without sending'
    )

    args = parser.parse_args()

    try:
        payload = build_payload(args)
        envelope = parse_envelope(payload)
    except MalformedEnvelopeError as e:
        print(f"Invalid envelope: {e}")
        sys.exit(2)

    print(f"Recipients: {', '.join(envelope.recipients)}")
    print(f"Body: {envelope.body!r}")

    if args.dry_run:
        print("\nDry run: nothing sent.")
        return

    settings = get_settings()
    try:
        service = DispatchService.from_settings(settings)
    except ConfigurationError as e:
        print(f"Configuration error: {e}")
        sys.exit(1)

    try:
        t0 = time.monotonic()
        outcome = service.process(payload, trace_id='live-dispatch')
        print_outcome(outcome, int((time.monotonic() - t0) * 1000))
    finally:
        service.close()


if __name__ == '__main__':
    main()
