#!/usr/bin/env python3
"""
Dev helper: send a test form submission to the local relay.

Builds a submission for one of the registered form modules, optionally
attaches a real file (base64-encoded, as the website forms do), and POSTs it
to the module's endpoint.

Usage
-----
# Basic: contact form, no attachment, targeting localhost:3001
python scripts/send_test_submission.py

# Job application with a CV
python scripts/send_test_submission.py --path /api/sendEmail --file cv.pdf

# Per-module form with a custom sender
python scripts/send_test_submission.py --path /api/forms/fotovoltaico --email me@example.com

# Print the payload instead of sending it
python scripts/send_test_submission.py --file cv.pdf --dry-run

Environment / .env
------------------
PORT   Port the relay listens on (default: 3001). Overridden by --url.
"""

import argparse
import base64
import json
import os
import sys
import textwrap
from pathlib import Path

import httpx
from dotenv import load_dotenv


# ---------------------------------------------------------------------------
# Payload builder
# ---------------------------------------------------------------------------

def _build_payload(
    name: str,
    email: str,
    phone: str | None,
    message: str | None,
    file_path: Path | None,
) -> dict:
    """
    Build a submission body.

    The attachment goes in ``attachments`` as a one-item list of
    {filename, base64}, the shape the current forms send.
    """
    payload: dict = {"name": name, "email": email}
    if phone:
        payload["phone"] = phone
    if message:
        payload["message"] = message
    if file_path is not None:
        payload["attachments"] = [
            {
                "filename": file_path.name,
                "base64": base64.b64encode(file_path.read_bytes()).decode(),
            }
        ]
    return payload


def _print_response(response: httpx.Response) -> None:
    status = response.status_code
    symbol = "OK" if status == 200 else "FAIL"
    print(f"\n[{symbol}] HTTP {status}")
    try:
        print(json.dumps(response.json(), indent=2, ensure_ascii=False))
    except ValueError:
        print(response.text)


# ---------------------------------------------------------------------------
# Main
# ---------------------------------------------------------------------------

def main() -> int:
    project_root = Path(__file__).resolve().parent.parent
    load_dotenv(project_root / ".env")
    load_dotenv(project_root / "backend" / ".env")

    default_url = f"http://localhost:{os.getenv('PORT', '3001')}"

    parser = argparse.ArgumentParser(
        prog="send_test_submission.py",
        description="Send a test form submission to the Energy Planner form relay.",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog=textwrap.dedent("""\
            Examples:
              python scripts/send_test_submission.py
              python scripts/send_test_submission.py --path /api/sendEmail --file cv.pdf
              python scripts/send_test_submission.py --path /api/internal --dry-run
        """),
    )
    parser.add_argument("--url", default=default_url, help=f"Relay base URL (default: {default_url})")
    parser.add_argument("--path", default="/api/contact", help="Endpoint path (default: /api/contact)")
    parser.add_argument("--name", default="Mario Rossi", help='Submitter name (default: "Mario Rossi")')
    parser.add_argument("--email", default="mario@example.com", help="Submitter email")
    parser.add_argument("--phone", default=None, help="Submitter phone (omitted if not given)")
    parser.add_argument("--message", default="Messaggio di prova", help="Free-text message")
    parser.add_argument("--file", default=None, metavar="PATH", help="File to attach")
    parser.add_argument("--dry-run", action="store_true", help="Print the payload without sending it.")

    args = parser.parse_args()

    file_path = None
    if args.file:
        file_path = Path(args.file)
        if not file_path.exists():
            print(f"ERROR: File not found: {file_path}", file=sys.stderr)
            return 1
        print(f"Attaching file: {file_path} ({file_path.stat().st_size:,} bytes)")

    payload = _build_payload(args.name, args.email, args.phone, args.message, file_path)
    endpoint = f"{args.url.rstrip('/')}/{args.path.lstrip('/')}"

    print(f"Endpoint  : {endpoint}")
    print(f"Name      : {args.name}")
    print(f"Email     : {args.email}")

    if args.dry_run:
        display = dict(payload)
        if display.get("attachments"):
            display["attachments"] = [
                {**a, "base64": f"<base64-encoded, {file_path.stat().st_size} bytes>"}
                for a in display["attachments"]
            ]
        print("\n[DRY RUN] Payload:")
        print(json.dumps(display, indent=2, ensure_ascii=False))
        return 0

    try:
        response = httpx.post(endpoint, json=payload, timeout=60)
    except httpx.ConnectError:
        print(
            f"\nERROR: Could not connect to {endpoint}\n"
            "Is the relay running? Start it with:\n"
            "  cd backend && uvicorn app.main:app --reload --port 3001",
            file=sys.stderr,
        )
        return 1

    _print_response(response)
    return 0 if response.status_code == 200 else 1


if __name__ == "__main__":
    sys.exit(main())
