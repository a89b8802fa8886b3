#!/usr/bin/env python3
"""
QRZ Callsign Lookup CLI

Looks up a single callsign on QRZ.com and displays every field of the
callbook record in a formatted table.

Usage:
    qrz-lookup [--insecure] [--verbose] <callsign>

Credentials are read from the QRZ_USERNAME and QRZ_PASSWORD environment
variables, or from ~/.qrz (JSON with "login" and "api" keys) when either is
unset.
"""

import argparse
import json
import logging
import os
import sys
from pathlib import Path

from qrz import QRZError, QRZSession, session_message

AGENT_NAME = "qrz_lookup_v1.0"

# Display labels for well known QRZ record fields
LABELS = {
    "call":     "Callsign",
    "fname":    "First Name",
    "name":     "Last Name",
    "nickname": "Nickname",
    "born":     "Born",
    "addr1":    "Address",
    "addr2":    "City",
    "state":    "State",
    "zip":      "Zip Code",
    "country":  "Country",
    "lat":      "Latitude",
    "lon":      "Longitude",
    "grid":     "Grid Square",
    "county":   "County",
    "cqzone":   "CQ Zone",
    "ituzone":  "ITU Zone",
    "class":    "License Class",
    "codes":    "License Codes",
    "efdate":   "Effective Date",
    "expdate":  "Expiration Date",
    "email":    "Email",
    "url":      "Website",
    "lotw":     "LoTW Member",
    "eqsl":     "eQSL Member",
    "mqsl":     "Accepts Paper QSL",
    "u_views":  "Profile Views",
    "image":    "Profile Image URL",
    "geoloc":   "Geo Source",
    "attn":     "Attention",
}


# ---------------------------------------------------------------------------
# Credentials
# ---------------------------------------------------------------------------

def load_credentials() -> tuple[str, str]:
    """
    Return (username, password).

    QRZ_USERNAME / QRZ_PASSWORD take precedence. Otherwise ~/.qrz is read,
    accepting "login", "username", or "email" as the QRZ login name and
    "api" as the password.

    Example ~/.qrz:
        { "login": "N1JFU", "api": "your_qrz_password" }
    """
    username = os.environ.get("QRZ_USERNAME", "")
    password = os.environ.get("QRZ_PASSWORD", "")
    if username and password:
        return username, password

    cred_path = Path.home() / ".qrz"
    if not cred_path.exists():
        sys.exit(
            f"Error: set QRZ_USERNAME and QRZ_PASSWORD, "
            f"or create a credentials file at {cred_path}"
        )
    with open(cred_path) as f:
        creds = json.load(f)
    username = creds.get("login") or creds.get("username") or creds.get("email", "")
    password = creds.get("api", "")
    if not username or not password:
        sys.exit("Error: ~/.qrz must contain 'login' (or 'username'/'email') and 'api'.")
    return username, password


# ---------------------------------------------------------------------------
# Output
# ---------------------------------------------------------------------------

def check_result(result: dict) -> None:
    """Print any informational notice QRZ attached to a response."""
    message = session_message(result)
    if message:
        print(f"Warning: {message}")


def record_rows(result: dict) -> list[tuple[str, str]]:
    """(label, value) pairs for the non-empty fields of the Callsign record."""
    db = result.get("QRZDatabase")
    record = db.get("Callsign") if isinstance(db, dict) else None
    if not isinstance(record, dict):
        return []
    return [
        (LABELS.get(key, key), value)
        for key, value in record.items()
        if isinstance(value, str) and value
    ]


def print_table(rows: list[tuple[str, str]]) -> None:
    """Print (label, value) rows as a boxed two column table."""
    if not rows:
        print("No data returned.")
        return

    label_w = max(len(label) for label, _ in rows)
    value_w = 54
    div = f"+{'-' * (label_w + 2)}+{'-' * (value_w + 2)}+"

    print(div)
    print(f"| {'Field':<{label_w}} | {'Value':<{value_w}} |")
    print(div)
    for label, value in rows:
        # Wrap values longer than value_w
        first = True
        while value or first:
            chunk, value = value[:value_w], value[value_w:]
            lbl = label if first else ""
            print(f"| {lbl:<{label_w}} | {chunk:<{value_w}} |")
            first = False
    print(div)


# ---------------------------------------------------------------------------
# Main
# ---------------------------------------------------------------------------

def parse_args(argv: list[str] | None = None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(description="QRZ Callsign Lookup")
    parser.add_argument("callsign", help="Callsign to look up")
    parser.add_argument("--insecure", action="store_true",
                        help="Query QRZ over plain http instead of https")
    parser.add_argument("-v", "--verbose", action="store_true",
                        help="Log session and request details")
    return parser.parse_args(argv)


def main(argv: list[str] | None = None) -> None:
    args = parse_args(argv)
    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.WARNING,
        format="%(levelname)s %(name)s: %(message)s",
    )

    callsign = args.callsign.strip().upper()
    username, password = load_credentials()

    with QRZSession(agent=AGENT_NAME) as qrz:
        try:
            check_result(qrz.login(username, password, secure=not args.insecure))
            result = qrz.lookup_callsign(callsign)
        except QRZError as exc:
            sys.exit(f"Error: {exc}")

    check_result(result)
    print_table(record_rows(result))


if __name__ == "__main__":
    main()
