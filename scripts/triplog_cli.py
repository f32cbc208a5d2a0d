#!/usr/bin/env python3
"""Command-line access to the shared trip log.

Usage
-----
Set environment variables and run::

    export TRIPLOG_DRIVERS="Alice:1234,Bob:5678"
    export TRIPLOG_STORE_PATH="$HOME/.triplog.json"
    export TRIPLOG_SHEET_ID="1zHS..."          # optional mirror
    export TRIPLOG_FORM_ACTION_URL="https://docs.google.com/forms/d/e/.../formResponse"
    python scripts/triplog_cli.py log --driver Alice --pin 1234 --odometer 12345

Subcommands::

    log       Validate and log a trip
    list      Print all trips, newest first
    repair    Rebuild end readings in the store from trip order
    totals    Distance per driver (default: current half-month)
    mirror    Show the spreadsheet mirror's latest row
    suggest   Ask for a note suggestion for a mileage
"""

from __future__ import annotations

import argparse
import asyncio
import json
import logging
import sys
from datetime import datetime
from pathlib import Path

# Allow running from the repo root without installing the package.
_repo = Path(__file__).resolve().parent.parent
_src = _repo / "src"
if _src.is_dir():
    sys.path.insert(0, str(_src))

from pytriplog import TripEntry, TripLog, TripLogConfig, TripLogError, TripRejectedError  # noqa: E402


def _fmt_time(epoch_ms: int | None) -> str:
    if epoch_ms is None:
        return "Now"
    return datetime.fromtimestamp(epoch_ms / 1000).strftime("%Y-%m-%d %H:%M")


def _print_trip(entry: TripEntry) -> None:
    end = f"{entry.end_odometer:,.0f}" if entry.end_odometer is not None else "-"
    print(
        f"{_fmt_time(entry.start_time)} → {_fmt_time(entry.end_time):16}  "
        f"{entry.driver_name:12}  {entry.start_odometer:>10,.0f} → {end:>10}  "
        f"{entry.distance:>8,.0f} mi  {entry.note}"
    )


def _parse_day(value: str, *, end: bool) -> int:
    day = datetime.strptime(value, "%Y-%m-%d")
    if end:
        day = day.replace(hour=23, minute=59, second=59, microsecond=999000)
    return int(day.timestamp() * 1000)


async def _cmd_log(log: TripLog, args: argparse.Namespace) -> int:
    driver = log.authenticate(args.driver, args.pin)
    if driver is None:
        print("Invalid username or PIN.", file=sys.stderr)
        return 2
    try:
        entry = await log.submit(driver, args.odometer, note=args.note)
    except TripRejectedError as exc:
        print(f"Rejected ({exc.reason}): {exc}", file=sys.stderr)
        return 1
    _print_trip(entry)
    return 0


async def _cmd_list(log: TripLog, args: argparse.Namespace) -> int:
    trips = await log.list_trips(repair=args.repair)
    if args.json_mode:
        print(json.dumps([trip.to_record() for trip in trips], indent=2))
        return 0
    if not trips:
        print("No entries found")
    for trip in trips:
        _print_trip(trip)
    return 0


async def _cmd_repair(log: TripLog, _args: argparse.Namespace) -> int:
    trips = await log.repair()
    print(f"Rebuilt {len(trips)} trips")
    return 0


async def _cmd_totals(log: TripLog, args: argparse.Namespace) -> int:
    start = _parse_day(args.start, end=False) if args.start else None
    end = _parse_day(args.end, end=True) if args.end else None
    totals = await log.totals(start, end)
    for driver, miles in sorted(totals.items()):
        print(f"{driver:12} {miles:>10,.1f} mi")
    return 0


async def _cmd_mirror(log: TripLog, _args: argparse.Namespace) -> int:
    reading = await log.read_mirror()
    print(json.dumps(reading.model_dump(mode="json"), indent=2))
    return 0


async def _cmd_suggest(log: TripLog, args: argparse.Namespace) -> int:
    print(await log.suggest_note(args.mileage))
    return 0


async def main() -> int:
    parser = argparse.ArgumentParser(description="Shared-vehicle trip log")
    parser.add_argument("--verbose", "-v", action="store_true", help="Enable debug logging")
    sub = parser.add_subparsers(dest="command", required=True)

    p_log = sub.add_parser("log", help="Validate and log a trip")
    p_log.add_argument("--driver", required=True)
    p_log.add_argument("--pin", required=True)
    p_log.add_argument("--odometer", required=True)
    p_log.add_argument("--note")
    p_log.set_defaults(handler=_cmd_log)

    p_list = sub.add_parser("list", help="Print all trips, newest first")
    p_list.add_argument("--json", action="store_true", dest="json_mode", help="Output machine-readable JSON")
    p_list.add_argument("--repair", action="store_true", help="Recompute end readings from trip order")
    p_list.set_defaults(handler=_cmd_list)

    p_repair = sub.add_parser("repair", help="Rewrite the store with end readings rebuilt from trip order")
    p_repair.set_defaults(handler=_cmd_repair)

    p_totals = sub.add_parser("totals", help="Distance per driver")
    p_totals.add_argument("--start", help="First day (YYYY-MM-DD)")
    p_totals.add_argument("--end", help="Last day (YYYY-MM-DD), inclusive")
    p_totals.set_defaults(handler=_cmd_totals)

    p_mirror = sub.add_parser("mirror", help="Show the mirror's latest row")
    p_mirror.set_defaults(handler=_cmd_mirror)

    p_suggest = sub.add_parser("suggest", help="Suggest a trip note")
    p_suggest.add_argument("mileage", type=float)
    p_suggest.set_defaults(handler=_cmd_suggest)

    args = parser.parse_args()

    if args.verbose:
        logging.basicConfig(level=logging.DEBUG, format="%(levelname)s %(name)s: %(message)s")
    else:
        logging.basicConfig(level=logging.WARNING)

    try:
        config = TripLogConfig.from_env()
        async with TripLog(config) as log:
            return int(await args.handler(log, args))
    except TripLogError as exc:
        print(f"Error: {exc}", file=sys.stderr)
        return 1


if __name__ == "__main__":
    sys.exit(asyncio.run(main()))
