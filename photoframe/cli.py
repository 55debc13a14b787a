#!/usr/bin/env python3
# Copyright (c) 2025 Luc Vincent. All Rights Reserved.
"""
Command-line interface for PhotoFrame.
Queries a running PhotoFrame server.
"""

import argparse
import os
import sys

import requests


DEFAULT_API_URL = "http://localhost:3000"


def get_api_url() -> str:
    """Get the API URL from environment or default."""
    return os.environ.get("PHOTOFRAME_API_URL", DEFAULT_API_URL)


def api_call(endpoint: str, params: dict = None):
    """
    Make a GET call to the PhotoFrame server.

    Args:
        endpoint: API endpoint (e.g., "/api/status").
        params: Query parameters.

    Returns:
        Decoded JSON response, or None if the server has no photo ready (503).
    """
    url = f"{get_api_url()}{endpoint}"

    try:
        response = requests.get(url, params=params, timeout=130)
        if response.status_code == 503:
            return None
        response.raise_for_status()
        return response.json()

    except requests.exceptions.ConnectionError:
        print("Error: Could not connect to PhotoFrame service.")
        print(f"Make sure PhotoFrame is running and accessible at {get_api_url()}")
        sys.exit(1)
    except Exception as e:
        print(f"Error: {e}")
        sys.exit(1)


def format_photo(photo: dict) -> str:
    """One-line description of a photo record."""
    line = f"{photo.get('id', '?')}  {photo.get('date', '')}"
    if photo.get("city"):
        line += f"  {photo['city']}"
    if photo.get("index") is not None and photo.get("total") is not None:
        line += f"  ({photo['index']}/{photo['total']})"
    return line


def cmd_status(args):
    """Show current status."""
    status = api_call("/api/status")

    print("PhotoFrame Status")
    print("=" * 40)
    print(f"Mode: {status.get('mode', 'unknown')}")

    cache = status.get("cache", {})
    if cache.get("strategy") == "album":
        print(f"Album: {cache.get('album_id', '')}")
        print(f"Photos: {cache.get('size', 0)} (position {cache.get('cursor', 0)}, "
              f"passes {cache.get('passes', 0)})")
        if cache.get("last_refresh"):
            print(f"Last refresh: {cache['last_refresh'][:19]}")
        if cache.get("last_error"):
            print(f"Last error: {cache['last_error']}")
    else:
        print(f"Shown this cycle: {cache.get('shown', 0)} / {cache.get('cycle_size', 0)}")
        print(f"Cycles completed: {cache.get('cycles_completed', 0)}")
        print(f"Queued: {cache.get('queued', 0)}")


def cmd_next(args):
    """Fetch photos from the server (advances the slideshow)."""
    if args.count > 1:
        photos = api_call("/random/batch", params={"count": args.count})
    else:
        photo = api_call("/random")
        photos = [photo] if photo else None

    if not photos:
        print("No photo available yet, try again later.")
        return

    for photo in photos:
        print(format_photo(photo))


def main():
    """Main entry point."""
    parser = argparse.ArgumentParser(
        description="PhotoFrame - Immich Photo Frame",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  photoframe-cli status         Show current status
  photoframe-cli next           Show the next photo record
  photoframe-cli next -n 5      Show the next five photo records

Environment:
  PHOTOFRAME_API_URL    API URL (default: http://localhost:3000)
        """
    )

    subparsers = parser.add_subparsers(dest="command", help="Command to run")

    subparsers.add_parser("status", help="Show current status")

    next_parser = subparsers.add_parser("next", help="Fetch the next photo record(s)")
    next_parser.add_argument("--count", "-n", type=int, default=1, help="Number of photos")

    args = parser.parse_args()

    if not args.command:
        parser.print_help()
        sys.exit(0)

    commands = {
        "status": cmd_status,
        "next": cmd_next,
    }

    if args.command in commands:
        commands[args.command](args)
    else:
        parser.print_help()


if __name__ == "__main__":
    main()
