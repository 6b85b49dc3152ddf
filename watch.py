#!/usr/bin/env python3
"""
watch.py: follow the public opportunities listing from the command line.

Connects to a running API server, prints the listing, and reprints it every
time an opportunity is created, edited or deleted.  Stop with Ctrl-C.

Usage:
    python watch.py [api-url]

Example:
    python watch.py http://localhost:8000
"""

from __future__ import annotations

import asyncio
import os
import sys

# Ensure the src/ directory is on the path so package imports resolve
# when running this script directly from the repo root.
_SRC = os.path.join(os.path.dirname(__file__), "src")
if _SRC not in sys.path:
    sys.path.insert(0, _SRC)


async def main() -> None:
    # Deferred so sys.path manipulation above takes effect first.
    from wabnet.config import settings
    from wabnet.log import configure_logging
    from wabnet.sync import HttpSource, ListingSynchronizer, render_text

    configure_logging(settings.log_level)

    api_url = sys.argv[1].strip() if len(sys.argv) > 1 else settings.api_url
    print(f"Watching opportunities at {api_url}")
    print()

    listing = ListingSynchronizer(HttpSource(api_url))
    last_rendered: list[str] = []

    def show(current: ListingSynchronizer) -> None:
        text = render_text(current)
        if last_rendered and last_rendered[-1] == text:
            return
        last_rendered.append(text)
        print(text)
        print()

    listing.add_listener(show)
    async with listing:
        # Runs until cancelled by Ctrl-C.
        await asyncio.Event().wait()


if __name__ == "__main__":
    try:
        asyncio.run(main())
    except KeyboardInterrupt:
        print("Stopped.")
