#!/usr/bin/env python3
"""Terminal mission HUD for a cold-call agent.

Polls the agent's appointment feed and prints the next mission's
visibility and countdown whenever they change.

Usage:
    python scripts/mission_hud.py --base-url http://localhost:8000 --token <jwt>

    # Faster polling while testing:
    python scripts/mission_hud.py --token <jwt> --interval 10

Requires:
    The API's .env (or environment) so the app settings load; the token may
    also come from the MISSION_HUD_TOKEN environment variable.
"""

import argparse
import asyncio
import os
import sys

# Make the app package importable when run from a checkout
_project_root = os.path.dirname(os.path.dirname(os.path.abspath(__file__)))
if _project_root not in sys.path:
    sys.path.insert(0, _project_root)

from app.core.logging_config import configure_logging
from app.services.mission_timer import AppointmentFeed, HudState, MissionTimer, Visibility


def print_state(state: HudState) -> None:
    if state.mission is None or state.visibility == Visibility.HIDDEN:
        print("-- no mission in sight --", flush=True)
        return
    mission = state.mission
    print(
        f"[{state.visibility.value.upper():<11}] {state.countdown:>8}  "
        f"{mission.get('business_name')} ({mission.get('phone_number')}) {mission.get('status')}",
        flush=True,
    )


async def run(base_url: str, token: str, interval: int | None) -> None:
    feed = AppointmentFeed(base_url, token)
    timer = MissionTimer(feed, poll_interval=interval, on_change=print_state)
    try:
        async with timer:
            await asyncio.Event().wait()
    finally:
        await feed.aclose()


def main():
    parser = argparse.ArgumentParser(description="Show the next cold-call mission and its countdown")
    parser.add_argument("--base-url", default="http://localhost:8000", help="Lead engine API base URL")
    parser.add_argument("--token", default=os.environ.get("MISSION_HUD_TOKEN"), help="Agent bearer token")
    parser.add_argument("--interval", type=int, help="Poll interval in seconds (default: MISSION_POLL_SECONDS)")
    parser.add_argument("--log-level", default="WARNING", help="Log level for the HUD process")
    args = parser.parse_args()

    if not args.token:
        print("ERROR: --token or MISSION_HUD_TOKEN is required")
        sys.exit(1)

    configure_logging(level_name=args.log_level)
    try:
        asyncio.run(run(args.base_url, args.token, args.interval))
    except KeyboardInterrupt:
        print("\nHUD stopped.")


if __name__ == "__main__":
    main()
