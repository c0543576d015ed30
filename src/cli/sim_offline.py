# src/cli/sim_offline.py
"""Run the navigation loop against the offline grid simulator."""

import argparse
import json
import logging
from pathlib import Path

from app.logging_config import configure_logging
from app.runtime import build_sim_runtime, run_loop, summarize
from monitoring.dashboard_tui import NavDashboard
from monitoring.events import ControlCommand
from profiles.loader import load_nav_config


def main(argv=None) -> int:
    parser = argparse.ArgumentParser(
        description="Drive the navigation loop through the offline grid simulator."
    )
    parser.add_argument("--config", type=Path, default=None, help="Path to nav.yaml")
    parser.add_argument("--profile", default="sim", help="Profile name (from nav.yaml)")
    parser.add_argument("--ticks", type=int, default=2000, help="Maximum ticks to run")
    parser.add_argument("--events-log", type=Path, default=None, help="Write events as JSONL here")
    parser.add_argument("--dashboard", action="store_true", help="Show the live terminal dashboard")
    parser.add_argument("--log-level", default="INFO", help="Root log level")
    args = parser.parse_args(argv)

    configure_logging(args.log_level)
    config = load_nav_config(args.config, profile=args.profile)
    runtime = build_sim_runtime(config, events_path=args.events_log)

    stop_dashboard = None
    if args.dashboard:
        # Keep the live view readable; per-tick logging would scroll it away.
        logging.getLogger().setLevel(logging.WARNING)
        stop_dashboard = NavDashboard(runtime.bus).start_in_background()

    runtime.bus.publish_command(ControlCommand.start())
    try:
        run_loop(
            runtime.control,
            config.timing.tick_interval_s,
            max_ticks=args.ticks,
            before_tick=runtime.world.advance,
            # Stop once the session has ended on its own (limits or fault).
            should_stop=lambda: runtime.nav.ticks > 0 and not runtime.nav.running,
        )
    except KeyboardInterrupt:
        runtime.bus.publish_command(ControlCommand.emergency_stop())
        runtime.control.apply_pending()
    finally:
        if stop_dashboard is not None:
            stop_dashboard.set()
        summary = summarize(runtime)
        summary["exits_taken"] = runtime.world.exits_taken
        runtime.close()

    print(json.dumps(summary, indent=2, sort_keys=True))
    return 0 if summary["phase"] != "FAULTED" else 1


if __name__ == "__main__":
    raise SystemExit(main())
