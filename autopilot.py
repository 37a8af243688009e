# autopilot.py
from __future__ import annotations

import argparse
import os
import secrets
from pathlib import Path
from typing import Optional

from champion_catalog import CatalogError, ChampionCatalog, UnknownChampionError, load_catalog
from console_input import ConsoleInput, HELP, split_names
from console_log import TeeLog
from control_server import create_app, serve_in_thread
from control_state import CommandBus, SharedControlState
from engine import AutopilotLoop, PhaseDispatcher, SessionPoller
from env_loader import Settings, load_project_env
from executor import MutationExecutor
from lcu_client import LCUClient, find_lockfile
from plan_store import load_plan, save_plan
from planner import ReconciliationPlanner
from selection_plan import EpisodeState, SelectionPlan

LOCKFILE_RETRY_SEC = 30.0


def build_arg_parser() -> argparse.ArgumentParser:
    ap = argparse.ArgumentParser(description="Auto-accept matches and ban/pick in champion select.")
    ap.add_argument("--profile", default=None, help="env profile (.env.<profile>)")
    ap.add_argument("--lockfile", default=None, help="path to the League client lockfile")
    ap.add_argument("--catalog", default=None, help="champion catalog JSON [{id, name}]")
    ap.add_argument("--refresh-catalog", action="store_true", help="download the champion list from Data Dragon")

    ap.add_argument("--ban", default=None, help="ban target")
    ap.add_argument("--picks", default=None, help='ordered pick fallbacks, e.g. "Ahri, Lux, Annie"')
    ap.add_argument("--no-saved-plan", action="store_true", help="ignore the saved selection")

    ap.add_argument("--no-auto-accept", action="store_true")
    ap.add_argument("--rune-swap", action="store_true")
    ap.add_argument("--cooldown", type=float, default=None, help="seconds to wait after a ban/pick")

    ap.add_argument("--no-console", action="store_true", help="do not read commands from stdin")
    ap.add_argument("--no-control-api", action="store_true", help="do not start the local control API")
    ap.add_argument("--log-file", default=None)
    return ap


def apply_cli_overrides(settings: Settings, args: argparse.Namespace) -> Settings:
    if args.lockfile:
        settings.lockfile = args.lockfile
    if args.catalog:
        settings.catalog_path = args.catalog
    if args.no_auto_accept:
        settings.auto_accept = False
    if args.rune_swap:
        settings.rune_swap = True
    if args.cooldown is not None:
        settings.cooldown = float(args.cooldown)
    if args.log_file:
        settings.log_file = args.log_file
    return settings


def initial_plan(catalog: ChampionCatalog, args: argparse.Namespace, settings: Settings) -> SelectionPlan:
    plan = SelectionPlan() if args.no_saved_plan else load_plan(catalog)
    if args.ban:
        plan.set_ban(catalog.resolve(args.ban))
    if args.picks:
        plan.set_picks(catalog.resolve_many(split_names(args.picks)))
    if settings.rune_swap:
        plan.rune_swap_enabled = True
    return plan


def wait_for_lockfile(explicit: Optional[str], bus: CommandBus, log: TeeLog) -> Optional[str]:
    while True:
        path = find_lockfile(explicit)
        if path:
            return path
        log.warn(
            "League client lockfile not found. You may have closed the client; "
            f"retrying in {LOCKFILE_RETRY_SEC:.0f} seconds (set LOL_LOCKFILE to point at it)."
        )
        if bus.terminate_requested.wait(LOCKFILE_RETRY_SEC):
            return None


def main() -> int:
    args = build_arg_parser().parse_args()
    loaded_envs = load_project_env(args.profile)
    settings = apply_cli_overrides(Settings.from_env(), args)

    log = TeeLog(Path(settings.log_file) if settings.log_file else None)

    catalog_path = settings.resolve_path(settings.catalog_path)
    try:
        catalog = load_catalog(catalog_path, locale=settings.catalog_locale, refresh=args.refresh_catalog)
    except (OSError, CatalogError) as e:
        log.error(f"champion catalog unavailable: {e}")
        return 2

    try:
        plan = initial_plan(catalog, args, settings)
    except UnknownChampionError as e:
        log.error(str(e))
        return 2
    if args.ban or args.picks:
        save_plan(plan)

    bus = CommandBus()
    control = SharedControlState(plan, auto_accept=settings.auto_accept)

    token = settings.control_token
    control_url = None
    if not args.no_control_api:
        if not token and settings.control_host not in ("127.0.0.1", "localhost"):
            token = secrets.token_urlsafe(16)
        app = create_app(bus, control, catalog, token=token)
        serve_in_thread(app, settings.control_host, settings.control_port)
        control_url = f"http://{settings.control_host}:{settings.control_port}"

    if not args.no_console:
        ConsoleInput(bus, catalog, control.snapshot).start()

    print("==================================================")
    print("Draft Autopilot")
    print(f"- APP_PROFILE : {os.getenv('APP_PROFILE')}")
    print(f"- catalog     : {catalog_path} ({len(catalog)} champions)")
    print(f"- plan        : {plan.describe()}")
    print(f"- auto accept : {settings.auto_accept}")
    print(f"- rune swap   : {plan.rune_swap_enabled}")
    print(f"- control api : {control_url or '(off)'}")
    if token:
        print(f"- token       : {token}")
    if loaded_envs:
        print("- loaded env  :")
        for x in loaded_envs:
            print(f"   - {x}")
    else:
        print("- loaded env  : (none)")
    print("==================================================")
    if not args.no_console:
        print(HELP)
    print()

    lockfile = wait_for_lockfile(settings.lockfile, bus, log)
    if lockfile is None:
        return 0

    client = LCUClient.from_lockfile(lockfile, timeout=settings.lcu_timeout)
    log.info(f"connected to {client.conn.base_url} (lockfile: {lockfile})")

    sleep = bus.terminate_requested.wait
    executor = MutationExecutor(
        client,
        log,
        cooldown_sec=settings.cooldown,
        check_pause_sec=settings.check_pause,
        sleep=sleep,
    )
    planner = ReconciliationPlanner(client, executor, log)
    dispatcher = PhaseDispatcher(planner, executor, control, plan, EpisodeState(plan), log)
    loop = AutopilotLoop(
        client,
        SessionPoller(client, log),
        dispatcher,
        control,
        bus,
        log,
        poll_interval=settings.poll_interval,
        sleep=sleep,
        on_plan_changed=save_plan,
    )

    try:
        loop.run()
    except KeyboardInterrupt:
        log.info("interrupted")
    finally:
        log.close()
    return 0


if __name__ == "__main__":
    raise SystemExit(main())
