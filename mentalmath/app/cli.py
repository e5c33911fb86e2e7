from __future__ import annotations

"""CLI for Mental Math: play matches, browse history, show statistics."""

import argparse
import json
import logging
import sys
import threading
from typing import Any, Dict, Optional

from analytics.config import AnalyticsConfig
from analytics.frame import export_matches, matches_frame
from analytics.report import format_history_line, format_match, format_stats
from analytics.smoothing import ewma_by_match
from analytics.stats import compute
from storage.schema import OperandRange, Operator, Settings
from storage.store import MatchStore, SettingsStore

from .. import __version__
from ..config.config import ConfigError, load_config, resolve_data_dir, validate_config
from ..session import ClockTicker, FixedCountSession, Phase, TimedSession
from ..util.randomness import seed_if_needed, shared_rng
from .events import EventBus
from .explain import enable as explain_enable
from .presets import list_presets, settings_for_difficulty

logger = logging.getLogger(__name__)


def _build_parser() -> argparse.ArgumentParser:
    p = argparse.ArgumentParser(prog="mentalmath", description="Mental arithmetic practice")
    p.add_argument("--config", default=None, help="Path to YAML config")
    p.add_argument("--data-dir", default=None, help="Directory holding history and settings")
    p.add_argument("--explain", action="store_true", help="Trace session milestones to stderr")
    p.add_argument("--version", action="version", version=f"mentalmath {__version__}")
    sub = p.add_subparsers(dest="cmd", required=True)

    pp = sub.add_parser("play", help="Play a match")
    pp.add_argument("--mode", choices=["timed", "fixed"], default=None)
    pp.add_argument("--duration", type=int, default=None, help="Timer in seconds (timed mode), one of session.durations")
    pp.add_argument("--count", type=int, default=None, help="Number of questions (fixed mode)")
    pp.add_argument("--difficulty", choices=list_presets(), default=None)

    sub.add_parser("history", help="List past matches, most recent first")

    sp = sub.add_parser("show", help="Show one match in detail")
    sp.add_argument("match_id", type=int)

    dp = sub.add_parser("delete", help="Delete one match")
    dp.add_argument("match_id", type=int)

    cp = sub.add_parser("clear", help="Delete all history")
    cp.add_argument("--yes", action="store_true", help="Do not ask for confirmation")

    st = sub.add_parser("stats", help="Aggregate statistics")
    st.add_argument("--json", action="store_true", help="Print raw JSON")
    st.add_argument("--smooth", type=int, default=None, metavar="SPAN", help="EWMA span for the accuracy trend")

    ep = sub.add_parser("export", help="Export history (.parquet, .ndjson, .jsonl, .csv)")
    ep.add_argument("path")

    sub.add_parser("presets", help="List difficulty presets")

    sets = sub.add_parser("settings", help="Show or change operator settings")
    ssub = sets.add_subparsers(dest="settings_cmd", required=True)
    ssub.add_parser("show")
    ssub.add_parser("reset")
    spp = ssub.add_parser("preset")
    spp.add_argument("name", choices=list_presets())
    sset = ssub.add_parser("set")
    sset.add_argument("--operator", choices=[op.value for op in Operator], default=None)
    sset.add_argument("--enable", dest="enabled", action="store_true")
    sset.add_argument("--disable", dest="enabled", action="store_false")
    sset.set_defaults(enabled=None)
    sset.add_argument("--range", nargs=4, type=int, metavar=("MIN1", "MAX1", "MIN2", "MAX2"), default=None)
    sset.add_argument("--duration", type=int, default=None)
    sset.add_argument("--count", type=int, default=None)
    return p


def _stores(cfg: Dict[str, Any], data_dir: Optional[str]) -> tuple[MatchStore, SettingsStore]:
    base = resolve_data_dir(cfg, data_dir)
    storage = cfg["storage"]
    return MatchStore(base / storage["matches_file"]), SettingsStore(base / storage["settings_file"])


def _play(args: argparse.Namespace, cfg: Dict[str, Any], store: MatchStore, settings_store: SettingsStore) -> int:
    session_cfg = cfg["session"]
    settings = settings_store.load()
    difficulty = args.difficulty or session_cfg.get("difficulty")
    if difficulty:
        settings = settings_for_difficulty(difficulty, settings)
    mode = args.mode or session_cfg["mode"]
    if mode == "timed" and args.duration is not None and args.duration not in session_cfg["durations"]:
        allowed = ", ".join(str(d) for d in session_cfg["durations"])
        print(f"Duration must be one of: {allowed} seconds (see session.durations in the config).")
        return 2

    moved_on = threading.Event()
    bus = EventBus()
    bus.subscribe("question", lambda _p: moved_on.set())
    bus.subscribe("finished", lambda _m: moved_on.set())
    bus.subscribe("tick", lambda left: print(f"\n[{left}s left]") if left in (30, 10) else None)
    bus.subscribe("finished", lambda _m: print("\nTime's up!") if mode == "timed" else None)

    common = dict(rng=shared_rng(), events=bus)
    if mode == "fixed":
        session = FixedCountSession(
            store,
            settings,
            question_count=args.count or session_cfg["question_count"],
            difficulty=difficulty,
            reveal_delay=session_cfg["reveal_delay_ms"] / 1000,
            **common,
        )
        wait_s = session.reveal_delay
    else:
        session = TimedSession(
            store,
            settings,
            duration=args.duration or session_cfg["duration"],
            wrong_answer_delay=session_cfg["wrong_answer_delay_ms"] / 1000,
            **common,
        )
        wait_s = session.wrong_answer_delay

    if not session.start():
        print("No operation is enabled. Use 'mentalmath settings set --operator add --enable'.")
        return 2

    ticker = ClockTicker(session.tick) if isinstance(session, TimedSession) else None
    if ticker is not None:
        print(f"Timed match: {session.timer_duration}s. Ctrl-C quits.")
        ticker.start()
    try:
        while session.phase is Phase.PLAYING:
            problem = session.current
            if problem is None:
                break
            if isinstance(session, FixedCountSession):
                prompt = f"Q{session.index + 1}/{session.total}: {problem.question} = "
            else:
                prompt = f"[{session.score}] {problem.question} = "
            raw = input(prompt)
            moved_on.clear()
            result = session.submit(raw)
            if not result.graded:
                continue
            if result.correct:
                print("Correct!")
            else:
                print(f"Incorrect. Answer was {result.correct_answer}.")
            if session.phase is Phase.PLAYING and session.current is problem:
                moved_on.wait(timeout=wait_s + 1.0)
    except (KeyboardInterrupt, EOFError):
        if session.phase is not Phase.SUMMARY:
            session.reset()
            print("\nMatch abandoned; nothing saved.")
            return 1
    finally:
        if ticker is not None:
            ticker.stop()

    match = session.match
    if match is None:
        return 1
    print("\nMatch Summary:")
    print(format_match(match))
    return 0


def _settings_cmd(args: argparse.Namespace, settings_store: SettingsStore) -> int:
    if args.settings_cmd == "reset":
        settings_store.save(Settings())
    elif args.settings_cmd == "preset":
        settings_store.save(settings_for_difficulty(args.name, settings_store.load()))
    elif args.settings_cmd == "set":
        settings = settings_store.load()
        if (args.enabled is not None or args.range) and not args.operator:
            print("--enable/--disable/--range need --operator")
            return 2
        if args.operator:
            policy = settings.operators[Operator(args.operator)]
            if args.enabled is not None:
                policy.enabled = args.enabled
            if args.range:
                policy.range = OperandRange(min1=args.range[0], max1=args.range[1], min2=args.range[2], max2=args.range[3])
        updates: Dict[str, Any] = {}
        if args.duration is not None:
            updates["duration"] = args.duration
        if args.count is not None:
            updates["question_count"] = args.count
        # Re-validate so bad durations/counts are rejected
        settings = Settings.model_validate({**settings.model_dump(), **updates})
        settings_store.save(settings)

    settings = settings_store.load()
    for op, policy in settings.operators.items():
        r = policy.range
        state = "on " if policy.enabled else "off"
        print(f"{op.value:<9} {state} [{r.min1}..{r.max1}] {op.symbol} [{r.min2}..{r.max2}]")
    print(f"duration: {settings.duration}s  questions: {settings.question_count}")
    return 0


def _stats_cmd(args: argparse.Namespace, cfg: Dict[str, Any], store: MatchStore) -> int:
    records = store.all()
    stats = compute(records)
    if args.json:
        print(json.dumps(stats.to_dict(), indent=2, default=str))
        return 0
    print(format_stats(stats))
    acfg = AnalyticsConfig.from_config(cfg)
    span = args.smooth or acfg.smoothing_span
    if len(records) >= acfg.min_matches_for_trend:
        smoothed = ewma_by_match(matches_frame(records), value_col="accuracy", span=span, group_cols=["kind"])
        latest = smoothed.groupby("kind", observed=True)["accuracy_smooth"].last()
        for kind, value in latest.items():
            print(f"Accuracy trend ({kind}, EWMA span {span}): {value:.1f}%")
    return 0


def main(argv: list[str] | None = None) -> int:
    logging.basicConfig(level=logging.WARNING, format="%(levelname)s %(name)s: %(message)s")
    args = _build_parser().parse_args(argv)
    if args.explain:
        explain_enable(True)
    seed_if_needed()

    try:
        cfg = validate_config(load_config(args.config))
    except ConfigError as exc:
        print(f"ERROR: {exc}", file=sys.stderr)
        return 2
    store, settings_store = _stores(cfg, args.data_dir)

    if args.cmd == "play":
        return _play(args, cfg, store, settings_store)

    if args.cmd == "history":
        matches = sorted(store.all(), key=lambda m: m.timestamp.timestamp() if m.timestamp else 0, reverse=True)
        if not matches:
            print("No matches yet.")
        for m in matches:
            print(format_history_line(m))
        return 0

    if args.cmd == "show":
        m = store.find_by_id(args.match_id)
        if m is None:
            print(f"No match with id {args.match_id}")
            return 1
        print(format_match(m))
        return 0

    if args.cmd == "delete":
        if not store.delete(args.match_id):
            print(f"No match with id {args.match_id}")
            return 1
        return 0

    if args.cmd == "clear":
        if not args.yes and input("Delete all match history? [y/N] ").strip().lower() != "y":
            return 1
        store.clear()
        return 0

    if args.cmd == "stats":
        return _stats_cmd(args, cfg, store)

    if args.cmd == "export":
        try:
            out = export_matches(store.all(), args.path)
        except ValueError as exc:
            print(f"ERROR: {exc}", file=sys.stderr)
            return 2
        print(f"Exported to {out}")
        return 0

    if args.cmd == "presets":
        for name in list_presets():
            s = settings_for_difficulty(name)
            ops = ", ".join(op.symbol for op in s.enabled_operators())
            r = s.operators[Operator.ADD].range
            print(f"{name}: numbers {r.min1}-{r.max1}, operations {ops}")
        return 0

    if args.cmd == "settings":
        return _settings_cmd(args, settings_store)

    return 0


if __name__ == "__main__":
    raise SystemExit(main())
