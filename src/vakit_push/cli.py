"""Command-line interface for Vakit-Push."""

import argparse
import asyncio
import json
import sys
from dataclasses import replace
from datetime import datetime, timedelta

from vakit_push import __version__


def create_parser() -> argparse.ArgumentParser:
    """Create argument parser."""
    parser = argparse.ArgumentParser(
        prog="vakit-push",
        description="Namaz vakitlerinde web-push bildirimi gönderen servis",
    )
    parser.add_argument(
        "--version",
        "-v",
        action="version",
        version=f"vakit-push {__version__}",
    )
    parser.add_argument(
        "--log-level",
        "-l",
        choices=["DEBUG", "INFO", "WARNING", "ERROR"],
        default=None,
        help="Log seviyesi (varsayılan: VAKIT_PUSH_LOG_LEVEL veya INFO)",
    )

    subparsers = parser.add_subparsers(dest="command", help="Komutlar")

    # serve command
    serve_parser = subparsers.add_parser("serve", help="Web sunucusunu başlat")
    serve_parser.add_argument("--host", "-H", default=None, help="Sunucu adresi")
    serve_parser.add_argument("--port", "-p", type=int, default=None, help="Sunucu portu")
    serve_parser.add_argument(
        "--no-scheduler",
        action="store_true",
        help="Dakikalık dispatch zamanlayıcısını başlatma (harici cron için)",
    )

    # tick command
    subparsers.add_parser("tick", help="Dispatch döngüsünü bir kez çalıştır")

    # times command
    times_parser = subparsers.add_parser("times", help="Namaz vakitlerini göster")
    times_parser.add_argument("--lat", type=float, required=True, help="Enlem")
    times_parser.add_argument("--lon", type=float, required=True, help="Boylam")
    times_parser.add_argument("--tz", default=None, help="IANA timezone (varsayılan: koordinattan)")
    times_parser.add_argument("--cc", default=None, help="Ülke kodu (ör. NO)")
    times_parser.add_argument("--madhhab", default=None, help="İkindi mezhebi (hanafi)")
    times_parser.add_argument(
        "--days",
        "-d",
        type=int,
        default=1,
        help="Kaç günlük (varsayılan: 1)",
    )

    return parser


def cmd_serve(args: argparse.Namespace, config) -> int:
    """Run the web server."""
    import uvicorn

    from vakit_push.api.app import create_app

    config = replace(
        config,
        host=args.host or config.host,
        port=args.port or config.port,
        scheduler_enabled=config.scheduler_enabled and not args.no_scheduler,
    )
    app = create_app(config)

    uvicorn.run(app, host=config.host, port=config.port, log_level=config.log_level.lower())
    return 0


def cmd_tick(args: argparse.Namespace, config) -> int:
    """Run one dispatch tick and print the report."""
    from vakit_push.api.dependencies import build_app_state, shutdown_app_state
    from vakit_push.domain.errors import StoreUnavailable

    state = build_app_state(replace(config, scheduler_enabled=False))
    try:
        report = asyncio.run(state.dispatch_service.run_tick())
    except StoreUnavailable as e:
        print(f"❌ Depo erişilemez: {e}", file=sys.stderr)
        return 1
    finally:
        shutdown_app_state(state)

    print(json.dumps(report.to_dict(), ensure_ascii=False, indent=2))
    return 1 if report.failed else 0


def cmd_times(args: argparse.Namespace, config) -> int:
    """Show prayer times."""
    from vakit_push.api.dependencies import build_timing_service
    from vakit_push.domain.errors import ResolutionError
    from vakit_push.domain.models import PrayerName, school_for_madhhab

    service = build_timing_service(config)
    tz_name = service.timezone_for(args.lat, args.lon, args.tz)
    school = school_for_madhhab(args.madhhab)
    today = service.resolve_date("today", tz_name)

    print(f"\n📍 Konum: {args.lat:.4f}, {args.lon:.4f}")
    print(f"🌍 Timezone: {tz_name}")
    print()

    header = f"{'Tarih':<12} " + " ".join(f"{p.display_name:>10}" for p in PrayerName)
    print("=" * len(header))
    print(f"{header} {'Kaynak':>16}")
    print("-" * len(header))

    for offset in range(max(1, args.days)):
        day = today + timedelta(days=offset)
        try:
            times = service.get_timings(args.lat, args.lon, tz_name, args.cc, day, school=school)
        except ResolutionError as e:
            print(f"{day.strftime('%d.%m.%Y'):<12} ❌ {e}")
            continue
        row = " ".join(f"{times.get_time(p):>10}" for p in PrayerName)
        print(f"{day.strftime('%d.%m.%Y'):<12} {row} {times.provider:>16}")

    print("=" * len(header))

    try:
        upcoming = service.next_prayer(
            args.lat, args.lon, tz_name, args.cc, datetime.now().astimezone(), school=school
        )
    except ResolutionError as e:
        print(f"❌ Sonraki vakit bulunamadı: {e}")
        return 1
    print(f"⏭  Sonraki: {upcoming.name.display_name} {upcoming.hhmm}")
    return 0


def main() -> int:
    """Main CLI entry point."""
    from vakit_push.config import AppConfig, setup_logging

    parser = create_parser()
    args = parser.parse_args()

    config = AppConfig.from_env()
    if args.log_level:
        config = replace(config, log_level=args.log_level)
    setup_logging(config.log_level)

    if args.command is None:
        # Varsayılan olarak serve çalıştır
        args = parser.parse_args(["serve"])

    commands = {
        "serve": cmd_serve,
        "tick": cmd_tick,
        "times": cmd_times,
    }

    cmd_func = commands.get(args.command)
    if cmd_func:
        return cmd_func(args, config)

    parser.print_help()
    return 1


if __name__ == "__main__":
    sys.exit(main())
