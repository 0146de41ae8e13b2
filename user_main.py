import logging

from dentalsched import commands
from dentalsched.config import load_settings
from dentalsched.domain import SourceUnavailableError


def _setup_logging(level: str) -> None:
    logging.basicConfig(
        level=level,
        format="%(asctime)s %(levelname)s %(name)s - %(message)s",
    )


def build_parser() -> commands.CommandParser:
    parser = commands.CommandParser(prog="user_app", description="Dental clinic scheduler: user tool")
    sub = parser.add_subparsers(dest="command", metavar="<command>", required=True)

    sub.add_parser("view_operations", help="Display available dental operations")

    check = sub.add_parser("check_availability", help="Check if a given minute is free")
    commands.add_date_time_arguments(check)

    schedule = sub.add_parser("schedule", help="Schedule a new appointment")
    commands.add_date_time_arguments(schedule)
    schedule.add_argument("op_nr", type=int, help="Operation number from view_operations")

    sub.add_parser("view_history", help="Display appointment history")
    return parser


def main(argv: list[str] | None = None) -> int:
    args = build_parser().parse_args(argv)

    settings = load_settings()
    _setup_logging(settings.log_level)

    try:
        scheduler = commands.open_scheduler(settings)
    except SourceUnavailableError as e:
        return commands.report_catalogue_unavailable(settings, e)

    if args.command == "view_operations":
        return commands.view_operations(scheduler, settings)
    if args.command == "view_history":
        return commands.view_history(scheduler, settings)

    when = (args.day, args.month, args.year, args.hour, args.minute)
    if args.command == "check_availability":
        return commands.check_availability(scheduler, settings, *when)
    return commands.schedule(scheduler, settings, *when, args.op_nr)


if __name__ == "__main__":
    raise SystemExit(main())
