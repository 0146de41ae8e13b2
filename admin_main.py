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
    parser = commands.CommandParser(prog="admin_app", description="Dental clinic scheduler: admin tool")
    sub = parser.add_subparsers(dest="command", metavar="<command>", required=True)
    sub.add_parser("view_operations", help="Display available dental operations")
    sub.add_parser("view_history", help="Display history of all appointments")
    sub.add_parser("save_and_exit", help="Save all appointments and close the program")
    # The catalogue itself is maintained by editing the operations file.
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
    return commands.save_and_exit(scheduler, settings)


if __name__ == "__main__":
    raise SystemExit(main())
