import argparse


def build_cli_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(description="League match announcer for Discord.")
    parser.add_argument(
        "--config",
        default=None,
        help="Path to the JSON bot configuration. Without it, secrets are read from RIOT_APIKEY and DISCORD_AUTH.",
    )
    parser.add_argument(
        "--state-file",
        default=None,
        help="Where watches are saved on shutdown and restored on startup (default: botdata.json).",
    )
    parser.add_argument(
        "--watch",
        nargs=2,
        action="append",
        default=[],
        metavar=("SUMMONER", "CHANNEL_ID"),
        help="Start watching SUMMONER and report into CHANNEL_ID. May be given more than once.",
    )
    parser.add_argument(
        "--poll-interval",
        type=float,
        default=None,
        help="Seconds between match list polls for each watch (default: 10).",
    )
    parser.add_argument(
        "--dry-run",
        action="store_true",
        help="Log reports instead of posting them to Discord.",
    )
    parser.add_argument(
        "--debug",
        action="store_true",
        help="Log at DEBUG level.",
    )
    parser.add_argument(
        "--tail-logs",
        action="store_true",
        help="Tail the announcer log file instead of starting the announcer.",
    )
    parser.add_argument(
        "--tail-lines",
        type=int,
        default=100,
        help="How many recent lines to print before following logs (default: 100).",
    )
    parser.add_argument(
        "--no-follow",
        action="store_true",
        help="When used with --tail-logs, print lines and exit without follow mode.",
    )
    return parser
