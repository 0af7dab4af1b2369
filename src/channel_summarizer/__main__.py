"""Channel Summarizer - CLI entry point."""

import argparse
import asyncio
import sys

# Load environment variables before settings are read
from dotenv import load_dotenv

load_dotenv()


def main() -> None:
    parser = argparse.ArgumentParser(
        prog="channel-summarizer",
        description="Telegram bot that summarizes forwarded channel messages",
    )
    subparsers = parser.add_subparsers(dest="command", help="Commands")
    subparsers.add_parser("run", help="Start the Telegram bot (default)")
    subparsers.add_parser("config-verify", help="Check configuration and exit")

    args = parser.parse_args()

    if args.command == "config-verify":
        from channel_summarizer.main import config_verify

        sys.exit(config_verify())
    elif args.command in (None, "run"):
        from channel_summarizer.main import main as run_main

        asyncio.run(run_main())
    else:
        parser.print_help()
        sys.exit(1)


if __name__ == "__main__":
    main()
