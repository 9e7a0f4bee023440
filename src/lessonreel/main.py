"""Subcommand dispatcher for lessonreel.

Usage:
    lessonreel plan    --content abcs.json --minutes 4
    lessonreel render  --content abcs.json --minutes 4 --output renders/
    lessonreel worker  --config settings.yaml
    lessonreel serve   --config settings.yaml --workers 2
"""

import argparse
import sys

KNOWN_COMMANDS = {"plan", "render", "worker", "serve"}


def main(args=None):
    parser = argparse.ArgumentParser(
        prog="lessonreel",
        description="Queued rendering of short instructional videos.",
    )
    subparsers = parser.add_subparsers(dest="command")

    # Register subcommands. Each delegates to its own module's main().
    subparsers.add_parser("plan", help="Print the compiled scene script, no rendering")
    subparsers.add_parser("render", help="Render one video locally, without a queue")
    subparsers.add_parser("worker", help="Process jobs from the configured job store")
    subparsers.add_parser("serve", help="HTTP API for submitting and polling jobs")

    # Parse only the subcommand name, pass the rest to the subcommand's parser.
    parsed, remaining = parser.parse_known_args(args)

    if parsed.command is None or parsed.command not in KNOWN_COMMANDS:
        parser.print_help()
        sys.exit(1)

    if parsed.command == "plan":
        from .render_cli import plan_main
        plan_main(remaining)
    elif parsed.command == "render":
        from .render_cli import main as render_main
        render_main(remaining)
    elif parsed.command == "worker":
        from .worker_cli import main as worker_main
        worker_main(remaining)
    elif parsed.command == "serve":
        from .serve_cli import main as serve_main
        serve_main(remaining)


if __name__ == "__main__":
    main()
