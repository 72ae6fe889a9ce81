# ruff: noqa: T201

import argparse
import os
import sys
from pathlib import Path

from fixture_builder import __version__, builder, config
from fixture_builder.utils import say


def main() -> int:
    parser = argparse.ArgumentParser()
    parser.add_argument("--version", action="version", version=__version__)

    subparsers = parser.add_subparsers(dest="subcommand")

    parser_config = subparsers.add_parser("config", help="create config")
    parser_config.set_defaults(func=create_config)
    parser_config.add_argument(
        "-d",
        dest="directory",
        type=Path,
        default=Path(),
        help="target directory for the to be created config file",
    )
    parser_config.add_argument(
        "--database",
        default="sqlite:///db.sqlite3",
        help="database URL used for generating the fixtures",
    )

    parser_build = subparsers.add_parser("build", help="build fixtures")
    parser_build.set_defaults(func=build)
    parser_build.add_argument(
        "-c",
        dest="config_file",
        type=Path,
        help=f"config file (default: value of {config.ENVIRONMENT_VARIABLE})",
    )
    parser_build.add_argument(
        "--force",
        action="store_true",
        help="build fixtures even if none of the checked files has changed",
    )

    args = parser.parse_args(sys.argv[1:])

    if not args.subcommand:
        parser.print_usage()
        return 2

    return args.func(args)


def create_config(args: argparse.Namespace) -> int:
    config_file = config.create_config_file(args.directory, args.database)
    print(f"Created {config_file}")
    return 0


def build(args: argparse.Namespace) -> int:
    try:
        configuration = config.load_config(args.config_file, os.environ.copy())
    except RuntimeError as e:
        print(e, file=sys.stderr)
        return 2

    result = builder.build_fixtures(configuration, args.force)

    if isinstance(result, builder.SetupFailed):
        print()
        say("There was an error building fixtures", repr(result.error))
        print()
        print(result.traceback)
        return 1

    return 0
