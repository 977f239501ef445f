#  SPDX-License-Identifier: MPL-2.0
#  Copyright 2020-2022 John Mille <john@compose-x.io>

"""
Console script for ecs_patterns.
"""

import argparse
import sys

import yaml
from botocore.exceptions import ClientError
from cfn_flip.yaml_dumper import LongCleanDumper
from jsonschema.exceptions import ValidationError

from ecs_patterns import __version__ as version
from ecs_patterns.common.logging import LOG, set_log_level
from ecs_patterns.common.settings import PatternsSettings
from ecs_patterns.definition import generate_app
from ecs_patterns.exceptions import PatternsBaseException


class ArgparseHelper(argparse._HelpAction):
    """
    Used to help print top level '--help' arguments from argparse
    when used with subparsers
    """

    def __call__(self, parser, namespace, values, option_string=None):
        parser.print_help()
        print()
        subparsers_actions = [
            action
            for action in parser._actions
            if isinstance(action, argparse._SubParsersAction)
        ]
        for subparsers_action in subparsers_actions:
            for choice, subparser in list(subparsers_action.choices.items()):
                if choice in [
                    cmd["name"] for cmd in PatternsSettings.active_commands
                ] or choice in [
                    cmd["name"] for cmd in PatternsSettings.validation_commands
                ]:
                    print(f"Command '{choice}'")
                    print(subparser.format_usage())
        parser.exit()


def main_parser():
    """
    Console script for ecs_patterns.
    """
    parser = argparse.ArgumentParser(add_help=False)
    parser.add_argument(
        "-h",
        "--help",
        action=ArgparseHelper,
        help="show this help message and exit",
    )

    cmd_parsers = parser.add_subparsers(
        dest=PatternsSettings.command_arg, help="Command to execute."
    )
    base_command_parser = argparse.ArgumentParser(add_help=False)
    files_parser = argparse.ArgumentParser(add_help=False)
    files_parser.add_argument(
        "-f",
        "--definition-file",
        dest=PatternsSettings.input_file_arg,
        required=True,
        help="Path to the definition file. Repeat to merge several files, in order",
        action="append",
    )
    files_parser.add_argument(
        "--loglevel", type=str, help="Log level. Defaults to INFO", required=False
    )
    base_command_parser.add_argument(
        "-d",
        "--output-dir",
        required=False,
        help="Output directory to write the templates to.",
        type=str,
        dest=PatternsSettings.output_dir_arg,
        default=PatternsSettings.default_output_dir,
    )
    base_command_parser.add_argument(
        "-n",
        "--name",
        help="Name of your stack",
        required=True,
        type=str,
        dest=PatternsSettings.name_arg,
    )
    base_command_parser.add_argument(
        "--format",
        help="Defines the format you want to use.",
        type=str,
        dest=PatternsSettings.format_arg,
        choices=PatternsSettings.allowed_formats,
        default=PatternsSettings.default_format,
    )
    base_command_parser.add_argument(
        "--region",
        required=False,
        dest=PatternsSettings.region_arg,
        help="Specify the region you want to build for. "
        "Defaults to the region from config or environment vars",
    )
    base_command_parser.add_argument(
        "--validate",
        dest=PatternsSettings.validate_arg,
        required=False,
        action="store_true",
        help="Validates the templates with the CloudFormation API",
    )
    for command in PatternsSettings.active_commands:
        cmd_parsers.add_parser(
            name=command["name"],
            help=command["help"],
            parents=[base_command_parser, files_parser],
        )
    for command in PatternsSettings.validation_commands:
        cmd_parsers.add_parser(
            name=command["name"], help=command["help"], parents=[files_parser]
        )

    for command in PatternsSettings.neutral_commands:
        cmd_parsers.add_parser(name=command["name"], help=command["help"])
    return parser


def main():
    """
    Main entry point for CLI
    :return: status code
    """
    parser = main_parser()
    if len(sys.argv) == 1:
        parser.print_help()
        return 0
    args = parser.parse_args()
    if getattr(args, "loglevel", None):
        set_log_level(args.loglevel)
    LOG.debug(args)

    if args.command == PatternsSettings.version_arg:
        print(version)
        return 0
    try:
        settings = PatternsSettings(**vars(args))
        LOG.debug(settings)
        if args.command == PatternsSettings.config_render_arg:
            print(
                yaml.dump(
                    settings.definition, Dumper=LongCleanDumper, sort_keys=False
                )
            )
            return 0
        app = generate_app(settings)
        app.synth(settings)
    except (
        PatternsBaseException,
        ValidationError,
        ClientError,
        ValueError,
        LookupError,
        TypeError,
        FileNotFoundError,
    ) as error:
        LOG.error(error)
        return 1
    return 0


if __name__ == "__main__":
    sys.exit(main())  # pragma: no cover
