# SPDX-License-Identifier: MPL-2.0
# Copyright 2020-2022 John Mille <john@compose-x.io>

"""
Console script for easy_cerver.
"""

import argparse
import sys

import yaml

from easy_cerver import __version__
from easy_cerver.common.aws import deploy, plan
from easy_cerver.common.files import FileArtifact
from easy_cerver.common.logging import LOG, set_log_level
from easy_cerver.common.settings import EasyCerverSettings
from easy_cerver.easy_cerver import generate_full_template


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
                    cmd["name"] for cmd in EasyCerverSettings.active_commands
                ] or choice in [
                    cmd["name"] for cmd in EasyCerverSettings.validation_commands
                ]:
                    print(f"Command '{choice}'")
                    print(subparser.format_usage())
        parser.exit()


def main_parser():
    """
    Console script for easy_cerver.
    """
    parser = argparse.ArgumentParser(add_help=False)
    parser.add_argument(
        "-h",
        "--help",
        action=ArgparseHelper,
        help="show this help message and exit",
    )

    cmd_parsers = parser.add_subparsers(
        dest=EasyCerverSettings.command_arg, help="Command to execute."
    )
    base_command_parser = argparse.ArgumentParser(add_help=False)
    files_parser = argparse.ArgumentParser(add_help=False)
    files_parser.add_argument(
        "-f",
        "--config-file",
        dest=EasyCerverSettings.input_file_arg,
        required=True,
        help="Path to the configuration file. Repeat to merge several files, the last one wins.",
        action="append",
    )
    files_parser.add_argument(
        "--loglevel", type=str, help="Log level. Defaults to INFO", required=False
    )
    base_command_parser.add_argument(
        "-d",
        "--output-dir",
        required=False,
        help="Output directory to write the template to.",
        type=str,
        dest=EasyCerverSettings.output_dir_arg,
        default=EasyCerverSettings.default_output_dir,
    )
    base_command_parser.add_argument(
        "-n",
        "--name",
        help="Name of your stack",
        required=True,
        type=str,
        dest=EasyCerverSettings.name_arg,
    )
    base_command_parser.add_argument(
        "--format",
        help="Defines the format you want to use.",
        type=str,
        dest=EasyCerverSettings.format_arg,
        choices=EasyCerverSettings.allowed_formats,
        default=EasyCerverSettings.default_format,
    )
    base_command_parser.add_argument(
        "--region",
        required=False,
        dest=EasyCerverSettings.region_arg,
        help="Specify the region you want to build for"
        "default use default region from config or environment vars",
    )
    base_command_parser.add_argument(
        "-b",
        "--bucket-name",
        type=str,
        required=False,
        help="Bucket name to upload the templates to",
        dest=EasyCerverSettings.bucket_arg,
    )
    base_command_parser.add_argument(
        "--role-arn",
        dest=EasyCerverSettings.arn_arg,
        help="Allow you to run API calls using a specific IAM role, within same or for cross-account",
        required=False,
    )
    base_command_parser.add_argument(
        "--disable-rollback",
        dest="DisableRollback",
        help="On create/plan, disable stack automatic rollback.",
        required=False,
        action="store_true",
    )
    for command in EasyCerverSettings.active_commands:
        cmd_parsers.add_parser(
            name=command["name"],
            help=command["help"],
            parents=[base_command_parser, files_parser],
        )
    for command in EasyCerverSettings.validation_commands:
        cmd_parsers.add_parser(
            name=command["name"], help=command["help"], parents=[files_parser]
        )

    for command in EasyCerverSettings.neutral_commands:
        cmd_parsers.add_parser(name=command["name"], help=command["help"])
    return parser


def render_config(args) -> int:
    """
    Validates the configuration files and prints the configuration with the defaults
    """
    settings = EasyCerverSettings(
        **{
            EasyCerverSettings.name_arg: "config",
            EasyCerverSettings.command_arg: args.command,
            EasyCerverSettings.input_file_arg: getattr(
                args, EasyCerverSettings.input_file_arg
            ),
        }
    )
    print(yaml.dump(settings.render_config(), default_flow_style=False))
    return 0


def main():
    """
    Main entry point for CLI
    :return: status code
    """
    parser = main_parser()
    if len(sys.argv) == 1:
        parser.print_help()
        sys.exit()
    args = parser.parse_args()
    if args.command == "version":
        print(__version__)
        return 0
    if args.loglevel and not set_log_level(LOG, args.loglevel):
        print(f"Log level value {args.loglevel} is invalid.")
    LOG.debug(args)
    if args.command == EasyCerverSettings.config_render_arg:
        return render_config(args)

    settings = EasyCerverSettings(**vars(args))
    if settings.upload:
        settings.set_bucket_name_from_account_id()
    LOG.debug(settings)

    if settings.deploy and not settings.upload:
        LOG.warning(
            "You must update the templates in order to deploy. We won't be deploying."
        )
        settings.deploy = False
    template = generate_full_template(settings)
    template_file = FileArtifact(settings.name, settings=settings, template=template)
    template_file.create(settings)

    if settings.deploy:
        deploy(settings, template_file)
    elif settings.plan:
        plan(settings, template_file)
    return 0


if __name__ == "__main__":
    sys.exit(main())  # pragma: no cover
