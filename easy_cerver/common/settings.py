# SPDX-License-Identifier: MPL-2.0
# Copyright 2020-2022 John Mille <john@compose-x.io>

"""
Module for the EasyCerverSettings class
"""

from __future__ import annotations

import re
from copy import deepcopy
from datetime import datetime as dt
from json import loads

import boto3
import jsonschema
import yaml
from botocore.exceptions import ClientError
from compose_x_common.aws import get_account_id, validate_iam_role_arn
from compose_x_common.compose_x_common import keyisset, set_else_none
from importlib_resources import files as pkg_files

from easy_cerver.common.aws import get_cross_role_session
from easy_cerver.common.logging import LOG
from easy_cerver.exceptions import IncompatibleOptions
from easy_cerver.iam import ROLE_ARN_ARG

DOMAIN_NAME_RE = re.compile(
    r"^(?=.{1,253}\.?$)(\*\.)?([a-zA-Z0-9](?:[a-zA-Z0-9-]{0,61}[a-zA-Z0-9])?\.)+[a-zA-Z]{2,63}\.?$"
)


def load_config_file(file_path: str) -> dict:
    """
    Function to load the configuration file. YAML being a superset of JSON, both are supported.

    :param str file_path: path to the configuration file
    :return: the configuration content
    :rtype: dict
    """
    with open(file_path, "r") as config_fd:
        content = yaml.safe_load(config_fd.read())
    if not isinstance(content, dict):
        raise TypeError(
            f"The content of {file_path} must be a mapping. Got", type(content)
        )
    return content


def merge_config_files(files: list) -> dict:
    """
    Merges the configuration files in order. Top level keys of the latest file win.

    :param list[str] files:
    :rtype: dict
    """
    content = {}
    for file_path in files:
        LOG.debug(f"Loading configuration from {file_path}")
        content.update(load_config_file(file_path))
    return content


def validate_domain_names(domain_names: list, zone_name: str = None) -> list:
    """
    Ensures the record names are valid DNS names, within the hosted zone when given.
    Names are lowercased and their trailing dot removed, duplicates are rejected.

    :param list[str] domain_names:
    :param str zone_name: the hosted zone domain name
    :raises: ValueError
    :return: the normalized domain names
    """
    valid_names = []
    if zone_name:
        zone_name = zone_name.rstrip(".").lower()
    for domain_name in domain_names:
        if not isinstance(domain_name, str) or not DOMAIN_NAME_RE.match(domain_name):
            raise ValueError(
                "Invalid domain name",
                domain_name,
                "Must match",
                DOMAIN_NAME_RE.pattern,
            )
        domain_name = domain_name.rstrip(".").lower()
        if domain_name in valid_names:
            raise ValueError("Domain name", domain_name, "is set more than once")
        if zone_name and not (
            domain_name == zone_name or domain_name.endswith(f".{zone_name}")
        ):
            raise ValueError(
                "Domain name", domain_name, "is not in the hosted zone", zone_name
            )
        valid_names.append(domain_name)
    return valid_names


class EasyCerverSettings:
    """
    Class to handle the settings to use for Easy Cerver: the options of the stack to render
    and the options of the execution (command, output, AWS session).

    :ivar dict content: the validated configuration content
    :ivar boto3.session.Session session: session for the AWS API calls
    :ivar str hosted_zone_id: ID of the public hosted zone, set from config or lookup
    """

    name_arg = "Name"
    region_arg = "RegionName"
    arn_arg = ROLE_ARN_ARG

    deploy_arg = "up"
    render_arg = "render"
    create_arg = "create"
    plan_arg = "plan"
    config_render_arg = "config"
    command_arg = "command"

    bucket_arg = "BucketName"
    input_file_arg = "ConfigFile"
    output_dir_arg = "OutputDirectory"
    format_arg = "TemplateFormat"
    default_format = "json"
    allowed_formats = ["json", "yaml"]

    default_output_dir = f"/tmp/{dt.utcnow().strftime('%s')}"

    default_instance_type = "t2.micro"
    default_certbot_tag = "v1.29.0"
    default_aws_cli_tag = "latest"
    default_schedule_interval = 60
    default_removal_policy = "destroy"

    active_commands = [
        {
            "name": deploy_arg,
            "help": "Generates & Validates the CFN template, Creates/Updates stack in CFN",
        },
        {
            "name": render_arg,
            "help": "Generates & Validates the CFN template locally. No upload to S3",
        },
        {
            "name": create_arg,
            "help": "Generates & Validates the CFN template locally. Uploads file to S3",
        },
        {
            "name": plan_arg,
            "help": "Creates a change-set to show the diff prior to an update",
        },
    ]
    validation_commands = [
        {
            "name": config_render_arg,
            "help": "Merges and validates the configuration files, prints it with defaults",
        }
    ]
    neutral_commands = [
        {"name": "version", "help": "Easy Cerver Version"},
    ]
    all_commands = active_commands + validation_commands + neutral_commands

    def __init__(
        self,
        content=None,
        profile_name=None,
        session=None,
        **kwargs,
    ):
        """
        Class to init the configuration
        """
        self.__args = deepcopy(kwargs)
        self.aws_region = set_else_none(self.region_arg, kwargs)
        self.session = boto3.session.Session(region_name=self.aws_region)
        self.override_session(session, profile_name, kwargs)
        if not self.aws_region:
            self.aws_region = self.session.region_name
        self.name = kwargs[self.name_arg]
        self.bucket_name = set_else_none(self.bucket_arg, kwargs)
        self.account_id = None
        self.deploy = False
        self.plan = False
        self.no_upload = True
        self.upload = False
        self.parse_command(kwargs)
        self.input_files = set_else_none(self.input_file_arg, kwargs, alt_value=[])
        self.content = {}
        self.set_content(content)
        self.set_output_settings(kwargs)
        self.hosted_zone_id = set_else_none("HostedZoneId", self.content)
        self.record_domain_names = validate_domain_names(
            set_else_none(
                "RecordDomainNames",
                self.content,
                alt_value=[self.hosted_zone_domain],
            ),
            self.hosted_zone_domain,
        )

    @property
    def disable_rollback(self) -> bool:
        return bool(set_else_none("DisableRollback", self.__args, alt_value=False))

    @property
    def hosted_zone_domain(self) -> str:
        return self.content["HostedZoneDomain"].rstrip(".").lower()

    @property
    def email(self) -> str:
        return self.content["Email"]

    @property
    def cert_name(self) -> str:
        """The certificate lineage name used by certbot, i.e. /etc/letsencrypt/live/<cert_name>"""
        return self.record_domain_names[0]

    @property
    def vpc_override(self) -> dict | None:
        return set_else_none("Vpc", self.content)

    @property
    def security_group_id(self) -> str | None:
        return set_else_none("SecurityGroupId", self.content)

    @property
    def host_instance_type(self) -> str:
        return set_else_none(
            "HostInstanceType", self.content, alt_value=self.default_instance_type
        )

    @property
    def host_spot_price(self) -> str | None:
        return set_else_none("HostInstanceSpotPrice", self.content)

    @property
    def log_group_name(self) -> str | None:
        return set_else_none("LogGroupName", self.content)

    @property
    def certbot_tag(self) -> str:
        return set_else_none(
            "CertbotDockerTag", self.content, alt_value=self.default_certbot_tag
        )

    @property
    def aws_cli_tag(self) -> str:
        return set_else_none(
            "AwsCliDockerTag", self.content, alt_value=self.default_aws_cli_tag
        )

    @property
    def schedule_interval(self) -> int:
        return int(
            set_else_none(
                "CertbotScheduleInterval",
                self.content,
                alt_value=self.default_schedule_interval,
            )
        )

    @property
    def removal_policy(self) -> str:
        return set_else_none(
            "RemovalPolicy", self.content, alt_value=self.default_removal_policy
        )

    @property
    def strict_certificate_gate(self) -> bool:
        return keyisset("StrictCertificateGate", self.content)

    @property
    def server_task_properties(self) -> dict | None:
        if not keyisset("ServerTask", self.content):
            return None
        return self.content["ServerTask"]["Properties"]

    def set_content(self, content=None):
        """
        Method to initialize the configuration content from files or given content, and validate it
        against the JSON schema.

        :param dict content:
        """
        if content is not None:
            config = deepcopy(content)
        else:
            config = merge_config_files(self.input_files)
        source = pkg_files("easy_cerver").joinpath("specs/easy-cerver.spec.json")
        LOG.info(f"Validating configuration against input schema {source.name}")
        jsonschema.validate(config, loads(source.read_text()))
        if keyisset("SecurityGroupId", config) and not keyisset("Vpc", config):
            raise IncompatibleOptions(
                "SecurityGroupId is set but Vpc is not. The security group must belong to the given Vpc."
            )
        self.content = config

    def render_config(self) -> dict:
        """
        Returns the configuration with the defaults applied, as used to render the template

        :rtype: dict
        """
        rendered = {
            "HostedZoneDomain": self.hosted_zone_domain,
            "Email": self.email,
            "RecordDomainNames": self.record_domain_names,
            "HostInstanceType": self.host_instance_type,
            "CertbotDockerTag": self.certbot_tag,
            "CertbotScheduleInterval": self.schedule_interval,
            "AwsCliDockerTag": self.aws_cli_tag,
            "RemovalPolicy": self.removal_policy,
            "StrictCertificateGate": self.strict_certificate_gate,
        }
        for key in (
            "HostedZoneId",
            "Vpc",
            "SecurityGroupId",
            "HostInstanceSpotPrice",
            "LogGroupName",
            "ServerTask",
        ):
            if keyisset(key, self.content):
                rendered[key] = self.content[key]
        return rendered

    def parse_command(self, kwargs):
        """
        Method to analyze the command and set execution settings accordingly.

        :param dict kwargs:
        """
        command = kwargs[self.command_arg]
        command_names = [cmd["name"] for cmd in self.all_commands]
        if command not in command_names:
            raise ValueError(
                "Command", command, "is not valid. Must be one of", command_names
            )
        if command == self.deploy_arg:
            self.deploy = True
            self.upload = True
        elif command == self.plan_arg:
            self.plan = True
            self.upload = True
        elif command == self.create_arg:
            self.upload = True
        self.no_upload = not self.upload

    def override_session(self, session, profile_name, kwargs):
        """
        Method to set the session based on input params

        :param boto3.session.Session session: The session to override the API calls with
        :param str profile_name: Name of a profile configured in .aws/config
        :param dict kwargs: CLI kwargs
        """
        if profile_name and not session:
            self.session = boto3.session.Session(
                profile_name=profile_name, region_name=self.aws_region
            )
        elif session and not (profile_name or keyisset(self.arn_arg, kwargs)):
            self.session = session
        if keyisset(self.arn_arg, kwargs):
            validate_iam_role_arn(arn=kwargs[self.arn_arg])
            self.session = get_cross_role_session(
                session if session else self.session,
                kwargs[self.arn_arg],
                region_name=self.aws_region,
                session_name=f"EasyCerverSettings@{kwargs[self.command_arg]}",
            )

    def set_output_settings(self, kwargs):
        """
        Method to set the output settings based on kwargs
        """
        self.format = self.default_format
        if (
            keyisset(self.format_arg, kwargs)
            and kwargs[self.format_arg] in self.allowed_formats
        ):
            self.format = kwargs[self.format_arg]

        self.output_dir = set_else_none(
            self.output_dir_arg, kwargs, alt_value=self.default_output_dir
        )

    def set_bucket_name_from_account_id(self):
        """
        Defines the default bucket name to use from the AWS Account ID
        """
        if self.bucket_name and isinstance(self.bucket_name, str):
            return
        if self.account_id is None:
            try:
                self.account_id = get_account_id(session=self.session)
                self.bucket_name = f"easy-cerver-{self.account_id}-{self.aws_region}"
            except ClientError as error:
                code = error.response["Error"]["Code"]
                message = error.response["Error"]["Message"]
                if code == "ExpiredToken":
                    LOG.error(message)
                    LOG.warning(
                        "Due to credentials error, we won't attempt to upload to S3."
                    )
                else:
                    LOG.error(error)
                self.bucket_name = None
                self.upload = False
                self.no_upload = True
