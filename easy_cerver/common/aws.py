# SPDX-License-Identifier: MPL-2.0
# Copyright 2020-2022 John Mille <john@compose-x.io>

"""
Functions to interact with AWS CloudFormation to deploy the rendered template.
"""

from __future__ import annotations

import secrets
from string import ascii_lowercase
from time import sleep
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from easy_cerver.common.files import FileArtifact
    from easy_cerver.common.settings import EasyCerverSettings

from botocore.exceptions import ClientError
from compose_x_common.aws import get_assume_role_session
from tabulate import tabulate

from easy_cerver.common.logging import LOG

CAPABILITIES = ["CAPABILITY_IAM"]


UPDATABLE_STATUSES = [
    "CREATE_COMPLETE",
    "UPDATE_COMPLETE",
    "UPDATE_ROLLBACK_COMPLETE",
    "IMPORT_COMPLETE",
    "IMPORT_ROLLBACK_COMPLETE",
]
REVIEW_STATUS = "REVIEW_IN_PROGRESS"
FAILED_CREATE_STATUS = "ROLLBACK_COMPLETE"


def get_cross_role_session(session, arn, region_name=None, session_name=None):
    """
    Function to override the settings session with an assumed role session

    :param boto3.session.Session session: The session fetching the credentials for the role
    :param str arn:
    :param str region_name: Name of region for session
    :param str session_name: Override name of the session
    :return: boto3 session from lookup settings
    :rtype: boto3.session.Session
    """
    if not session_name:
        session_name = "EasyCerver@Deploy"
    try:
        return get_assume_role_session(
            session, arn, session_name=session_name, region=region_name
        )
    except ClientError:
        LOG.error(f"Failed to use the Role ARN {arn}")
        raise


def get_stack_status(client, name: str) -> str | None:
    """
    :param client: CloudFormation client
    :param str name: name of the stack
    :return: the status of the stack, None when it does not exist
    :rtype: str
    """
    try:
        stacks = client.describe_stacks(StackName=name)["Stacks"]
    except ClientError as error:
        if (
            error.response["Error"]["Code"] == "ValidationError"
            and "does not exist" in error.response["Error"]["Message"]
        ):
            return None
        raise
    if not stacks:
        return None
    return stacks[0]["StackStatus"]


def log_blocked_stack(name: str, status: str) -> None:
    if status == FAILED_CREATE_STATUS:
        LOG.error(
            f"Stack {name} failed to create ({status}) and cannot be updated. Delete it first."
        )
    elif status == REVIEW_STATUS:
        LOG.error(
            f"Stack {name} is {status}: it only holds a change set. Use plan to execute it."
        )
    else:
        LOG.error(f"Stack {name} is {status} and can neither be created nor updated.")


def validate_stack_availability(settings: EasyCerverSettings, template_file):
    """
    Function to check that the template can be used to create or update the stack

    :param EasyCerverSettings settings:
    :param FileArtifact template_file:
    """
    if not settings.upload:
        raise RuntimeError(
            "The template was not uploaded to S3, which is required to deploy."
        )
    elif not template_file.url or not template_file.url.startswith("https://"):
        raise ValueError(
            f"The URL for the stack is incorrect.: {template_file.url}",
            "TemplateURL must be a s3 URL",
        )


def deploy(settings: EasyCerverSettings, template_file: FileArtifact):
    """
    Function to deploy (create or update) the stack to CFN.

    :param EasyCerverSettings settings:
    :param FileArtifact template_file:
    :return: the stack ID, None when the stack is in a state that allows neither
    """
    validate_stack_availability(settings, template_file)
    client = settings.session.client("cloudformation")
    status = get_stack_status(client, settings.name)
    stack_args = {
        "StackName": settings.name,
        "Capabilities": CAPABILITIES,
        "TemplateURL": template_file.url,
        "DisableRollback": settings.disable_rollback,
    }
    if status is None:
        stack_id = client.create_stack(**stack_args)["StackId"]
        LOG.info(f"Stack {settings.name} creating - {stack_id}")
    elif status in UPDATABLE_STATUSES:
        LOG.warning(f"Stack {settings.name} already exists ({status}). Updating.")
        stack_id = client.update_stack(**stack_args)["StackId"]
        LOG.info(f"Stack {settings.name} updating - {stack_id}")
    else:
        log_blocked_stack(settings.name, status)
        return None
    return stack_id


def get_change_set_status(client, change_set_name, settings, wait_seconds=10):
    pending_statuses = [
        "CREATE_PENDING",
        "CREATE_IN_PROGRESS",
        "DELETE_PENDING",
        "DELETE_IN_PROGRESS",
        "REVIEW_IN_PROGRESS",
    ]
    success_statuses = ["CREATE_COMPLETE", "DELETE_COMPLETE"]
    failed_statuses = ["DELETE_FAILED", "FAILED"]
    ready = False
    status = None
    while not ready:
        status = client.describe_change_set(
            ChangeSetName=change_set_name, StackName=settings.name
        )
        if status["Status"] in failed_statuses:
            raise SystemExit(
                "Change set is unsuccessful",
                status["Status"],
                status.get("StatusReason"),
            )
        if status["Status"] in pending_statuses:
            print(
                f"ChangeSet creation in progress. Waiting {wait_seconds} seconds",
                end="\r",
                flush=True,
            )
            sleep(wait_seconds)
        elif status["Status"] in success_statuses:
            ready = True

    print(
        tabulate(
            [
                [
                    change["ResourceChange"]["LogicalResourceId"],
                    change["ResourceChange"]["ResourceType"],
                    change["ResourceChange"]["Action"],
                ]
                for change in status["Changes"]
            ],
            ["LogicalResourceId", "ResourceType", "Action"],
            tablefmt="rst",
        )
    )
    return status


def plan(settings: EasyCerverSettings, template_file: FileArtifact, apply=None):
    """
    Function to create a change-set and print the changes it would apply

    :param EasyCerverSettings settings:
    :param FileArtifact template_file:
    :param bool apply: Apply the change set without asking when True, discard it when False.
    """
    validate_stack_availability(settings, template_file)
    client = settings.session.client("cloudformation")
    change_set_name = f"{settings.name}" + "".join(
        secrets.choice(ascii_lowercase) for _ in range(10)
    )
    status = get_stack_status(client, settings.name)
    if status is None or status == REVIEW_STATUS:
        change_set_type = "CREATE"
    elif status in UPDATABLE_STATUSES:
        change_set_type = "UPDATE"
    else:
        log_blocked_stack(settings.name, status)
        return None
    client.create_change_set(
        StackName=settings.name,
        Capabilities=CAPABILITIES,
        TemplateURL=template_file.url,
        UsePreviousTemplate=False,
        ChangeSetType=change_set_type,
        ChangeSetName=change_set_name,
    )
    status = get_change_set_status(client, change_set_name, settings)
    if apply is None:
        apply_q = input("Want to apply? [yN]: ")
        apply = apply_q in ["y", "Y", "YES", "Yes", "yes"]
    if apply:
        client.execute_change_set(
            ChangeSetName=change_set_name,
            StackName=settings.name,
            DisableRollback=settings.disable_rollback,
        )
        LOG.info(f"Change set {change_set_name} executing.")
    else:
        client.delete_change_set(
            ChangeSetName=change_set_name, StackName=settings.name
        )
        LOG.info(f"Change set {change_set_name} deleted.")
    return status
