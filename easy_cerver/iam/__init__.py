# SPDX-License-Identifier: MPL-2.0
# Copyright 2020-2022 John Mille <john@compose-x.io>

"""
IAM helpers shared by the roles of the hosts, the tasks and the renewal workflow.
"""

from troposphere import Sub
from troposphere.iam import Policy

ROLE_ARN_ARG = "RoleArn"


def service_role_trust_policy(service_name: str) -> dict:
    """
    Simple function to format the trust relationship for a Role and an AWS Service
    used from lambda-my-aws/ozone

    :param str service_name: name of the ecs_service
    :return: policy document
    :rtype: dict
    """
    statement = {
        "Effect": "Allow",
        "Principal": {"Service": [Sub(f"{service_name}.${{AWS::URLSuffix}}")]},
        "Action": ["sts:AssumeRole"],
    }
    policy_doc = {"Version": "2012-10-17", "Statement": [statement]}
    return policy_doc


def define_inline_policy(name: str, statements: list) -> Policy:
    """
    Wraps a list of statements into an inline policy

    :param str name: Name of the policy
    :param list statements: IAM statements
    :rtype: troposphere.iam.Policy
    """
    return Policy(
        PolicyName=name,
        PolicyDocument={"Version": "2012-10-17", "Statement": statements},
    )


def allow_statement(actions: list, resources) -> dict:
    """
    :param list actions: IAM actions
    :param resources: list of resources or a single resource/intrinsic function
    :return: an Allow statement
    """
    if not isinstance(resources, list):
        resources = [resources]
    return {"Effect": "Allow", "Action": actions, "Resource": resources}
