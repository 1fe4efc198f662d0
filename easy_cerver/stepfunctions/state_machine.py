# SPDX-License-Identifier: MPL-2.0
# Copyright 2020-2022 John Mille <john@compose-x.io>

"""
Step Functions state machine running the certbot task and waiting for it to finish.

The definition is rendered as a dict, with the ARNs of the stack resources set through
DefinitionSubstitutions, i.e. ``${ClusterArn}``.
"""

from __future__ import annotations

from troposphere import GetAtt, Ref, Sub, Template
from troposphere.iam import Role
from troposphere.stepfunctions import StateMachine

from easy_cerver.iam import allow_statement, define_inline_policy, service_role_trust_policy
from easy_cerver.stepfunctions import metadata

STATE_MACHINE_T = "CertificateStateMachine"
STATE_MACHINE_ROLE_T = "CertificateStateMachineRole"

CREATE_CERT_STATE = "CreateCertificate"
NOTIFY_STATE = "SendEmailOnFailure"
FAIL_STATE = "Fail"

RETRY_INTERVAL_SECONDS = 20
RETRY_MAX_ATTEMPTS = 3
RETRY_BACKOFF_RATE = 1.0


def define_state_machine_definition() -> dict:
    """
    Amazon States Language definition of the renewal workflow.

    The certbot task is run and waited for. Any error is retried at a fixed interval, then
    caught: the execution input is published to the topic and the execution fails.

    :return: the definition
    :rtype: dict
    """
    return {
        "Comment": "Obtains or renews the Let's Encrypt certificates with certbot",
        "StartAt": CREATE_CERT_STATE,
        "States": {
            CREATE_CERT_STATE: {
                "Type": "Task",
                "Resource": "arn:aws:states:::ecs:runTask.sync",
                "Parameters": {
                    "Cluster": "${ClusterArn}",
                    "TaskDefinition": "${CertbotTaskDefinitionArn}",
                    "LaunchType": "EC2",
                },
                "Retry": [
                    {
                        "ErrorEquals": ["States.ALL"],
                        "IntervalSeconds": RETRY_INTERVAL_SECONDS,
                        "MaxAttempts": RETRY_MAX_ATTEMPTS,
                        "BackoffRate": RETRY_BACKOFF_RATE,
                    }
                ],
                "Catch": [
                    {
                        "ErrorEquals": ["States.ALL"],
                        "Next": NOTIFY_STATE,
                    }
                ],
                "End": True,
            },
            NOTIFY_STATE: {
                "Type": "Task",
                "Resource": "arn:aws:states:::sns:publish",
                "Parameters": {
                    "TopicArn": "${TopicArn}",
                    "Message.$": "$",
                },
                "Next": FAIL_STATE,
            },
            FAIL_STATE: {"Type": "Fail"},
        },
    }


def add_state_machine_role(
    template: Template, cluster, task_definition, task_roles: list, topic
) -> Role:
    """
    Role of the state machine, allowed to run the certbot task, to pass its roles,
    to manage the ECS events rule used to wait for the task and to publish to the topic.
    """
    return Role(
        STATE_MACHINE_ROLE_T,
        template=template,
        AssumeRolePolicyDocument=service_role_trust_policy("states"),
        Policies=[
            define_inline_policy(
                "AllowRunCertbotTask",
                [
                    {
                        "Effect": "Allow",
                        "Action": ["ecs:RunTask"],
                        "Resource": [Ref(task_definition)],
                        "Condition": {
                            "ArnEquals": {"ecs:cluster": GetAtt(cluster, "Arn")}
                        },
                    },
                    allow_statement(["ecs:StopTask", "ecs:DescribeTasks"], "*"),
                    allow_statement(
                        ["events:PutTargets", "events:PutRule", "events:DescribeRule"],
                        Sub(
                            "arn:${AWS::Partition}:events:${AWS::Region}:${AWS::AccountId}:"
                            "rule/StepFunctionsGetEventsForECSTaskRule"
                        ),
                    ),
                    allow_statement(
                        ["iam:PassRole"],
                        [GetAtt(role, "Arn") for role in task_roles],
                    ),
                    allow_statement(["sns:Publish"], Ref(topic)),
                ],
            )
        ],
        Metadata=metadata,
    )


def add_state_machine(
    template: Template,
    cluster,
    task_definition,
    task_roles: list,
    topic,
) -> StateMachine:
    """
    Adds the state machine running the certbot task definition in the cluster.

    :param troposphere.Template template:
    :param troposphere.ecs.Cluster cluster:
    :param troposphere.ecs.TaskDefinition task_definition: the certbot task definition
    :param list[troposphere.iam.Role] task_roles: roles of the certbot task, passed to ECS
    :param troposphere.sns.Topic topic: notified on failure
    :rtype: troposphere.stepfunctions.StateMachine
    """
    role = add_state_machine_role(
        template, cluster, task_definition, task_roles, topic
    )
    return StateMachine(
        STATE_MACHINE_T,
        template=template,
        StateMachineType="STANDARD",
        RoleArn=GetAtt(role, "Arn"),
        Definition=define_state_machine_definition(),
        DefinitionSubstitutions={
            "ClusterArn": GetAtt(cluster, "Arn"),
            "CertbotTaskDefinitionArn": Ref(task_definition),
            "TopicArn": Ref(topic),
        },
        Metadata=metadata,
    )
