# SPDX-License-Identifier: MPL-2.0
# Copyright 2020-2022 John Mille <john@compose-x.io>

"""
EventBridge rule starting the renewal workflow every N days
"""

from troposphere import GetAtt, Ref, Template
from troposphere.events import Rule, Target
from troposphere.iam import Role

from easy_cerver.common.logging import LOG
from easy_cerver.events import metadata
from easy_cerver.iam import allow_statement, define_inline_policy, service_role_trust_policy

SCHEDULE_RULE_T = "CertificateRenewalSchedule"
SCHEDULE_ROLE_T = "CertificateRenewalScheduleRole"
DEFAULT_INTERVAL_DAYS = 60


def define_schedule_expression(interval_days: int = None) -> str:
    """
    :param int interval_days: days between two executions. Defaults to 60
    :return: the rate expression
    :rtype: str
    """
    if interval_days is None:
        interval_days = DEFAULT_INTERVAL_DAYS
    if not isinstance(interval_days, int) or interval_days < 1:
        raise ValueError(
            "The schedule interval must be a positive number of days. Got",
            interval_days,
        )
    if interval_days == 1:
        return "rate(1 day)"
    return f"rate({interval_days} days)"


def add_schedule_rule(
    template: Template, state_machine, interval_days: int = None
) -> Rule:
    """
    Adds the rule starting the state machine, with the role allowed to start executions.

    :param troposphere.Template template:
    :param troposphere.stepfunctions.StateMachine state_machine:
    :param int interval_days:
    :rtype: troposphere.events.Rule
    """
    expression = define_schedule_expression(interval_days)
    LOG.info(f"Certificates renewal scheduled at {expression}")
    role = Role(
        SCHEDULE_ROLE_T,
        template=template,
        AssumeRolePolicyDocument=service_role_trust_policy("events"),
        Policies=[
            define_inline_policy(
                "AllowStartRenewal",
                [allow_statement(["states:StartExecution"], Ref(state_machine))],
            )
        ],
        Metadata=metadata,
    )
    return Rule(
        SCHEDULE_RULE_T,
        template=template,
        ScheduleExpression=expression,
        State="ENABLED",
        Targets=[
            Target(
                Id="CertificateStateMachine",
                Arn=Ref(state_machine),
                RoleArn=GetAtt(role, "Arn"),
            )
        ],
        Metadata=metadata,
    )
