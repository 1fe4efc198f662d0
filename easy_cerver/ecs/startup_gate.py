# SPDX-License-Identifier: MPL-2.0
# Copyright 2020-2022 John Mille <john@compose-x.io>

"""
Startup gate of the server task.

A non-essential aws-cli container starts an execution of the renewal workflow and polls it
until it is no longer RUNNING. The server container depends on it, so it only starts once
the certificates have been obtained or renewed.

By default the server starts whatever the outcome of the renewal (COMPLETE condition).
With the strict gate, the script fails unless the execution SUCCEEDED and the server
container requires the SUCCESS condition.
"""

from __future__ import annotations

from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from easy_cerver.ecs.task_logging import TasksLogging

from troposphere import GetAtt, Ref, Sub
from troposphere.ecs import ContainerDefinition, ContainerDependency

from easy_cerver.ecs.ecs_params import (
    DEFAULT_MEMORY_RESERVATION,
    GATE_CONTAINER_NAME,
    GATE_POLL_SECONDS,
)
from easy_cerver.iam import allow_statement

AWS_CLI_IMAGE = "amazon/aws-cli"
STATE_MACHINE_ARN_VAR = "StateMachineArn"


def define_gate_script(strict: bool = False) -> str:
    """
    Bash script of the gate container. Renders with Sub(), using ${StateMachineArn} and ${AWS::Region}.

    :param bool strict: exit non-zero unless the execution succeeded
    :rtype: str
    """
    lines = [
        "set -eux",
        "aws configure set region ${AWS::Region}",
        "aws configure set output text",
        "EXECUTION_ARN=$(aws stepfunctions start-execution"
        f" --state-machine-arn ${{{STATE_MACHINE_ARN_VAR}}} --query executionArn)",
        'until [ "$(aws stepfunctions describe-execution --execution-arn "$EXECUTION_ARN"'
        ' --query status)" != RUNNING ]; do',
        'echo "Waiting for the certificate renewal to complete"',
        f"sleep {GATE_POLL_SECONDS}",
        "done",
    ]
    if strict:
        lines += [
            'STATUS=$(aws stepfunctions describe-execution --execution-arn "$EXECUTION_ARN" --query status)',
            'echo "Certificate renewal finished with status $STATUS"',
            'test "$STATUS" = SUCCEEDED',
        ]
    return "\n".join(lines)


def define_gate_container(
    state_machine, aws_cli_tag: str, tasks_logging: TasksLogging, strict: bool = False
) -> ContainerDefinition:
    """
    :param troposphere.stepfunctions.StateMachine state_machine: the renewal workflow
    :param str aws_cli_tag: tag of the amazon/aws-cli image
    :param TasksLogging tasks_logging:
    :param bool strict:
    :rtype: troposphere.ecs.ContainerDefinition
    """
    return ContainerDefinition(
        Name=GATE_CONTAINER_NAME,
        Image=f"{AWS_CLI_IMAGE}:{aws_cli_tag}",
        Essential=False,
        MemoryReservation=DEFAULT_MEMORY_RESERVATION,
        EntryPoint=["/bin/bash", "-c"],
        Command=[
            Sub(
                define_gate_script(strict),
                **{STATE_MACHINE_ARN_VAR: Ref(state_machine)},
            )
        ],
        LogConfiguration=tasks_logging.log_configuration(GATE_CONTAINER_NAME),
    )


def define_gate_dependency(strict: bool = False) -> ContainerDependency:
    """
    :param bool strict: require the gate container to exit successfully
    :return: the dependency to set on the server container
    :rtype: troposphere.ecs.ContainerDependency
    """
    return ContainerDependency(
        ContainerName=GATE_CONTAINER_NAME,
        Condition="SUCCESS" if strict else "COMPLETE",
    )


def gate_statement(state_machine) -> dict:
    """
    Permissions of the task role for the gate to start and follow the executions.
    """
    return allow_statement(
        ["states:StartExecution", "states:DescribeExecution"],
        [
            Ref(state_machine),
            Sub(
                "arn:${AWS::Partition}:states:${AWS::Region}:${AWS::AccountId}:execution:"
                "${StateMachineName}:*",
                StateMachineName=GetAtt(state_machine, "Name"),
            ),
        ],
    )
