# SPDX-License-Identifier: MPL-2.0
# Copyright 2020-2022 John Mille <john@compose-x.io>

"""
Renewal workflow: state machine definition, schedule and the server startup gate.
"""

import pytest
from troposphere.ecs import LogConfiguration
from troposphere.stepfunctions import StateMachine

from easy_cerver.ecs.startup_gate import (
    define_gate_container,
    define_gate_dependency,
    define_gate_script,
)
from easy_cerver.events.events_template import define_schedule_expression
from easy_cerver.stepfunctions.state_machine import define_state_machine_definition


def test_state_machine_definition():
    definition = define_state_machine_definition()
    create = definition["States"][definition["StartAt"]]
    assert create["Resource"] == "arn:aws:states:::ecs:runTask.sync"
    assert create["Parameters"]["Cluster"] == "${ClusterArn}"
    assert create["Retry"] == [
        {
            "ErrorEquals": ["States.ALL"],
            "IntervalSeconds": 20,
            "MaxAttempts": 3,
            "BackoffRate": 1.0,
        }
    ]
    notify = definition["States"][create["Catch"][0]["Next"]]
    assert notify["Resource"] == "arn:aws:states:::sns:publish"
    assert notify["Parameters"] == {"TopicArn": "${TopicArn}", "Message.$": "$"}
    assert definition["States"][notify["Next"]] == {"Type": "Fail"}


@pytest.mark.parametrize(
    "interval, expression",
    [(None, "rate(60 days)"), (1, "rate(1 day)"), (30, "rate(30 days)")],
)
def test_schedule_expression(interval, expression):
    assert define_schedule_expression(interval) == expression


@pytest.mark.parametrize("interval", [0, -5, "30", 1.5])
def test_invalid_schedule_interval(interval):
    with pytest.raises(ValueError):
        define_schedule_expression(interval)


def test_default_gate():
    script = define_gate_script()
    assert "aws stepfunctions start-execution" in script
    assert "!= RUNNING" in script
    assert "SUCCEEDED" not in script
    assert define_gate_dependency().to_dict() == {
        "ContainerName": "aws-cli",
        "Condition": "COMPLETE",
    }


def test_strict_gate():
    script = define_gate_script(strict=True)
    assert script.splitlines()[-1] == 'test "$STATUS" = SUCCEEDED'
    assert define_gate_dependency(strict=True).to_dict()["Condition"] == "SUCCESS"


def test_gate_container():
    class Logging:
        @staticmethod
        def log_configuration(stream_prefix):
            return LogConfiguration(
                LogDriver="awslogs", Options={"awslogs-stream-prefix": stream_prefix}
            )

    container = define_gate_container(
        StateMachine("CertificateStateMachine"), "2.7.30", Logging()
    ).to_dict()
    assert container["Image"] == "amazon/aws-cli:2.7.30"
    assert container["Essential"] is False
    assert container["Command"][0]["Fn::Sub"][1] == {
        "StateMachineArn": {"Ref": "CertificateStateMachine"}
    }
