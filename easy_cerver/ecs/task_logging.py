# SPDX-License-Identifier: MPL-2.0
# Copyright 2020-2022 John Mille <john@compose-x.io>

"""
Log group shared by all the containers, and the awslogs configuration pointing to it.
"""

from __future__ import annotations

from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from easy_cerver.common.settings import EasyCerverSettings

from troposphere import AWS_REGION, GetAtt, Ref, Sub, Template
from troposphere.ecs import LogConfiguration
from troposphere.iam import Role
from troposphere.logs import LogGroup

from easy_cerver.common import set_removal_policy
from easy_cerver.common.logging import LOG
from easy_cerver.ecs import metadata
from easy_cerver.ecs.ecs_params import EXEC_ROLE_T, LOG_GROUP_RETENTION, LOG_GROUP_T
from easy_cerver.iam import allow_statement, define_inline_policy, service_role_trust_policy


class TasksLogging:
    """
    Holds the log group name and ARN used by the tasks, whether it is created or an existing one.

    :ivar log_group: the new log group, None when using an existing one
    :ivar group_name: value to use for awslogs-group
    :ivar group_arn: ARN of the log group for IAM permissions
    """

    def __init__(self, template: Template, settings: EasyCerverSettings):
        self.log_group = None
        if settings.log_group_name:
            LOG.info(f"Using existing log group {settings.log_group_name}")
            self.group_name = settings.log_group_name
            self.group_arn = Sub(
                "arn:${AWS::Partition}:logs:${AWS::Region}:${AWS::AccountId}:"
                f"log-group:{settings.log_group_name}:*"
            )
        else:
            self.log_group = LogGroup(
                LOG_GROUP_T,
                template=template,
                RetentionInDays=LOG_GROUP_RETENTION,
                Metadata=metadata,
            )
            set_removal_policy(self.log_group, settings.removal_policy)
            self.group_name = Ref(self.log_group)
            self.group_arn = GetAtt(self.log_group, "Arn")

    def log_configuration(self, stream_prefix: str) -> LogConfiguration:
        """
        :param str stream_prefix: awslogs-stream-prefix of the container
        :rtype: troposphere.ecs.LogConfiguration
        """
        return LogConfiguration(
            LogDriver="awslogs",
            Options={
                "awslogs-group": self.group_name,
                "awslogs-region": Ref(AWS_REGION),
                "awslogs-stream-prefix": stream_prefix,
            },
        )


def add_execution_role(template: Template, tasks_logging: TasksLogging) -> Role:
    """
    Execution role shared by the task definitions, allowed to write to the log group
    and to pull images from ECR.

    :param troposphere.Template template:
    :param TasksLogging tasks_logging:
    :rtype: troposphere.iam.Role
    """
    return Role(
        EXEC_ROLE_T,
        template=template,
        AssumeRolePolicyDocument=service_role_trust_policy("ecs-tasks"),
        Policies=[
            define_inline_policy(
                "AllowTasksLogging",
                [
                    allow_statement(
                        ["logs:CreateLogStream", "logs:PutLogEvents"],
                        tasks_logging.group_arn,
                    ),
                    allow_statement(
                        [
                            "ecr:GetAuthorizationToken",
                            "ecr:BatchCheckLayerAvailability",
                            "ecr:GetDownloadUrlForLayer",
                            "ecr:BatchGetImage",
                        ],
                        "*",
                    ),
                ],
            )
        ],
        Metadata=metadata,
    )
