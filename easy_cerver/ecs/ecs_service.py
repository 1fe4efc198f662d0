# SPDX-License-Identifier: MPL-2.0
# Copyright 2020-2022 John Mille <john@compose-x.io>

"""
ECS Service running the server task on the host. There is only one host and the task binds to its ports,
so the running task is stopped before the new one starts.
"""

from troposphere import Ref, Template
from troposphere.ecs import (
    DeploymentCircuitBreaker,
    DeploymentConfiguration,
    Service,
)

from easy_cerver.ecs import metadata
from easy_cerver.ecs.ecs_params import SERVICE_T


def add_ecs_service(
    template: Template, cluster, task_definition, depends_on: list
) -> Service:
    """
    :param troposphere.Template template:
    :param troposphere.ecs.Cluster cluster:
    :param troposphere.ecs.TaskDefinition task_definition: the server task definition
    :param list depends_on: resources to wait for, i.e. the host group and the file system mount targets
    :rtype: troposphere.ecs.Service
    """
    return Service(
        SERVICE_T,
        template=template,
        Cluster=Ref(cluster),
        TaskDefinition=Ref(task_definition),
        LaunchType="EC2",
        DesiredCount=1,
        DeploymentConfiguration=DeploymentConfiguration(
            MinimumHealthyPercent=0,
            MaximumPercent=100,
            DeploymentCircuitBreaker=DeploymentCircuitBreaker(
                Enable=True, Rollback=True
            ),
        ),
        EnableExecuteCommand=True,
        PropagateTags="SERVICE",
        DependsOn=depends_on,
        Metadata=metadata,
    )
