# SPDX-License-Identifier: MPL-2.0
# Copyright 2020-2022 John Mille <john@compose-x.io>

"""
ECS Cluster the host registers into
"""

from troposphere import AWS_STACK_NAME, Ref, Template
from troposphere.ecs import Cluster, ClusterSetting

CLUSTER_T = "EcsCluster"

metadata = {
    "Type": "EasyCerver",
    "Properties": {"Module": "ecs_cluster"},
}


def add_ecs_cluster(template: Template) -> Cluster:
    """
    Adds the ECS Cluster, named after the stack, with container insights enabled.
    The cluster has no capacity provider: the service and certbot tasks use the EC2 launch type.

    :param troposphere.Template template:
    :rtype: troposphere.ecs.Cluster
    """
    return Cluster(
        CLUSTER_T,
        template=template,
        ClusterName=Ref(AWS_STACK_NAME),
        ClusterSettings=[ClusterSetting(Name="containerInsights", Value="enabled")],
        Metadata=metadata,
    )
