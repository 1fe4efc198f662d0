# SPDX-License-Identifier: MPL-2.0
# Copyright 2020-2022 John Mille <john@compose-x.io>

"""
Main module to generate the full stack: VPC, host, cluster, certificates file system, DNS records,
renewal workflow and the server service.
"""

from __future__ import annotations

from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from easy_cerver.common.settings import EasyCerverSettings

from troposphere import GetAtt, Ref, Template

from easy_cerver.certbot.certbot_task import CERTBOT_TASK_ROLE_T, add_certbot_task
from easy_cerver.common import add_outputs, build_template
from easy_cerver.common.logging import LOG
from easy_cerver.common.outputs import CerverOutput
from easy_cerver.compute.hosts_template import add_hosts_resources
from easy_cerver.ecs.ecs_service import add_ecs_service
from easy_cerver.ecs.server_task import add_server_task
from easy_cerver.ecs.task_logging import TasksLogging, add_execution_role
from easy_cerver.ecs_cluster import add_ecs_cluster
from easy_cerver.efs.efs_template import add_file_system, allow_nfs_from_host
from easy_cerver.events.events_template import add_schedule_rule
from easy_cerver.route53.route53_lookup import resolve_hosted_zone_id
from easy_cerver.route53.route53_template import (
    add_host_records,
    add_hosted_zone,
    hosted_zone_arn,
)
from easy_cerver.sns.sns_template import add_notification_topic
from easy_cerver.stepfunctions.state_machine import add_state_machine
from easy_cerver.vpc.vpc_template import add_vpc


def set_outputs(template: Template, resources: dict, tasks_logging) -> None:
    """
    Adds the outputs of the stack

    :param troposphere.Template template:
    :param dict resources: the resources to output, by name
    :param TasksLogging tasks_logging:
    """
    outputs = [
        CerverOutput(
            resources["eip"],
            [("IpAddress", "Address", Ref(resources["eip"]))],
        ),
        CerverOutput(
            resources["cluster"],
            [
                ("ClusterName", "Name", Ref(resources["cluster"])),
                ("ClusterArn", "Arn", GetAtt(resources["cluster"], "Arn")),
            ],
            export=True,
        ),
        CerverOutput(
            resources["service"],
            [("ServiceName", "Name", GetAtt(resources["service"], "Name"))],
        ),
        CerverOutput(
            resources["file_system"],
            [("FileSystemId", "Id", Ref(resources["file_system"]))],
            export=True,
        ),
        CerverOutput(
            resources["state_machine"],
            [("StateMachineArn", "Arn", Ref(resources["state_machine"]))],
        ),
        CerverOutput(
            resources["topic"],
            [("TopicArn", "Arn", Ref(resources["topic"]))],
        ),
        CerverOutput(
            "ContainersLogGroup",
            [("LogGroupName", "Name", tasks_logging.group_name)],
        ),
    ]
    for output in outputs:
        add_outputs(template, output.outputs)


def generate_full_template(settings: EasyCerverSettings) -> Template:
    """
    Function to generate the root template holding all the resources of the stack.

    :param EasyCerverSettings settings: The settings for the execution
    :return: the template
    :rtype: troposphere.Template
    """
    LOG.info(
        f"Rendering {settings.name} for {', '.join(settings.record_domain_names)}"
    )
    zone_id = resolve_hosted_zone_id(settings)
    template = build_template(
        f"Easy Cerver - Single host ECS service for {settings.hosted_zone_domain}"
    )
    network = add_vpc(template, settings)
    cluster = add_ecs_cluster(template)
    host_sg_id, eip, hosts_group = add_hosts_resources(
        template, settings, network, cluster
    )
    file_system, fs_sg, mount_targets = add_file_system(
        template, network, settings.removal_policy
    )
    allow_nfs_from_host(template, fs_sg, host_sg_id)

    zone_parameter = add_hosted_zone(template, zone_id)
    add_host_records(template, zone_parameter, settings.record_domain_names, eip)

    topic = add_notification_topic(template, settings.email)
    tasks_logging = TasksLogging(template, settings)
    execution_role = add_execution_role(template, tasks_logging)
    certbot_task = add_certbot_task(
        template,
        settings,
        tasks_logging,
        execution_role,
        file_system,
        hosted_zone_arn(zone_parameter),
    )
    state_machine = add_state_machine(
        template,
        cluster,
        certbot_task,
        [execution_role, template.resources[CERTBOT_TASK_ROLE_T]],
        topic,
    )
    add_schedule_rule(template, state_machine, settings.schedule_interval)

    server_task = add_server_task(
        template, settings, tasks_logging, execution_role, file_system, state_machine
    )
    service = add_ecs_service(
        template, cluster, server_task, [hosts_group] + mount_targets
    )
    set_outputs(
        template,
        {
            "eip": eip,
            "cluster": cluster,
            "service": service,
            "file_system": file_system,
            "state_machine": state_machine,
            "topic": topic,
        },
        tasks_logging,
    )
    return template
