# SPDX-License-Identifier: MPL-2.0
# Copyright 2020-2022 John Mille <john@compose-x.io>

"""
Task definition running certbot with the route53 plugin. The certificates are written into
the shared file system, under /etc/letsencrypt.
"""

from __future__ import annotations

from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from easy_cerver.common.settings import EasyCerverSettings
    from easy_cerver.ecs.task_logging import TasksLogging

from troposphere import GetAtt, Template
from troposphere.ecs import ContainerDefinition, MountPoint, TaskDefinition
from troposphere.iam import Role

from easy_cerver.certbot import metadata
from easy_cerver.efs.efs_params import CERTS_CONTAINER_PATH, CERTS_VOLUME_NAME
from easy_cerver.efs.efs_template import define_certs_volume, efs_access_statement
from easy_cerver.iam import allow_statement, define_inline_policy, service_role_trust_policy

CERTBOT_TASK_T = "CertbotTaskDefinition"
CERTBOT_TASK_ROLE_T = "CertbotTaskRole"
CERTBOT_IMAGE = "certbot/dns-route53"
CERTBOT_CONTAINER_NAME = "certbot"
CERTBOT_MEMORY_RESERVATION = 64
DNS_PROPAGATION_SECONDS = 300


def define_certbot_command(email: str, domain_names: list) -> list:
    """
    The certbot certonly arguments. The certificate is named after the first domain name,
    and covers all the domain names.

    :param str email: registered with Let's Encrypt
    :param list[str] domain_names:
    :rtype: list[str]
    """
    command = [
        "certonly",
        "--verbose",
        "--preferred-challenges=dns-01",
        "--dns-route53",
        f"--dns-route53-propagation-seconds={DNS_PROPAGATION_SECONDS}",
        "--non-interactive",
        "--agree-tos",
        "--expand",
        "-m",
        email,
        "--cert-name",
        domain_names[0],
    ]
    for domain_name in domain_names:
        command += ["-d", domain_name]
    return command


def add_certbot_task_role(template: Template, zone_arn, file_system) -> Role:
    """
    Role of the certbot task, allowed to answer the DNS challenge in the hosted zone
    and to write into the file system.
    """
    return Role(
        CERTBOT_TASK_ROLE_T,
        template=template,
        AssumeRolePolicyDocument=service_role_trust_policy("ecs-tasks"),
        Policies=[
            define_inline_policy(
                "AllowDnsChallenge",
                [
                    allow_statement(
                        ["route53:ListHostedZones", "route53:GetChange"], "*"
                    ),
                    allow_statement(["route53:ChangeResourceRecordSets"], zone_arn),
                ],
            ),
            define_inline_policy(
                "AllowCertificatesWrite",
                [
                    efs_access_statement(
                        file_system,
                        [
                            "elasticfilesystem:ClientMount",
                            "elasticfilesystem:ClientWrite",
                        ],
                    )
                ],
            ),
        ],
        Metadata=metadata,
    )


def add_certbot_task(
    template: Template,
    settings: EasyCerverSettings,
    tasks_logging: TasksLogging,
    execution_role: Role,
    file_system,
    zone_arn,
) -> TaskDefinition:
    """
    Adds the certbot task definition, EC2 compatible, with the certificates volume mounted read-write.

    :param troposphere.Template template:
    :param EasyCerverSettings settings:
    :param TasksLogging tasks_logging:
    :param troposphere.iam.Role execution_role:
    :param troposphere.efs.FileSystem file_system:
    :param zone_arn: ARN of the hosted zone
    :rtype: troposphere.ecs.TaskDefinition
    """
    task_role = add_certbot_task_role(template, zone_arn, file_system)
    return TaskDefinition(
        CERTBOT_TASK_T,
        template=template,
        RequiresCompatibilities=["EC2"],
        NetworkMode="bridge",
        ExecutionRoleArn=GetAtt(execution_role, "Arn"),
        TaskRoleArn=GetAtt(task_role, "Arn"),
        Volumes=[define_certs_volume(file_system)],
        ContainerDefinitions=[
            ContainerDefinition(
                Name=CERTBOT_CONTAINER_NAME,
                Image=f"{CERTBOT_IMAGE}:{settings.certbot_tag}",
                Essential=True,
                MemoryReservation=CERTBOT_MEMORY_RESERVATION,
                Command=define_certbot_command(
                    settings.email, settings.record_domain_names
                ),
                MountPoints=[
                    MountPoint(
                        SourceVolume=CERTS_VOLUME_NAME,
                        ContainerPath=CERTS_CONTAINER_PATH,
                        ReadOnly=False,
                    )
                ],
                LogConfiguration=tasks_logging.log_configuration(settings.certbot_tag),
            )
        ],
        Metadata=metadata,
    )
