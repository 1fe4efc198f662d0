# SPDX-License-Identifier: MPL-2.0
# Copyright 2020-2022 John Mille <john@compose-x.io>

"""
Module to create the Launch Template for the host and the associated security group,
IAM Role (with Instance Profile), static IP address and the AutoScaling group keeping exactly one host.

The user data registers the host into the ECS cluster, blocks the access to the instance metadata
from the task containers, then associates the Elastic IP, found by its Name tag, to the instance.

These settings are all documented on AWS official documentation:
https://docs.aws.amazon.com/AmazonECS/latest/developerguide/ecs-agent-config.html
"""

from __future__ import annotations

from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from easy_cerver.common.settings import EasyCerverSettings
    from easy_cerver.vpc.vpc_template import NetworkSettings

from troposphere import AWS_NO_VALUE, Base64, GetAtt, Join, Ref, Sub, Tags, Template
from troposphere.autoscaling import AutoScalingGroup, LaunchTemplateSpecification
from troposphere.autoscaling import Tags as AsgTags
from troposphere.ec2 import (
    EIP,
    EBSBlockDevice,
    IamInstanceProfile,
    InstanceMarketOptions,
    LaunchTemplate,
    LaunchTemplateBlockDeviceMapping,
    LaunchTemplateData,
    NetworkInterfaces,
    SecurityGroup,
    SecurityGroupRule,
    SpotOptions,
    TagSpecifications,
)
from troposphere.iam import InstanceProfile, Role

from easy_cerver.common import add_parameters
from easy_cerver.common.logging import LOG
from easy_cerver.compute import metadata
from easy_cerver.compute.compute_params import (
    ECS_AMI_ID,
    HOST_ASG_T,
    HOST_EIP_T,
    HOST_PROFILE_T,
    HOST_ROLE_T,
    HOST_SG_T,
    HOSTS_COUNT,
    LAUNCH_TEMPLATE_T,
)
from easy_cerver.iam import allow_statement, define_inline_policy, service_role_trust_policy
from easy_cerver.vpc.vpc_params import host_sg_id_parameter

EIP_TAG_NAME = Sub(f"${{AWS::StackName}}-{HOST_EIP_T}")


def add_hosts_profile(template: Template, cluster) -> Role:
    """
    Adds role to the template

    :param troposphere.Template template: template to add the role and profile to
    :param troposphere.ecs.Cluster cluster: the cluster to register the host into
    :returns: troposphere IAM Role for EC2 hosts
    :rtype: troposphere.iam.Role
    """
    ecs_policy = define_inline_policy(
        "AllowEcsSpecific",
        [
            allow_statement(
                [
                    "ecs:RegisterContainerInstance",
                    "ecs:UpdateContainerInstancesState",
                    "ecs:DeregisterContainerInstance",
                ],
                GetAtt(cluster, "Arn"),
            ),
            allow_statement(
                [
                    "ecs:StartTelemetrySession",
                    "ecs:DiscoverPollEndpoint",
                    "ecs:Submit*",
                    "ecs:Poll",
                ],
                "*",
            ),
            allow_statement(
                [
                    "ecr:GetAuthorizationToken",
                    "ecr:BatchCheckLayerAvailability",
                    "ecr:GetDownloadUrlForLayer",
                    "ecr:BatchGetImage",
                    "logs:CreateLogStream",
                    "logs:PutLogEvents",
                ],
                "*",
            ),
        ],
    )
    eip_policy = define_inline_policy(
        "AllowElasticIpAssociation",
        [
            allow_statement(
                ["ec2:DescribeAddresses", "ec2:AssociateAddress"],
                "*",
            )
        ],
    )
    role = Role(
        HOST_ROLE_T,
        template=template,
        AssumeRolePolicyDocument=service_role_trust_policy("ec2"),
        ManagedPolicyArns=[
            Sub(
                "arn:${AWS::Partition}:iam::aws:policy/AmazonSSMManagedInstanceCore"
            )
        ],
        Policies=[ecs_policy, eip_policy],
        Metadata=metadata,
    )
    InstanceProfile(
        HOST_PROFILE_T,
        template=template,
        Roles=[Ref(role)],
    )
    return role


def add_hosts_security_group(template: Template, network: NetworkSettings):
    """
    Function to add a security group for the host, allowing HTTP and HTTPS from anywhere.

    :param troposphere.Template template:
    :param NetworkSettings network:
    :returns: the GroupId of the security group
    """
    ingress = []
    for port in (80, 443):
        ingress.append(
            SecurityGroupRule(
                CidrIp="0.0.0.0/0",
                FromPort=port,
                ToPort=port,
                IpProtocol="tcp",
                Description=f"IPv4 to {port}",
            )
        )
        ingress.append(
            SecurityGroupRule(
                CidrIpv6="::/0",
                FromPort=port,
                ToPort=port,
                IpProtocol="tcp",
                Description=f"IPv6 to {port}",
            )
        )
    security_group = SecurityGroup(
        HOST_SG_T,
        template=template,
        GroupDescription=Sub("Group for the host of ${AWS::StackName}"),
        VpcId=network.vpc_id,
        SecurityGroupIngress=ingress,
        Metadata=metadata,
    )
    return GetAtt(security_group, "GroupId")


def define_hosts_security_group(
    template: Template, settings: EasyCerverSettings, network: NetworkSettings
):
    """
    Uses the security group from settings when set, otherwise creates one.

    :return: the security group ID
    """
    if settings.security_group_id:
        host_sg_id = host_sg_id_parameter(settings.security_group_id)
        add_parameters(template, [host_sg_id])
        LOG.info(f"Using security group {settings.security_group_id} for the host")
        return Ref(host_sg_id)
    return add_hosts_security_group(template, network)


def add_elastic_ip(template: Template) -> EIP:
    """
    The static IP of the host. Tagged so that the host can find it at boot time.

    :param troposphere.Template template:
    :rtype: troposphere.ec2.EIP
    """
    return EIP(
        HOST_EIP_T,
        template=template,
        Domain="vpc",
        Tags=Tags(Name=EIP_TAG_NAME),
        Metadata=metadata,
    )


def define_user_data(cluster, aws_cli_tag: str) -> Base64:
    """
    Bash script run at first boot of the host.

    :param troposphere.ecs.Cluster cluster:
    :param str aws_cli_tag: tag of the amazon/aws-cli image to use to associate the address
    :rtype: troposphere.Base64
    """
    aws_cli = f"docker run --net=host amazon/aws-cli:{aws_cli_tag}"
    return Base64(
        Join(
            "\n",
            [
                "#!/usr/bin/env bash",
                Sub(
                    "echo ECS_CLUSTER=${ClusterName} >> /etc/ecs/ecs.config",
                    ClusterName=Ref(cluster),
                ),
                "echo ECS_AWSVPC_BLOCK_IMDS=true >> /etc/ecs/ecs.config",
                "echo ECS_ENABLE_TASK_IAM_ROLE=true >> /etc/ecs/ecs.config",
                "iptables --insert FORWARD 1 --in-interface docker+ --destination 169.254.169.254/32 --jump DROP",
                "yum install -y iptables-services",
                "iptables-save > /etc/sysconfig/iptables",
                "systemctl enable --now iptables",
                'TOKEN=$(curl --silent -X PUT "http://169.254.169.254/latest/api/token"'
                ' -H "X-aws-ec2-metadata-token-ttl-seconds: 60")',
                'INSTANCE_ID=$(curl --silent -H "X-aws-ec2-metadata-token: $TOKEN"'
                " http://169.254.169.254/latest/meta-data/instance-id)",
                Sub(
                    f"ALLOCATION_ID=$({aws_cli} ec2 describe-addresses --region ${{AWS::Region}}"
                    f" --filter Name=tag:Name,Values=${{AWS::StackName}}-{HOST_EIP_T}"
                    " --query 'Addresses[].AllocationId' --output text | head -1)"
                ),
                Sub(
                    f"{aws_cli} ec2 associate-address --region ${{AWS::Region}}"
                    ' --instance-id "$INSTANCE_ID" --allocation-id "$ALLOCATION_ID" --allow-reassociation'
                ),
                "# EOF",
            ],
        )
    )


def add_launch_template(
    template: Template,
    settings: EasyCerverSettings,
    cluster,
    host_sg_id,
) -> LaunchTemplate:
    """Function to create a launch template.

    :param troposphere.Template template:
    :param EasyCerverSettings settings:
    :param troposphere.ecs.Cluster cluster:
    :param host_sg_id: security group ID for the EC2 host
    :return: launch_template
    :rtype: troposphere.ec2.LaunchTemplate
    """
    market_options = Ref(AWS_NO_VALUE)
    if settings.host_spot_price:
        market_options = InstanceMarketOptions(
            MarketType="spot",
            SpotOptions=SpotOptions(
                MaxPrice=settings.host_spot_price,
                SpotInstanceType="one-time",
            ),
        )
    add_parameters(template, [ECS_AMI_ID])
    return LaunchTemplate(
        LAUNCH_TEMPLATE_T,
        template=template,
        LaunchTemplateData=LaunchTemplateData(
            BlockDeviceMappings=[
                LaunchTemplateBlockDeviceMapping(
                    DeviceName="/dev/xvda",
                    Ebs=EBSBlockDevice(DeleteOnTermination=True, Encrypted=True),
                )
            ],
            ImageId=Ref(ECS_AMI_ID),
            InstanceInitiatedShutdownBehavior="terminate",
            IamInstanceProfile=IamInstanceProfile(
                Arn=Sub(f"${{{HOST_PROFILE_T}.Arn}}")
            ),
            InstanceMarketOptions=market_options,
            InstanceType=settings.host_instance_type,
            NetworkInterfaces=[
                NetworkInterfaces(
                    AssociatePublicIpAddress=True,
                    DeviceIndex=0,
                    DeleteOnTermination=True,
                    Groups=[host_sg_id],
                )
            ],
            TagSpecifications=[
                TagSpecifications(
                    ResourceType="instance",
                    Tags=Tags(
                        Name=Sub("EcsHost-${AWS::StackName}"),
                        StackName=Ref("AWS::StackName"),
                        StackId=Ref("AWS::StackId"),
                    ),
                )
            ],
            UserData=define_user_data(cluster, settings.aws_cli_tag),
        ),
        Metadata=metadata,
    )


def add_hosts_group(
    template: Template, launch_template: LaunchTemplate, network: NetworkSettings
) -> AutoScalingGroup:
    """
    The AutoScaling group replacing the host when unhealthy. Always exactly one host.

    :param troposphere.Template template:
    :param troposphere.ec2.LaunchTemplate launch_template:
    :param NetworkSettings network:
    :rtype: troposphere.autoscaling.AutoScalingGroup
    """
    return AutoScalingGroup(
        HOST_ASG_T,
        template=template,
        MinSize=HOSTS_COUNT,
        MaxSize=HOSTS_COUNT,
        LaunchTemplate=LaunchTemplateSpecification(
            LaunchTemplateId=Ref(launch_template),
            Version=GetAtt(launch_template, "LatestVersionNumber"),
        ),
        VPCZoneIdentifier=network.subnet_ids,
        Tags=AsgTags(Name=Sub("EcsHost-${AWS::StackName}")),
        Metadata=metadata,
    )


def add_hosts_resources(
    template: Template,
    settings: EasyCerverSettings,
    network: NetworkSettings,
    cluster,
) -> tuple:
    """Function to add the LaunchTemplate, SG, EIP, AutoScaling group and IAM Profile
    to go along with the ECS Cluster

    :param troposphere.Template template:
    :param EasyCerverSettings settings:
    :param NetworkSettings network:
    :param troposphere.ecs.Cluster cluster:
    :return: the host security group ID, the EIP and the AutoScaling group
    :rtype: tuple
    """
    host_sg_id = define_hosts_security_group(template, settings, network)
    add_hosts_profile(template, cluster)
    eip = add_elastic_ip(template)
    launch_template = add_launch_template(template, settings, cluster, host_sg_id)
    hosts_group = add_hosts_group(template, launch_template, network)
    hosts_group.DependsOn = [eip.title] + network.connectivity
    return host_sg_id, eip, hosts_group
