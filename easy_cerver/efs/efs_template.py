# SPDX-License-Identifier: MPL-2.0
# Copyright 2020-2022 John Mille <john@compose-x.io>

"""
Module to define the EFS file system, its mount targets and the security groups rules
allowing NFS between the host and the file system.
"""

from __future__ import annotations

from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from easy_cerver.vpc.vpc_template import NetworkSettings

from troposphere import AWS_STACK_NAME, GetAtt, Ref, Sub, Template, Tags, efs
from troposphere.ec2 import (
    SecurityGroup,
    SecurityGroupEgress,
    SecurityGroupIngress,
    SecurityGroupRule,
)
from troposphere.ecs import EFSVolumeConfiguration, Volume

from easy_cerver.common import set_removal_policy
from easy_cerver.efs import metadata
from easy_cerver.efs.efs_params import CERTS_VOLUME_NAME, FS_PORT, FS_SG_T, FS_T


def add_file_system(
    template: Template, network: NetworkSettings, removal_policy: str
) -> tuple:
    """
    Adds the encrypted file system, its security group and one mount target per public subnet.
    The security group has no outbound rule of its own.

    :param troposphere.Template template:
    :param NetworkSettings network:
    :param str removal_policy:
    :return: the file system, its security group and the mount targets
    :rtype: tuple
    """
    file_system = efs.FileSystem(
        FS_T,
        template=template,
        Encrypted=True,
        PerformanceMode="generalPurpose",
        ThroughputMode="bursting",
        FileSystemTags=Tags(Name=Sub(f"${{{AWS_STACK_NAME}}}-certificates")),
        Metadata=metadata,
    )
    set_removal_policy(file_system, removal_policy)
    security_group = SecurityGroup(
        FS_SG_T,
        template=template,
        GroupDescription=Sub(f"SG for EFS FS ${{{AWS_STACK_NAME}}} certificates"),
        VpcId=network.vpc_id,
        SecurityGroupEgress=[
            SecurityGroupRule(
                CidrIp="255.255.255.255/32",
                Description="Disallow all traffic",
                FromPort=252,
                IpProtocol="icmp",
                ToPort=86,
            )
        ],
        Metadata=metadata,
    )
    mount_targets = []
    for count, subnet in enumerate(network.subnets):
        mount_target = efs.MountTarget(
            f"{FS_T}MountPoint{count}",
            template=template,
            FileSystemId=Ref(file_system),
            SecurityGroups=[GetAtt(security_group, "GroupId")],
            SubnetId=subnet,
        )
        mount_targets.append(mount_target)
    return file_system, security_group, mount_targets


def allow_nfs_from_host(template: Template, fs_sg, host_sg_id) -> None:
    """
    Allows NFS connections both ways between the host security group and the file system one.

    :param troposphere.Template template:
    :param troposphere.ec2.SecurityGroup fs_sg:
    :param host_sg_id: ID of the host security group, Ref or GetAtt
    """
    SecurityGroupIngress(
        "FromHostToCertificatesFileSystem",
        template=template,
        GroupId=GetAtt(fs_sg, "GroupId"),
        SourceSecurityGroupId=host_sg_id,
        FromPort=FS_PORT,
        ToPort=FS_PORT,
        IpProtocol="tcp",
        Description="NFS from the host",
    )
    SecurityGroupEgress(
        "ToHostFromCertificatesFileSystem",
        template=template,
        GroupId=GetAtt(fs_sg, "GroupId"),
        DestinationSecurityGroupId=host_sg_id,
        FromPort=FS_PORT,
        ToPort=FS_PORT,
        IpProtocol="tcp",
        Description="NFS to the host",
    )
    SecurityGroupIngress(
        "FromCertificatesFileSystemToHost",
        template=template,
        GroupId=host_sg_id,
        SourceSecurityGroupId=GetAtt(fs_sg, "GroupId"),
        FromPort=FS_PORT,
        ToPort=FS_PORT,
        IpProtocol="tcp",
        Description="NFS from the certificates file system",
    )


def define_certs_volume(file_system) -> Volume:
    """
    The task definition volume pointing at the root of the file system, with transit encryption.

    :param troposphere.efs.FileSystem file_system:
    :rtype: troposphere.ecs.Volume
    """
    return Volume(
        Name=CERTS_VOLUME_NAME,
        EFSVolumeConfiguration=EFSVolumeConfiguration(
            FilesystemId=Ref(file_system),
            TransitEncryption="ENABLED",
        ),
    )


def efs_access_statement(file_system, actions: list) -> dict:
    """
    :param troposphere.efs.FileSystem file_system:
    :param list actions: elasticfilesystem actions, i.e. ClientMount
    :return: IAM statement allowing the actions on the file system
    """
    return {
        "Effect": "Allow",
        "Action": actions,
        "Resource": [GetAtt(file_system, "Arn")],
    }
