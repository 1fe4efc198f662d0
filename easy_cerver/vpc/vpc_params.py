# SPDX-License-Identifier: MPL-2.0
# Copyright 2020-2022 John Mille <john@compose-x.io>

"""
Parameters and titles related to the VPC settings. Used by easy_cerver.vpc and others
"""

from easy_cerver.common.cfn_params import Parameter

VPC_TYPE = "AWS::EC2::VPC::Id"
SUBNETS_TYPE = "List<AWS::EC2::Subnet::Id>"
SG_ID_TYPE = "AWS::EC2::SecurityGroup::Id"

DEFAULT_VPC_CIDR = "10.0.0.0/16"
DEFAULT_PUBLIC_SUBNETS_CIDR = ["10.0.0.0/18", "10.0.64.0/18"]

VPC_SETTINGS = "VPC Settings"

VPC_T = "Vpc"
IGW_T = "InternetGatewayV4"
PUBLIC_RTB_T = "PublicRtb"

VPC_ID_T = "VpcId"
PUBLIC_SUBNETS_T = "PublicSubnets"
HOST_SG_ID_T = "HostSecurityGroupId"


def vpc_id_parameter(default: str) -> Parameter:
    return Parameter(
        VPC_ID_T, group_label=VPC_SETTINGS, Type=VPC_TYPE, Default=default
    )


def public_subnets_parameter(default: list) -> Parameter:
    return Parameter(
        PUBLIC_SUBNETS_T,
        group_label=VPC_SETTINGS,
        Type=SUBNETS_TYPE,
        Default=",".join(default),
    )


def host_sg_id_parameter(default: str) -> Parameter:
    return Parameter(
        HOST_SG_ID_T,
        group_label=VPC_SETTINGS,
        Type=SG_ID_TYPE,
        Default=default,
        Description="Security group of the host instance",
    )
