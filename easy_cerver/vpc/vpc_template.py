# SPDX-License-Identifier: MPL-2.0
# Copyright 2020-2022 John Mille <john@compose-x.io>

"""
Create the VPC and its public subnets, or use the existing VPC given in the configuration.

Public subnet type: All subnets use the same RTB, route to 0.0.0.0/0 via InternetGateway.
There is no NAT Gateway, the host gets a public IP address.
"""

from __future__ import annotations

from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from easy_cerver.common.settings import EasyCerverSettings

from troposphere import GetAZs, Ref, Select, Sub, Tags, Template
from troposphere.ec2 import (
    VPC,
    InternetGateway,
    Route,
    RouteTable,
    Subnet,
    SubnetRouteTableAssociation,
    VPCGatewayAttachment,
)

from easy_cerver.common import add_parameters
from easy_cerver.common.logging import LOG
from easy_cerver.vpc import metadata
from easy_cerver.vpc.vpc_params import (
    DEFAULT_PUBLIC_SUBNETS_CIDR,
    DEFAULT_VPC_CIDR,
    IGW_T,
    PUBLIC_RTB_T,
    VPC_T,
    public_subnets_parameter,
    vpc_id_parameter,
)


class NetworkSettings:
    """
    Holds the values to use for the VPC ID and the public subnets, whether they are created or imported.

    :ivar vpc_id: Ref() to the VPC or to the VpcId parameter
    :ivar list subnets: one value per public subnet, usable for a single subnet property
    :ivar subnet_ids: value for properties expecting a list of subnets
    :ivar list connectivity: titles of the resources the subnets need to reach the internet
    """

    def __init__(
        self, vpc_id, subnets: list, subnet_ids, connectivity: list = None
    ):
        self.vpc_id = vpc_id
        self.subnets = subnets
        self.subnet_ids = subnet_ids
        self.connectivity = connectivity if connectivity else []


def add_vpc_core(template: Template, vpc_cidr: str):
    """
    Function to create the core resources of the VPC

    :param troposphere.Template template:
    :param str vpc_cidr: the VPC CIDR i.e. 10.0.0.0/16
    :return: tuple() with the vpc and igw object
    """
    vpc = VPC(
        VPC_T,
        template=template,
        CidrBlock=vpc_cidr,
        EnableDnsHostnames=True,
        EnableDnsSupport=True,
        Tags=Tags(Name=Ref("AWS::StackName")),
        Metadata=metadata,
    )
    igw = InternetGateway(IGW_T, template=template, Metadata=metadata)
    VPCGatewayAttachment(
        "VPCGatewayAttachement",
        template=template,
        InternetGatewayId=Ref(igw),
        VpcId=Ref(vpc),
        Metadata=metadata,
    )
    return vpc, igw


def add_public_subnets(template: Template, vpc, igw, subnets_cidr: list) -> tuple:
    """
    Function to add public subnets for the VPC, each in a different AZ, sharing one route table.

    :param troposphere.Template template:
    :param troposphere.ec2.VPC vpc:
    :param troposphere.ec2.InternetGateway igw: internet gateway to route to
    :param list[str] subnets_cidr:
    :return: the subnets, and the titles of the default route and route table associations
    :rtype: tuple
    """
    rtb = RouteTable(
        PUBLIC_RTB_T,
        template=template,
        VpcId=Ref(vpc),
        Tags=Tags(Name=PUBLIC_RTB_T),
        Metadata=metadata,
    )
    default_route = Route(
        "PublicDefaultRoute",
        template=template,
        GatewayId=Ref(igw),
        RouteTableId=Ref(rtb),
        DestinationCidrBlock="0.0.0.0/0",
        DependsOn=["VPCGatewayAttachement"],
    )
    subnets = []
    connectivity = [default_route.title]
    for index, subnet_cidr in enumerate(subnets_cidr):
        subnet = Subnet(
            f"PublicSubnet{chr(65 + index)}",
            template=template,
            CidrBlock=subnet_cidr,
            VpcId=Ref(vpc),
            AvailabilityZone=Select(index, GetAZs(Ref("AWS::Region"))),
            MapPublicIpOnLaunch=True,
            Tags=Tags(Name=Sub(f"${{AWS::StackName}}-Public-{index}")),
            Metadata=metadata,
        )
        association = SubnetRouteTableAssociation(
            f"PublicSubnetsRtbAssoc{chr(65 + index)}",
            template=template,
            RouteTableId=Ref(rtb),
            SubnetId=Ref(subnet),
        )
        subnets.append(subnet)
        connectivity.append(association.title)
    return subnets, connectivity


def add_public_vpc(template: Template) -> NetworkSettings:
    """
    Creates a new VPC with only public subnets and no NAT gateway.

    :param troposphere.Template template:
    :rtype: NetworkSettings
    """
    vpc, igw = add_vpc_core(template, DEFAULT_VPC_CIDR)
    subnets, connectivity = add_public_subnets(
        template, vpc, igw, DEFAULT_PUBLIC_SUBNETS_CIDR
    )
    subnets_refs = [Ref(subnet) for subnet in subnets]
    return NetworkSettings(Ref(vpc), subnets_refs, subnets_refs, connectivity)


def import_vpc(template: Template, vpc_config: dict) -> NetworkSettings:
    """
    Uses the existing VPC and public subnets, set as default values of the template parameters.

    :param troposphere.Template template:
    :param dict vpc_config: the Vpc configuration with VpcId and PublicSubnets
    :rtype: NetworkSettings
    """
    vpc_id = vpc_id_parameter(vpc_config["VpcId"])
    public_subnets = public_subnets_parameter(vpc_config["PublicSubnets"])
    add_parameters(template, [vpc_id, public_subnets])
    LOG.info(
        f"Using VPC {vpc_config['VpcId']} with subnets {vpc_config['PublicSubnets']}"
    )
    return NetworkSettings(
        Ref(vpc_id),
        [
            Select(index, Ref(public_subnets))
            for index in range(len(vpc_config["PublicSubnets"]))
        ],
        Ref(public_subnets),
    )


def add_vpc(template: Template, settings: EasyCerverSettings) -> NetworkSettings:
    """
    Entrypoint to define the network of the stack.

    :param troposphere.Template template:
    :param EasyCerverSettings settings:
    :rtype: NetworkSettings
    """
    if settings.vpc_override:
        return import_vpc(template, settings.vpc_override)
    return add_public_vpc(template)
