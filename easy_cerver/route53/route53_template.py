# SPDX-License-Identifier: MPL-2.0
# Copyright 2020-2022 John Mille <john@compose-x.io>

"""
DNS records pointing the domain names to the static IP address of the host
"""

from __future__ import annotations

from troposphere import Ref, Sub, Template
from troposphere.route53 import RecordSetType

from easy_cerver.common import add_parameters
from easy_cerver.route53 import metadata
from easy_cerver.route53.route53_params import (
    RECORD_T,
    RECORD_TTL,
    hosted_zone_id_parameter,
)


def add_hosted_zone(template: Template, zone_id: str):
    """
    Adds the hosted zone ID parameter

    :param troposphere.Template template:
    :param str zone_id:
    :return: the parameter
    :rtype: easy_cerver.common.cfn_params.Parameter
    """
    zone_parameter = hosted_zone_id_parameter(zone_id)
    add_parameters(template, [zone_parameter])
    return zone_parameter


def hosted_zone_arn(zone_parameter) -> Sub:
    return Sub(
        f"arn:${{AWS::Partition}}:route53:::hostedzone/${{{zone_parameter.title}}}"
    )


def add_host_records(
    template: Template, zone_parameter, domain_names: list, eip
) -> list:
    """
    Adds one A record per domain name, pointing at the host EIP.

    :param troposphere.Template template:
    :param zone_parameter: the hosted zone ID parameter
    :param list[str] domain_names:
    :param troposphere.ec2.EIP eip:
    :return: the records
    :rtype: list[troposphere.route53.RecordSetType]
    """
    records = []
    for count, domain_name in enumerate(domain_names):
        records.append(
            RecordSetType(
                f"{RECORD_T}{count}",
                template=template,
                HostedZoneId=Ref(zone_parameter),
                Name=domain_name,
                Type="A",
                TTL=RECORD_TTL,
                ResourceRecords=[Ref(eip)],
                Metadata=metadata,
            )
        )
    return records
