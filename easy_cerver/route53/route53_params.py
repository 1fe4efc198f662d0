# SPDX-License-Identifier: MPL-2.0
# Copyright 2020-2022 John Mille <john@compose-x.io>

import re

from easy_cerver.common.cfn_params import Parameter

DNS_SETTINGS = "DNS Settings"

ZONE_ID_RE = re.compile(r"^(?:/hostedzone/)?(?P<id>Z[0-9A-Z]+)$")

HOSTED_ZONE_ID_T = "HostedZoneId"
RECORD_T = "HostRecord"
RECORD_TTL = "300"


def hosted_zone_id_parameter(zone_id: str) -> Parameter:
    return Parameter(
        HOSTED_ZONE_ID_T,
        group_label=DNS_SETTINGS,
        Type="AWS::Route53::HostedZone::Id",
        Default=zone_id,
    )
