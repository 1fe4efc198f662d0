# SPDX-License-Identifier: MPL-2.0
# Copyright 2020-2022 John Mille <john@compose-x.io>

"""
Functions to find the public hosted zone ID from the domain name
"""

from __future__ import annotations

from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from easy_cerver.common.settings import EasyCerverSettings

from compose_x_common.compose_x_common import keyisset

from easy_cerver.common.logging import LOG
from easy_cerver.exceptions import HostedZoneNotFound
from easy_cerver.route53.route53_params import ZONE_ID_RE


def validate_zone_id_input(zone_id: str) -> str:
    """
    Function to validate the ZoneID is conform to expectations

    :param str zone_id: zone ID, with or without the /hostedzone/ prefix
    :return: the zone ID without prefix
    :rtype: str
    """
    parts = ZONE_ID_RE.match(zone_id)
    if not parts:
        raise ValueError(
            "ZoneID is not valid. Got", zone_id, "Expected", ZONE_ID_RE.pattern
        )
    return parts.group("id")


def filter_out_cloudmap_zones(zones: list, zone_name: str) -> dict:
    """
    Function to filter out the Hosted Zones linked to CloudMap and the private zones

    :param list zones:
    :param str zone_name:
    :return: The only valid zone
    :rtype: dict
    """
    new_zones = []
    for zone in zones:
        if (
            keyisset("LinkedService", zone)
            and keyisset("ServicePrincipal", zone["LinkedService"])
            and zone["LinkedService"]["ServicePrincipal"]
            == "servicediscovery.amazonaws.com"
        ):
            continue
        if keyisset("Config", zone) and keyisset("PrivateZone", zone["Config"]):
            continue
        new_zones.append(zone)
    if not zone_name.endswith("."):
        zone_name = f"{zone_name}."
    if not new_zones or not new_zones[0]["Name"] == zone_name:
        raise HostedZoneNotFound(
            f"No public hosted zone found for {zone_name}. "
            "As per API definition, the first zone returned must match the name",
            [zone["Name"] for zone in new_zones],
        )
    return new_zones[0]


def lookup_public_hosted_zone(session, zone_name: str) -> str:
    """
    Looks up the public hosted zone by its domain name

    :param boto3.session.Session session:
    :param str zone_name:
    :return: the hosted zone ID
    :rtype: str
    """
    client = session.client("route53")
    try:
        zones_req = client.list_hosted_zones_by_name(DNSName=zone_name)[
            "HostedZones"
        ]
    except client.exceptions.InvalidDomainName:
        LOG.error(f"Zone {zone_name} is invalid or malformed.")
        raise
    zone = filter_out_cloudmap_zones(zones_req, zone_name)
    zone_id = validate_zone_id_input(zone["Id"])
    LOG.info(f"Found public hosted zone {zone_id} for {zone_name}")
    return zone_id


def resolve_hosted_zone_id(settings: EasyCerverSettings) -> str:
    """
    Returns the hosted zone ID from the settings, or from the lookup when not set.
    Stores the result on the settings.

    :param EasyCerverSettings settings:
    :rtype: str
    """
    if settings.hosted_zone_id:
        settings.hosted_zone_id = validate_zone_id_input(settings.hosted_zone_id)
    else:
        settings.hosted_zone_id = lookup_public_hosted_zone(
            settings.session, settings.hosted_zone_domain
        )
    return settings.hosted_zone_id
