# SPDX-License-Identifier: MPL-2.0
# Copyright 2020-2022 John Mille <john@compose-x.io>

import boto3
import pytest
from botocore.stub import Stubber
from conftest import StubbedSession, create_settings

from easy_cerver.exceptions import HostedZoneNotFound
from easy_cerver.route53.route53_lookup import (
    filter_out_cloudmap_zones,
    lookup_public_hosted_zone,
    resolve_hosted_zone_id,
    validate_zone_id_input,
)


def hosted_zone(zone_id, name, private=False, linked_service=None):
    zone = {
        "Id": f"/hostedzone/{zone_id}",
        "Name": name,
        "CallerReference": zone_id,
        "Config": {"PrivateZone": private},
        "ResourceRecordSetCount": 2,
    }
    if linked_service:
        zone["LinkedService"] = {"ServicePrincipal": linked_service}
    return zone


@pytest.fixture
def route53_client():
    return boto3.session.Session(region_name="eu-west-1").client(
        "route53",
        aws_access_key_id="AKIAEXAMPLE",
        aws_secret_access_key="secret",
    )


def test_validate_zone_id_input():
    assert validate_zone_id_input("/hostedzone/Z0123456789ABC") == "Z0123456789ABC"
    assert validate_zone_id_input("Z0123456789ABC") == "Z0123456789ABC"
    with pytest.raises(ValueError):
        validate_zone_id_input("hostedzone-123")


def test_filter_out_cloudmap_zones():
    zones = [
        hosted_zone(
            "Z0000CLOUDMAP",
            "example.com.",
            private=False,
            linked_service="servicediscovery.amazonaws.com",
        ),
        hosted_zone("Z0000PRIVATE", "example.com.", private=True),
        hosted_zone("Z0000PUBLIC", "example.com."),
    ]
    assert filter_out_cloudmap_zones(zones, "example.com")["Id"] == (
        "/hostedzone/Z0000PUBLIC"
    )
    with pytest.raises(HostedZoneNotFound):
        filter_out_cloudmap_zones(zones[:2], "example.com")
    with pytest.raises(LookupError):
        filter_out_cloudmap_zones(
            [hosted_zone("Z0000OTHER", "example.org.")], "example.com"
        )


def test_lookup_public_hosted_zone(route53_client):
    stubber = Stubber(route53_client)
    stubber.add_response(
        "list_hosted_zones_by_name",
        {
            "HostedZones": [
                hosted_zone("Z0123456789ABCDEFGHIJ", "example.com."),
                hosted_zone("Z0000OTHER", "example.net."),
            ],
            "IsTruncated": False,
            "MaxItems": "100",
        },
        {"DNSName": "example.com"},
    )
    with stubber:
        zone_id = lookup_public_hosted_zone(
            StubbedSession(route53=route53_client), "example.com"
        )
    assert zone_id == "Z0123456789ABCDEFGHIJ"
    stubber.assert_no_pending_responses()


def test_zone_not_found(route53_client):
    stubber = Stubber(route53_client)
    stubber.add_response(
        "list_hosted_zones_by_name",
        {
            "HostedZones": [hosted_zone("Z0000OTHER", "example.net.")],
            "IsTruncated": False,
            "MaxItems": "100",
        },
        {"DNSName": "example.com"},
    )
    with stubber:
        with pytest.raises(HostedZoneNotFound):
            lookup_public_hosted_zone(
                StubbedSession(route53=route53_client), "example.com"
            )


def test_resolve_hosted_zone_id(minimal_content, route53_client):
    minimal_content["HostedZoneId"] = "/hostedzone/Z0123456789ABCDEFGHIJ"
    settings = create_settings(minimal_content)
    assert resolve_hosted_zone_id(settings) == "Z0123456789ABCDEFGHIJ"

    del minimal_content["HostedZoneId"]
    stubber = Stubber(route53_client)
    stubber.add_response(
        "list_hosted_zones_by_name",
        {
            "HostedZones": [hosted_zone("Z0LOOKEDUP", "example.com.")],
            "IsTruncated": False,
            "MaxItems": "100",
        },
        {"DNSName": "example.com"},
    )
    settings = create_settings(
        minimal_content, session=StubbedSession(route53=route53_client)
    )
    with stubber:
        assert resolve_hosted_zone_id(settings) == "Z0LOOKEDUP"
    assert settings.hosted_zone_id == "Z0LOOKEDUP"
