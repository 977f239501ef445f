#  SPDX-License-Identifier: MPL-2.0
#  Copyright 2020-2022 John Mille <john@compose-x.io>

import pytest

from ecs_patterns.acm import WILDCARD_RE, Certificate, DnsValidatedCertificate
from ecs_patterns.common.stack import App, Stack
from ecs_patterns.elbv2 import ApplicationLoadBalancer
from ecs_patterns.route53 import ARecord, HostedZone, PublicHostedZone
from ecs_patterns.route53.route53_params import (
    qualify_record_name,
    validate_domain_name,
)
from ecs_patterns.vpc import Vpc


@pytest.fixture
def stack():
    return Stack(App(), "dns")


def test_qualify_record_name():
    assert qualify_record_name("api", "example.com") == "api.example.com."
    assert qualify_record_name("api.example.com", "example.com.") == "api.example.com."
    assert qualify_record_name("example.com", "example.com") == "example.com."
    assert qualify_record_name("api.example.com.", "example.com") == "api.example.com."
    with pytest.raises(ValueError):
        qualify_record_name("api.example.net.", "example.com")


def test_validate_domain_name():
    validate_domain_name("a.b.example.com", "Example.com.")
    with pytest.raises(ValueError):
        validate_domain_name("notexample.com", "example.com")


def test_hosted_zones(stack):
    imported = HostedZone.from_hosted_zone_attributes(
        stack, "Imported", "Z0123456789ABCDEFGHIJ", "example.com."
    )
    assert imported.zone_name == "example.com"
    assert not stack.template.resources
    with pytest.raises(ValueError):
        HostedZone.from_hosted_zone_attributes(stack, "Invalid", "abc", "example.com")
    zone = PublicHostedZone(stack, "Zone", "example.net")
    props = zone.cfn_resource.to_dict()["Properties"]
    assert props["Name"] == "example.net"
    with pytest.raises(ValueError):
        PublicHostedZone(stack, "Empty", "")


def test_a_record(stack):
    vpc = Vpc(stack, "Vpc")
    load_balancer = ApplicationLoadBalancer(stack, "LB", vpc, internet_facing=True)
    zone = HostedZone.from_hosted_zone_attributes(
        stack, "Zone", "Z0123456789ABCDEFGHIJ", "example.com"
    )
    record = ARecord(stack, "DNS", zone, "api", load_balancer)
    assert record.record_name == "api.example.com."
    props = record.cfn_resource.to_dict()["Properties"]
    assert props["Type"] == "A"
    assert props["HostedZoneId"] == "Z0123456789ABCDEFGHIJ"
    assert "AliasTarget" in props
    with pytest.raises(TypeError):
        ARecord(stack, "Invalid", "Z0123456789ABCDEFGHIJ", "api", load_balancer)


def test_imported_certificate(stack):
    certificate = Certificate.from_certificate_arn(
        stack, "Certificate", "arn:aws:acm:eu-west-1:012345678912:certificate/abcd"
    )
    assert certificate.certificate_arn.endswith("/abcd")
    with pytest.raises(ValueError):
        Certificate(stack, "Invalid", "")


def test_dns_validated_certificate(stack):
    zone = HostedZone.from_hosted_zone_attributes(
        stack, "Zone", "Z0123456789ABCDEFGHIJ", "example.com"
    )
    certificate = DnsValidatedCertificate(
        stack,
        "Certificate",
        "*.example.com",
        zone,
        subject_alternative_names=["example.com"],
    )
    assert certificate.validate() == []
    props = certificate.cfn_resource.to_dict()["Properties"]
    assert props["ValidationMethod"] == "DNS"
    assert props["SubjectAlternativeNames"] == ["example.com"]
    assert len(props["DomainValidationOptions"]) == 2
    assert props["Tags"] == [{"Key": "Name", "Value": "wildcard.example.com"}]


def test_dns_validated_certificate_wrong_zone(stack):
    zone = HostedZone.from_hosted_zone_attributes(
        stack, "Zone", "Z0123456789ABCDEFGHIJ", "example.com"
    )
    certificate = DnsValidatedCertificate(stack, "Certificate", "api.example.net", zone)
    assert certificate.validate() == [
        "DNS zone example.com is not authoritative for certificate domain name api.example.net"
    ]
    with pytest.raises(ValueError):
        stack.synthesize()


def test_wildcard_prefix():
    assert WILDCARD_RE.sub("wildcard.", "*.example.com") == "wildcard.example.com"
    assert WILDCARD_RE.sub("", "*.example.com") == "example.com"
    assert WILDCARD_RE.sub("wildcard.", "*xexample.com") == "*xexample.com"
    assert WILDCARD_RE.sub("", "api.*.example.com") == "api.*.example.com"
