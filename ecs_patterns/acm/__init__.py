#  SPDX-License-Identifier: MPL-2.0
#  Copyright 2020-2022 John Mille <john@compose-x.io>

"""
ACM Certificates, for HTTPS listeners
"""

from __future__ import annotations

import re
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from ecs_patterns.route53 import HostedZone

from troposphere import AWS_NO_VALUE, Ref, Tags
from troposphere.certificatemanager import Certificate as CfnAcmCertificate
from troposphere.certificatemanager import DomainValidationOption

from ecs_patterns.common.construct import Construct
from ecs_patterns.common.logging import LOG
from ecs_patterns.route53.route53_params import validate_domain_name

DNS_VALIDATION = "DNS"
WILDCARD_RE = re.compile(r"^\*\.")


class BaseCertificate(Construct):
    """
    Common interface of new and imported certificates

    :ivar certificate_arn: string or Ref()
    """

    certificate_arn = None


class Certificate(BaseCertificate):
    """
    Existing ACM certificate, identified by its ARN
    """

    def __init__(self, scope: Construct, construct_id: str, certificate_arn: str):
        super().__init__(scope, construct_id)
        if not certificate_arn:
            raise ValueError(f"{self} - certificate_arn is required")
        self.certificate_arn = certificate_arn

    @classmethod
    def from_certificate_arn(
        cls, scope: Construct, construct_id: str, certificate_arn: str
    ) -> Certificate:
        return cls(scope, construct_id, certificate_arn)


class DnsValidatedCertificate(BaseCertificate):
    """
    New ACM certificate, validated with DNS records in the hosted zone
    """

    def __init__(
        self,
        scope: Construct,
        construct_id: str,
        domain_name: str,
        hosted_zone: HostedZone,
        subject_alternative_names: list = None,
    ):
        super().__init__(scope, construct_id)
        self.domain_name = domain_name
        self.hosted_zone = hosted_zone
        self.subject_alternative_names = (
            list(subject_alternative_names) if subject_alternative_names else []
        )
        validations = [
            DomainValidationOption(
                DomainName=name,
                HostedZoneId=hosted_zone.hosted_zone_id,
            )
            for name in [domain_name] + self.subject_alternative_names
        ]
        self.cfn_resource = self.add_cfn_resource(
            CfnAcmCertificate,
            DomainName=domain_name,
            ValidationMethod=DNS_VALIDATION,
            DomainValidationOptions=validations,
            SubjectAlternativeNames=self.subject_alternative_names
            if self.subject_alternative_names
            else Ref(AWS_NO_VALUE),
            Tags=Tags(Name=WILDCARD_RE.sub("wildcard.", domain_name)),
        )
        self.certificate_arn = Ref(self.cfn_resource)
        LOG.info(f"{self} - Certificate for {domain_name} validated in {hosted_zone.zone_name}")

    def validate(self) -> list:
        errors = []
        for name in [self.domain_name] + self.subject_alternative_names:
            try:
                validate_domain_name(
                    WILDCARD_RE.sub("", name), self.hosted_zone.zone_name
                )
            except ValueError:
                errors.append(
                    f"DNS zone {self.hosted_zone.zone_name} is not authoritative "
                    f"for certificate domain name {name}"
                )
        return errors
