#  SPDX-License-Identifier: MPL-2.0
#  Copyright 2020-2022 John Mille <john@compose-x.io>

"""
Base classes of the load balanced services patterns.

They build the cluster (unless given), the load balancers, their listeners, certificates and DNS records,
and leave the task definition and service to the launch type specific classes.
"""

from __future__ import annotations

from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from ecs_patterns.acm import BaseCertificate
    from ecs_patterns.ecs import BaseCluster, CloudMapOptions
    from ecs_patterns.route53 import HostedZone
    from ecs_patterns.vpc import BaseVpc

from troposphere import Join

from ecs_patterns.acm import DnsValidatedCertificate
from ecs_patterns.common.construct import Construct
from ecs_patterns.common.logging import LOG
from ecs_patterns.common.stack import CfnOutput
from ecs_patterns.ecs import AwsLogDriver, Cluster
from ecs_patterns.ecs.ecs_params import DEFAULT_CLUSTER_ID, DEFAULT_DESIRED_COUNT
from ecs_patterns.elbv2 import (
    ApplicationListener,
    ApplicationLoadBalancer,
    ApplicationProtocol,
)
from ecs_patterns.exceptions import IncompatibleOptions, MissingOptions
from ecs_patterns.patterns.patterns_params import (
    DEFAULT_LB_ID,
    DEFAULT_LISTENER_ID,
    ApplicationLoadBalancedTaskImageOptions,
    ListenerOptions,
)
from ecs_patterns.route53 import ARecord


def get_default_cluster(scope: Construct, vpc: BaseVpc = None) -> Cluster:
    """
    Returns the cluster shared by all the patterns of the stack using the same VPC, creating it if needed.

    :param Construct scope: the pattern
    :param BaseVpc vpc: the VPC of the cluster. A new one is created with the cluster if not set.
    :rtype: Cluster
    """
    cluster_id = f"{DEFAULT_CLUSTER_ID}{vpc.node_id if vpc else ''}"
    stack = scope.stack
    cluster = stack.try_find_child(cluster_id)
    if cluster is not None:
        LOG.debug(f"{scope} - Using default cluster {cluster}")
        return cluster
    LOG.info(f"{scope} - Creating default cluster {cluster_id}")
    return Cluster(stack, cluster_id, vpc=vpc)


class LoadBalancedServiceBase(Construct):
    """
    Logic common to the load balanced services bases

    :ivar BaseCluster cluster:
    :ivar int desired_count:
    :ivar ApplicationLoadBalancer load_balancer: the first (or only) load balancer
    :ivar ApplicationListener listener: the first (or only) listener
    :ivar list[ListenerOptions] listeners: the listeners by name
    """

    def __init__(
        self,
        scope: Construct,
        construct_id: str,
        cluster: BaseCluster = None,
        vpc: BaseVpc = None,
        desired_count: int = None,
    ):
        super().__init__(scope, construct_id)
        if cluster is not None and vpc is not None:
            raise IncompatibleOptions(
                "You can only specify either vpc or cluster. Alternatively, you can leave both blank"
            )
        self.cluster = cluster if cluster is not None else get_default_cluster(self, vpc)
        self.desired_count = desired_count if desired_count else DEFAULT_DESIRED_COUNT
        self.listeners = []
        self.load_balancer = None
        self.listener = None
        self.certificate = None

    def create_aws_log_driver(self, prefix: str) -> AwsLogDriver:
        return AwsLogDriver(stream_prefix=prefix)

    def find_listener(self, name: str = None) -> ApplicationListener:
        """
        Returns the listener with the given name, or the default listener if no name is given

        :raises: LookupError if there is no listener with that name
        """
        if not name:
            return self.listener
        for option in self.listeners:
            if option.name == name:
                return option.listener
        raise LookupError(
            f"Listener {name} is not defined. Did you define listener with name {name}?"
        )

    def create_load_balancer(
        self,
        name: str = None,
        public_load_balancer: bool = None,
        load_balancer: ApplicationLoadBalancer = None,
    ) -> ApplicationLoadBalancer:
        if load_balancer is not None:
            return load_balancer
        if not name:
            raise MissingOptions("Name of the new load balancer is required.")
        internet_facing = (
            public_load_balancer if public_load_balancer is not None else True
        )
        return ApplicationLoadBalancer(
            self, name, self.cluster.vpc, internet_facing=internet_facing
        )

    @staticmethod
    def create_listener_protocol(
        listener_protocol: str = None, certificate: BaseCertificate = None
    ) -> str:
        if listener_protocol is not None:
            return listener_protocol
        return ApplicationProtocol.HTTPS if certificate else ApplicationProtocol.HTTP

    def create_listener_certificate(
        self,
        certificate_id: str,
        certificate: BaseCertificate = None,
        domain_name: str = None,
        domain_zone: HostedZone = None,
    ) -> BaseCertificate:
        if domain_name is None or domain_zone is None:
            raise MissingOptions(
                "A domain name and zone is required when using the HTTPS protocol"
            )
        if certificate is not None:
            return certificate
        return DnsValidatedCertificate(
            self, certificate_id, domain_name=domain_name, hosted_zone=domain_zone
        )

    def config_listener(
        self,
        protocol: str,
        listener_name: str,
        load_balancer: ApplicationLoadBalancer,
        certificate_id: str,
        certificate: BaseCertificate = None,
        domain_name: str = None,
        domain_zone: HostedZone = None,
    ) -> tuple:
        """
        Creates the listener, open to the world, and its certificate when using HTTPS

        :return: the listener and its certificate
        :rtype: tuple
        """
        listener = load_balancer.add_listener(listener_name, protocol=protocol, open=True)
        if protocol == ApplicationProtocol.HTTPS:
            certificate = self.create_listener_certificate(
                certificate_id, certificate, domain_name, domain_zone
            )
        else:
            certificate = None
        if certificate is not None:
            listener.add_certificate_arns("Arns", [certificate.certificate_arn])
        return listener, certificate

    def create_domain_name(
        self,
        load_balancer: ApplicationLoadBalancer,
        record_id: str,
        name: str = None,
        zone: HostedZone = None,
    ):
        """
        Returns the DNS name to reach the load balancer, creating the alias record when a name is given
        """
        if name is None:
            return load_balancer.load_balancer_dns_name
        if zone is None:
            raise MissingOptions(
                "A Route53 hosted domain zone name is required to configure the specified domain name"
            )
        record = ARecord(self, record_id, zone=zone, record_name=name, target=load_balancer)
        return record.domain_name

    def add_outputs(
        self,
        load_balancer: ApplicationLoadBalancer,
        protocol: str,
        domain_name,
        suffix: str = "",
    ) -> None:
        CfnOutput(
            self,
            f"LoadBalancerDNS{suffix}",
            value=load_balancer.load_balancer_dns_name,
        )
        CfnOutput(
            self,
            f"ServiceURL{suffix}",
            value=Join("", [f"{protocol.lower()}://", domain_name]),
        )

    def listener_protocol(self, lb_props, listener_props) -> str:
        raise NotImplementedError()

    def lb_url_protocol(self, lb_props, listener_protocols: list) -> str:
        raise NotImplementedError()

    def create_load_balancers(self, load_balancers: list) -> None:
        """
        Creates the load balancers, their listeners and DNS records
        """
        for lb_props in load_balancers:
            load_balancer = self.create_load_balancer(
                lb_props.name, lb_props.public_load_balancer, lb_props.load_balancer
            )
            if self.load_balancer is None:
                self.load_balancer = load_balancer
            protocols = []
            for listener_props in lb_props.listeners:
                protocol = self.listener_protocol(lb_props, listener_props)
                protocols.append(protocol)
                listener, certificate = self.config_listener(
                    protocol,
                    listener_props.name,
                    load_balancer,
                    f"Certificate{listener_props.name}",
                    certificate=listener_props.certificate,
                    domain_name=lb_props.domain_name,
                    domain_zone=lb_props.domain_zone,
                )
                self.listeners.append(ListenerOptions(listener_props.name, listener))
                self.certificate = certificate
                if self.listener is None:
                    self.listener = listener
            domain_name = self.create_domain_name(
                load_balancer,
                f"DNS{load_balancer.node_id}",
                lb_props.domain_name,
                lb_props.domain_zone,
            )
            self.add_outputs(
                load_balancer,
                self.lb_url_protocol(lb_props, protocols),
                domain_name,
                suffix=load_balancer.node_id,
            )
        if self.load_balancer is None:
            raise MissingOptions("At least one load balancer should be specified")
        if self.listener is None:
            raise MissingOptions("At least one listener should be specified")


class ApplicationLoadBalancedServiceBase(LoadBalancedServiceBase):
    """
    Base of the services behind a single public load balancer, HTTP or HTTPS,
    or several load balancers when load_balancers is set.
    """

    def __init__(
        self,
        scope: Construct,
        construct_id: str,
        cluster: BaseCluster = None,
        vpc: BaseVpc = None,
        task_image_options: ApplicationLoadBalancedTaskImageOptions = None,
        public_load_balancer: bool = None,
        desired_count: int = None,
        certificate: BaseCertificate = None,
        protocol: str = None,
        domain_name: str = None,
        domain_zone: HostedZone = None,
        service_name: str = None,
        health_check_grace_period=None,
        load_balancer: ApplicationLoadBalancer = None,
        load_balancers: list = None,
        propagate_tags: str = None,
        enable_ecs_managed_tags: bool = False,
        cloud_map_options: CloudMapOptions = None,
        target_groups: list = None,
    ):
        super().__init__(
            scope, construct_id, cluster=cluster, vpc=vpc, desired_count=desired_count
        )
        if (
            certificate is not None
            and protocol is not None
            and protocol != ApplicationProtocol.HTTPS
        ):
            raise IncompatibleOptions(
                "The HTTPS protocol must be used when a certificate is given"
            )
        self.task_image_options = task_image_options
        self.service_name = service_name
        self.health_check_grace_period = health_check_grace_period
        self.propagate_tags = propagate_tags
        self.enable_ecs_managed_tags = enable_ecs_managed_tags
        self.cloud_map_options = cloud_map_options
        self.target_groups_props = target_groups
        self.protocol = protocol
        self.certificate_prop = certificate
        if load_balancers is not None:
            self.create_load_balancers(load_balancers)
        else:
            self.load_balancer = self.create_load_balancer(
                DEFAULT_LB_ID, public_load_balancer, load_balancer
            )
            listener_protocol = self.create_listener_protocol(protocol, certificate)
            self.listener, self.certificate = self.config_listener(
                listener_protocol,
                DEFAULT_LISTENER_ID,
                self.load_balancer,
                "Certificate",
                certificate=certificate,
                domain_name=domain_name,
                domain_zone=domain_zone,
            )
            domain = self.create_domain_name(
                self.load_balancer, "DNS", domain_name, domain_zone
            )
            self.add_outputs(self.load_balancer, listener_protocol, domain)

    def listener_protocol(self, lb_props, listener_props) -> str:
        return self.create_listener_protocol(self.protocol, self.certificate_prop)

    def lb_url_protocol(self, lb_props, listener_protocols: list) -> str:
        return self.create_listener_protocol(self.protocol, self.certificate_prop)


class ApplicationMultipleTargetGroupsServiceBase(LoadBalancedServiceBase):
    """
    Base of the services exposing several container ports, through several listeners and load balancers
    """

    def __init__(
        self,
        scope: Construct,
        construct_id: str,
        cluster: BaseCluster = None,
        vpc: BaseVpc = None,
        task_image_options: ApplicationLoadBalancedTaskImageOptions = None,
        desired_count: int = None,
        health_check_grace_period=None,
        service_name: str = None,
        load_balancers: list = None,
        propagate_tags: str = None,
        enable_ecs_managed_tags: bool = False,
        cloud_map_options: CloudMapOptions = None,
        target_groups: list = None,
    ):
        super().__init__(
            scope, construct_id, cluster=cluster, vpc=vpc, desired_count=desired_count
        )
        self.task_image_options = task_image_options
        self.service_name = service_name
        self.health_check_grace_period = health_check_grace_period
        self.propagate_tags = propagate_tags
        self.enable_ecs_managed_tags = enable_ecs_managed_tags
        self.cloud_map_options = cloud_map_options
        self.target_groups_props = target_groups
        if load_balancers is not None:
            self.create_load_balancers(load_balancers)
        else:
            self.load_balancer = self.create_load_balancer(DEFAULT_LB_ID)
            listener_protocol = self.create_listener_protocol()
            self.listener, self.certificate = self.config_listener(
                listener_protocol,
                DEFAULT_LISTENER_ID,
                self.load_balancer,
                "Certificate",
            )
            domain = self.create_domain_name(self.load_balancer, "DNS")
            self.add_outputs(self.load_balancer, listener_protocol, domain)

    def listener_protocol(self, lb_props, listener_props) -> str:
        return self.create_listener_protocol(lb_props.protocol, listener_props.certificate)

    def lb_url_protocol(self, lb_props, listener_protocols: list) -> str:
        return lb_props.protocol if lb_props.protocol else ApplicationProtocol.HTTP
