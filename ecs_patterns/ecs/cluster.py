#  SPDX-License-Identifier: MPL-2.0
#  Copyright 2020-2022 John Mille <john@compose-x.io>

"""
ECS Cluster, its EC2 capacity and its Cloud Map namespace.
"""

from __future__ import annotations

from troposphere import AWS_NO_VALUE, Base64, GetAtt, Parameter, Ref, Sub
from troposphere.autoscaling import AutoScalingGroup
from troposphere.autoscaling import LaunchTemplateSpecification
from troposphere.autoscaling import Tags as AsgTags
from troposphere.ec2 import (
    IamInstanceProfile,
    LaunchTemplate,
    LaunchTemplateData,
)
from troposphere.ecs import Cluster as CfnCluster
from troposphere.iam import InstanceProfile
from troposphere.servicediscovery import PrivateDnsNamespace

from ecs_patterns.common.construct import Construct
from ecs_patterns.common.logging import LOG
from ecs_patterns.ecs.ecs_params import (
    AMI_FROM_SSM_TYPE,
    EC2_INSTANCE_POLICY,
    EC2_PRINCIPAL,
    ECS_OPTIMIZED_AMI_PARAMETER_T,
    ECS_OPTIMIZED_AMI_PATH,
)
from ecs_patterns.iam import Role, managed_policy_arn
from ecs_patterns.vpc import BaseSecurityGroup, BaseVpc, SecurityGroup, Vpc


class BaseCluster(Construct):
    """
    Common interface of new and imported clusters

    :ivar cluster_name: name of the cluster, string or Ref()
    :ivar BaseVpc vpc: VPC of the cluster
    :ivar list[BaseSecurityGroup] connections: security groups of the container instances
    :ivar default_namespace: the Cloud Map namespace used by the services
    """

    def __init__(self, scope: Construct, construct_id: str, vpc: BaseVpc):
        super().__init__(scope, construct_id)
        self.vpc = vpc
        self.cluster_name = None
        self.cluster_arn = None
        self.connections = []
        self.default_namespace = None
        self.has_ec2_capacity = False


class Cluster(BaseCluster):
    """
    New ECS Cluster. A new VPC is created for it when none is given.
    """

    def __init__(
        self,
        scope: Construct,
        construct_id: str,
        vpc: BaseVpc = None,
        cluster_name: str = None,
    ):
        if vpc is None:
            super().__init__(scope, construct_id, None)
            LOG.info(f"{self} - No VPC defined for the cluster. Creating a new one")
            self.vpc = Vpc(self, "Vpc")
        else:
            super().__init__(scope, construct_id, vpc)
        self.cfn_resource = self.add_cfn_resource(
            CfnCluster,
            ClusterName=cluster_name if cluster_name else Ref(AWS_NO_VALUE),
        )
        self.cluster_name = Ref(self.cfn_resource)
        self.cluster_arn = GetAtt(self.cfn_resource, "Arn")
        self.capacities = []

    def add_capacity(
        self,
        construct_id: str,
        instance_type: str,
        desired_capacity: int = None,
        min_capacity: int = None,
        max_capacity: int = None,
        key_name: str = None,
    ) -> ClusterCapacity:
        """
        Adds EC2 container instances to the cluster, in an Auto Scaling Group

        :param str construct_id:
        :param str instance_type: i.e. t3.micro
        :param int desired_capacity: defaults to 1
        :param int min_capacity: defaults to 1
        :param int max_capacity: defaults to desired capacity
        :param str key_name: EC2 key pair to access the instances
        :rtype: ClusterCapacity
        """
        capacity = ClusterCapacity(
            self,
            construct_id,
            instance_type,
            desired_capacity=desired_capacity,
            min_capacity=min_capacity,
            max_capacity=max_capacity,
            key_name=key_name,
        )
        self.capacities.append(capacity)
        self.connections.append(capacity.security_group)
        self.has_ec2_capacity = True
        return capacity

    def add_default_cloud_map_namespace(self, name: str):
        """
        Creates the private DNS namespace services register into with Cloud Map

        :param str name: the namespace domain name, i.e. local
        """
        if self.default_namespace is not None:
            raise ValueError(f"{self} - Can only add default namespace once.")
        self.default_namespace = self.add_cfn_resource(
            PrivateDnsNamespace,
            "DefaultServiceDiscoveryNamespace",
            Name=name,
            Vpc=self.vpc.vpc_id,
        )
        return self.default_namespace

    @staticmethod
    def from_attributes(
        scope: Construct,
        construct_id: str,
        cluster_name: str,
        vpc: BaseVpc,
        security_groups: list = None,
        has_ec2_capacity: bool = True,
        default_namespace_id: str = None,
    ) -> ImportedCluster:
        return ImportedCluster(
            scope,
            construct_id,
            cluster_name,
            vpc,
            security_groups=security_groups,
            has_ec2_capacity=has_ec2_capacity,
            default_namespace_id=default_namespace_id,
        )


class ImportedCluster(BaseCluster):
    """
    Existing ECS Cluster, identified by its name
    """

    def __init__(
        self,
        scope: Construct,
        construct_id: str,
        cluster_name: str,
        vpc: BaseVpc,
        security_groups: list = None,
        has_ec2_capacity: bool = True,
        default_namespace_id: str = None,
    ):
        super().__init__(scope, construct_id, vpc)
        self.cluster_name = cluster_name
        self.cluster_arn = Sub(
            f"arn:${{AWS::Partition}}:ecs:${{AWS::Region}}:${{AWS::AccountId}}:cluster/{cluster_name}"
        )
        self.has_ec2_capacity = has_ec2_capacity
        self.default_namespace = default_namespace_id
        for count, security_group in enumerate(
            security_groups if security_groups else []
        ):
            if isinstance(security_group, BaseSecurityGroup):
                self.connections.append(security_group)
            else:
                self.connections.append(
                    BaseSecurityGroup.from_security_group_id(
                        self, f"SecurityGroup{count}", security_group
                    )
                )


class ClusterCapacity(Construct):
    """
    Auto Scaling Group of ECS optimized instances registered into the cluster
    """

    def __init__(
        self,
        scope: Cluster,
        construct_id: str,
        instance_type: str,
        desired_capacity: int = None,
        min_capacity: int = None,
        max_capacity: int = None,
        key_name: str = None,
    ):
        super().__init__(scope, construct_id)
        desired_capacity = desired_capacity if desired_capacity is not None else 1
        min_capacity = min_capacity if min_capacity is not None else 1
        max_capacity = max_capacity if max_capacity is not None else desired_capacity
        if not min_capacity <= desired_capacity <= max_capacity:
            raise ValueError(
                f"{self} - Capacity must verify min ({min_capacity}) <= "
                f"desired ({desired_capacity}) <= max ({max_capacity})"
            )
        cluster = scope
        self.security_group = SecurityGroup(
            self, "InstanceSecurityGroup", cluster.vpc
        )
        self.role = Role(
            self,
            "InstanceRole",
            assumed_by=EC2_PRINCIPAL,
            managed_policy_arns=[managed_policy_arn(EC2_INSTANCE_POLICY)],
        )
        instance_profile = self.add_cfn_resource(
            InstanceProfile, "InstanceProfile", Roles=[self.role.role_name]
        )
        ami_parameter = self.stack.add_parameter(
            Parameter(
                ECS_OPTIMIZED_AMI_PARAMETER_T,
                Type=AMI_FROM_SSM_TYPE,
                Default=ECS_OPTIMIZED_AMI_PATH,
            )
        )
        launch_template = self.add_cfn_resource(
            LaunchTemplate,
            "LaunchTemplate",
            LaunchTemplateData=LaunchTemplateData(
                ImageId=Ref(ami_parameter),
                InstanceType=instance_type,
                IamInstanceProfile=IamInstanceProfile(
                    Arn=GetAtt(instance_profile, "Arn")
                ),
                SecurityGroupIds=[self.security_group.security_group_id],
                KeyName=key_name if key_name else Ref(AWS_NO_VALUE),
                UserData=Base64(
                    Sub(
                        "#!/bin/bash\n"
                        f"echo ECS_CLUSTER=${{{cluster.cfn_resource.title}}} >> /etc/ecs/ecs.config\n"
                    )
                ),
            ),
        )
        self.auto_scaling_group = self.add_cfn_resource(
            AutoScalingGroup,
            "ASG",
            MinSize=str(min_capacity),
            MaxSize=str(max_capacity),
            DesiredCapacity=str(desired_capacity),
            LaunchTemplate=LaunchTemplateSpecification(
                LaunchTemplateId=Ref(launch_template),
                Version=GetAtt(launch_template, "LatestVersionNumber"),
            ),
            VPCZoneIdentifier=cluster.vpc.select_subnets(public=False),
            Tags=AsgTags(Name=self.path),
        )
        LOG.info(
            f"{cluster} - Added capacity {construct_id} of {desired_capacity} {instance_type} instance(s)"
        )
