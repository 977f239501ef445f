#  SPDX-License-Identifier: MPL-2.0
#  Copyright 2020-2022 John Mille <john@compose-x.io>

"""
IAM Roles used by the ECS tasks, services and instances
"""

from __future__ import annotations

from troposphere import AWS_PARTITION, GetAtt, Ref, Sub
from troposphere.iam import Policy
from troposphere.iam import Role as CfnRole

from ecs_patterns.common.construct import Construct
from ecs_patterns.common.logging import LOG

POLICY_VERSION = "2012-10-17"


def service_role_trust_policy(service_name: str) -> dict:
    """
    Simple function to format the trust relationship for a Role and an AWS Service

    :param str service_name: name of the service, i.e. ecs-tasks
    :return: policy document
    :rtype: dict
    """
    statement = {
        "Effect": "Allow",
        "Principal": {"Service": [Sub(f"{service_name}.${{AWS::URLSuffix}}")]},
        "Action": ["sts:AssumeRole"],
    }
    policy_doc = {"Version": POLICY_VERSION, "Statement": [statement]}
    return policy_doc


def managed_policy_arn(policy_name: str) -> Sub:
    """
    ARN of an AWS managed policy, in the partition of the stack

    :param str policy_name: the name (and path) of the policy, i.e. service-role/AmazonECSTaskExecutionRolePolicy
    """
    return Sub(f"arn:${{{AWS_PARTITION}}}:iam::aws:policy/{policy_name}")


class IRole(object):
    """
    Interface of new and imported roles
    """

    role_arn = None
    role_name = None

    def add_to_policy(self, statement: dict) -> None:
        raise NotImplementedError()


class Role(Construct, IRole):
    """
    New IAM Role

    :ivar troposphere.iam.Role cfn_resource:
    """

    def __init__(
        self,
        scope: Construct,
        construct_id: str,
        assumed_by: str,
        managed_policy_arns: list = None,
        role_name: str = None,
    ):
        super().__init__(scope, construct_id)
        self.assumed_by = assumed_by
        self.statements = []
        role_props = {
            "AssumeRolePolicyDocument": service_role_trust_policy(assumed_by),
        }
        if managed_policy_arns:
            role_props["ManagedPolicyArns"] = list(managed_policy_arns)
        if role_name:
            role_props["RoleName"] = role_name
        self.cfn_resource = self.add_cfn_resource(CfnRole, **role_props)
        self.role_arn = GetAtt(self.cfn_resource, "Arn")
        self.role_name = Ref(self.cfn_resource)

    def add_to_policy(self, statement: dict) -> None:
        """
        Adds the statement to the inline policy of the role, creating the policy if needed
        """
        if statement in self.statements:
            return
        self.statements.append(statement)
        self.cfn_resource.Policies = [
            Policy(
                PolicyName="DefaultPolicy",
                PolicyDocument={
                    "Version": POLICY_VERSION,
                    "Statement": self.statements,
                },
            )
        ]

    def add_managed_policy(self, policy_arn) -> None:
        policies = getattr(self.cfn_resource, "ManagedPolicyArns", [])
        if policy_arn not in policies:
            self.cfn_resource.ManagedPolicyArns = policies + [policy_arn]

    @staticmethod
    def from_role_arn(scope: Construct, construct_id: str, role_arn: str):
        return ImportedRole(scope, construct_id, role_arn)


class ImportedRole(Construct, IRole):
    """
    Existing IAM Role, identified by its ARN. Policies cannot be changed.
    """

    def __init__(self, scope: Construct, construct_id: str, role_arn: str):
        super().__init__(scope, construct_id)
        self.role_arn = role_arn
        self.role_name = role_arn.split("/")[-1] if isinstance(role_arn, str) else None

    def add_to_policy(self, statement: dict) -> None:
        LOG.warning(
            f"{self} - Role {self.role_arn} is imported. "
            f"Make sure it already grants {statement.get('Action')}"
        )
