#  SPDX-License-Identifier: MPL-2.0
#  Copyright 2020-2022 John Mille <john@compose-x.io>

import pytest

from ecs_patterns.common.stack import App, Stack
from ecs_patterns.iam import Role, managed_policy_arn, service_role_trust_policy


@pytest.fixture
def stack():
    return Stack(App(), "iam")


def test_trust_policy():
    policy = service_role_trust_policy("ecs-tasks")
    statement = policy["Statement"][0]
    assert statement["Action"] == ["sts:AssumeRole"]
    assert statement["Principal"]["Service"][0].to_dict() == {
        "Fn::Sub": "ecs-tasks.${AWS::URLSuffix}"
    }


def test_role_policies(stack):
    role = Role(stack, "TaskRole", "ecs-tasks", role_name="app-task")
    statement = {"Effect": "Allow", "Action": ["s3:GetObject"], "Resource": "*"}
    role.add_to_policy(statement)
    role.add_to_policy(statement)
    managed = managed_policy_arn("ReadOnlyAccess")
    role.add_managed_policy(managed)
    role.add_managed_policy(managed)
    props = role.cfn_resource.to_dict()["Properties"]
    assert props["RoleName"] == "app-task"
    assert props["Policies"][0]["PolicyDocument"]["Statement"] == [statement]
    assert len(props["ManagedPolicyArns"]) == 1


def test_imported_role(stack):
    role = Role.from_role_arn(
        stack, "Imported", "arn:aws:iam::012345678912:role/path/backend"
    )
    assert role.role_name == "backend"
    role.add_to_policy({"Effect": "Allow", "Action": ["s3:GetObject"]})
    assert not stack.template.resources
