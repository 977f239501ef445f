#  SPDX-License-Identifier: MPL-2.0
#  Copyright 2020-2022 John Mille <john@compose-x.io>

"""
Constants and defaults bound to ecs_patterns.ecs
The values are the ones expected by the AWS::ECS resources properties.
"""


class Protocol(object):
    """Protocol of a container port mapping"""

    TCP = "tcp"
    UDP = "udp"

    allowed = [TCP, UDP]


class NetworkMode(object):
    BRIDGE = "bridge"
    AWS_VPC = "awsvpc"
    HOST = "host"
    NONE = "none"

    allowed = [BRIDGE, AWS_VPC, HOST, NONE]


class Compatibility(object):
    """Launch types a task definition is compatible with"""

    EC2 = "EC2"
    FARGATE = "FARGATE"

    allowed = [EC2, FARGATE]


class PropagatedTagSource(object):
    SERVICE = "SERVICE"
    TASK_DEFINITION = "TASK_DEFINITION"
    NONE = "NONE"

    allowed = [SERVICE, TASK_DEFINITION, NONE]


DEFAULT_CONTAINER_NAME = "web"
DEFAULT_CONTAINER_PORT = 80
DEFAULT_DESIRED_COUNT = 1
DEFAULT_HEALTH_CHECK_GRACE_PERIOD = 60

EPHEMERAL_PORT_RANGE = (32768, 65535)

FARGATE_DEFAULT_CPU = 256
FARGATE_DEFAULT_MEMORY = 512

FARGATE_CPU_MEMORY = {
    256: [512, 1024, 2048],
    512: [1024 * i for i in range(1, 5)],
    1024: [1024 * i for i in range(2, 9)],
    2048: [1024 * i for i in range(4, 17)],
    4096: [1024 * i for i in range(8, 31)],
}

TASK_EXECUTION_POLICY = "service-role/AmazonECSTaskExecutionRolePolicy"
EC2_INSTANCE_POLICY = "service-role/AmazonEC2ContainerServiceforEC2Role"
ECS_TASKS_PRINCIPAL = "ecs-tasks"
EC2_PRINCIPAL = "ec2"

ECS_OPTIMIZED_AMI_PARAMETER_T = "SsmParameterValueEcsOptimizedAmi"
ECS_OPTIMIZED_AMI_PATH = "/aws/service/ecs/optimized-ami/amazon-linux-2/recommended/image_id"
AMI_FROM_SSM_TYPE = "AWS::SSM::Parameter::Value<AWS::EC2::Image::Id>"

DEFAULT_CLUSTER_ID = "EcsDefaultClusterMnL3mNNYN"

AWSLOGS_DRIVER = "awslogs"
DEFAULT_LOG_RETENTION_DAYS = 30
