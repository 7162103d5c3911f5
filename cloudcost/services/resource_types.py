"""
Resource-type normalization.
Maps every accepted spelling of a resource type (plain ids, aliases, Pulumi
type tokens) to one closed set of service families.
"""
from enum import Enum
from typing import Dict, FrozenSet, Optional, Tuple

from cloudcost.services.errors import UnsupportedResourceTypeError


class ServiceFamily(str, Enum):
    """Resource families the engine can price."""
    EC2 = "ec2"
    EBS = "ebs"
    S3 = "s3"
    RDS = "rds"
    EKS = "eks"
    LAMBDA = "lambda"
    ELB = "elb"
    NATGW = "natgw"
    DYNAMODB = "dynamodb"
    CLOUDWATCH = "cloudwatch"
    ELASTICACHE = "elasticache"
    VPC = "vpc"
    SECURITY_GROUP = "securitygroup"
    SUBNET = "subnet"
    IAM = "iam"


# Families that report a carbon footprint metric
CARBON_FAMILIES: FrozenSet[ServiceFamily] = frozenset({
    ServiceFamily.EC2,
    ServiceFamily.RDS,
    ServiceFamily.LAMBDA,
    ServiceFamily.S3,
    ServiceFamily.EBS,
    ServiceFamily.EKS,
    ServiceFamily.DYNAMODB,
    ServiceFamily.ELASTICACHE,
})

# Families with no direct charge
ZERO_COST_FAMILIES: FrozenSet[ServiceFamily] = frozenset({
    ServiceFamily.VPC,
    ServiceFamily.SECURITY_GROUP,
    ServiceFamily.SUBNET,
    ServiceFamily.IAM,
})

# Global services: an empty region means "the region this process serves"
GLOBAL_FAMILIES: FrozenSet[ServiceFamily] = frozenset({ServiceFamily.S3, ServiceFamily.IAM})

# Lower-cased aliases; module/resource segments of Pulumi tokens are looked up here too
_ALIASES: Dict[str, ServiceFamily] = {
    "ec2": ServiceFamily.EC2,
    "instance": ServiceFamily.EC2,
    "ebs": ServiceFamily.EBS,
    "volume": ServiceFamily.EBS,
    "ec2/volume": ServiceFamily.EBS,
    "ebs/volume": ServiceFamily.EBS,
    "s3": ServiceFamily.S3,
    "bucket": ServiceFamily.S3,
    "bucketv2": ServiceFamily.S3,
    "rds": ServiceFamily.RDS,
    "rds/instance": ServiceFamily.RDS,
    "eks": ServiceFamily.EKS,
    "eks/cluster": ServiceFamily.EKS,
    "lambda": ServiceFamily.LAMBDA,
    "lambda/function": ServiceFamily.LAMBDA,
    "elb": ServiceFamily.ELB,
    "alb": ServiceFamily.ELB,
    "nlb": ServiceFamily.ELB,
    "lb": ServiceFamily.ELB,
    "lb/loadbalancer": ServiceFamily.ELB,
    "alb/loadbalancer": ServiceFamily.ELB,
    "elb/loadbalancer": ServiceFamily.ELB,
    "elasticloadbalancingv2/loadbalancer": ServiceFamily.ELB,
    "natgw": ServiceFamily.NATGW,
    "natgateway": ServiceFamily.NATGW,
    "nat_gateway": ServiceFamily.NATGW,
    "nat-gateway": ServiceFamily.NATGW,
    "ec2/natgateway": ServiceFamily.NATGW,
    "dynamodb": ServiceFamily.DYNAMODB,
    "dynamodb/table": ServiceFamily.DYNAMODB,
    "cloudwatch": ServiceFamily.CLOUDWATCH,
    "cloudwatch/loggroup": ServiceFamily.CLOUDWATCH,
    "cloudwatch/metricalarm": ServiceFamily.CLOUDWATCH,
    "elasticache": ServiceFamily.ELASTICACHE,
    "elasticache/cluster": ServiceFamily.ELASTICACHE,
    "elasticache/replicationgroup": ServiceFamily.ELASTICACHE,
    "vpc": ServiceFamily.VPC,
    "ec2/vpc": ServiceFamily.VPC,
    "securitygroup": ServiceFamily.SECURITY_GROUP,
    "security_group": ServiceFamily.SECURITY_GROUP,
    "ec2/securitygroup": ServiceFamily.SECURITY_GROUP,
    "subnet": ServiceFamily.SUBNET,
    "ec2/subnet": ServiceFamily.SUBNET,
    "iam": ServiceFamily.IAM,
}


def _from_pulumi_token(token: str) -> Optional[ServiceFamily]:
    """
    Resolve a Pulumi type token ("aws:ec2/instance:Instance").

    The "module/resource" segment is tried first, then the module alone.
    """
    parts = token.split(":")
    if len(parts) != 3 or parts[0] != "aws":
        return None
    module_path = parts[1]
    family = _ALIASES.get(module_path)
    if family is not None:
        return family

    module = module_path.split("/", 1)[0]
    if module == "iam":
        return ServiceFamily.IAM
    if module == "ec2":
        # Every other EC2-module resource we accept is the instance itself
        return ServiceFamily.EC2 if module_path == "ec2/instance" else None
    return _ALIASES.get(module)


def normalize_resource_type(resource_type: str, trace_id: str = "") -> ServiceFamily:
    """
    Normalize a resource type to its service family.

    Args:
        resource_type: "ec2", "alb", "aws:ec2/volume:Volume", ...

    Returns:
        ServiceFamily

    Raises:
        UnsupportedResourceTypeError: If the type is not recognized
    """
    text = (resource_type or "").strip().lower()
    if not text:
        raise UnsupportedResourceTypeError(resource_type or "", trace_id)

    family = _ALIASES.get(text)
    if family is None and ":" in text:
        family = _from_pulumi_token(text)
    if family is None:
        raise UnsupportedResourceTypeError(resource_type, trace_id)
    return family


def is_supported_resource_type(resource_type: str) -> bool:
    try:
        normalize_resource_type(resource_type)
    except UnsupportedResourceTypeError:
        return False
    return True


def split_pulumi_type(token: str) -> Optional[Tuple[str, str, str]]:
    """
    Split a Pulumi type token into (provider, module, resource).

    "aws:ec2/instance:Instance" -> ("aws", "ec2", "instance").
    Returns None unless the token has the "provider:module/resource:Type" shape.
    """
    parts = (token or "").strip().split(":")
    if len(parts) != 3 or not all(parts):
        return None
    module, _, resource = parts[1].partition("/")
    if not module or not resource:
        return None
    return parts[0].lower(), module.lower(), resource.lower()
