"""
Permission catalogs for the Cluster API AWS provider.

The catalogs are fixed, module-level tuples of statements. The builder
functions below only select, combine and parameterise them; they never
invent statements at runtime. Statement order is significant for
reproducible output and is kept exactly as declared.
"""

from __future__ import annotations

from typing import Any, Callable, Iterable

from iamboot.base.config import AWSIAMConfigurationSpec
from iamboot.base.exceptions import UnknownPolicyDocumentError
from iamboot.base.naming import new_managed_name
from iamboot.base.policy import PolicyDocument, Statement, build_trust_policy

from . import constants as c


def _allow(
    actions: Iterable[str],
    resources: Iterable[str] = ("*",),
    condition: dict[str, dict[str, Any]] | None = None,
) -> Statement:
    return Statement(
        effect="Allow",
        actions=list(actions),
        resources=list(resources),
        condition=condition,
    )


def _service_linked_role(service: str, role: str) -> Statement:
    return _allow(
        ["iam:CreateServiceLinkedRole"],
        [f"arn:*:iam::*:role/aws-service-role/{service}/{role}"],
        {"StringLike": {"iam:AWSServiceName": service}},
    )


CLUSTER_SECRETS_ARN = "arn:*:secretsmanager:*:*:secret:aws.cluster.x-k8s.io/*"

CONTROLLERS_STATEMENTS: tuple[Statement, ...] = (
    _allow([
        "ec2:AllocateAddress",
        "ec2:AssociateRouteTable",
        "ec2:AttachInternetGateway",
        "ec2:AuthorizeSecurityGroupIngress",
        "ec2:CreateInternetGateway",
        "ec2:CreateNatGateway",
        "ec2:CreateRoute",
        "ec2:CreateRouteTable",
        "ec2:CreateSecurityGroup",
        "ec2:CreateSubnet",
        "ec2:CreateTags",
        "ec2:CreateVpc",
        "ec2:ModifyVpcAttribute",
        "ec2:DeleteInternetGateway",
        "ec2:DeleteNatGateway",
        "ec2:DeleteRouteTable",
        "ec2:DeleteSecurityGroup",
        "ec2:DeleteSubnet",
        "ec2:DeleteTags",
        "ec2:DeleteVpc",
        "ec2:DescribeAccountAttributes",
        "ec2:DescribeAddresses",
        "ec2:DescribeAvailabilityZones",
        "ec2:DescribeInstances",
        "ec2:DescribeInternetGateways",
        "ec2:DescribeImages",
        "ec2:DescribeNatGateways",
        "ec2:DescribeNetworkInterfaces",
        "ec2:DescribeNetworkInterfaceAttribute",
        "ec2:DescribeRouteTables",
        "ec2:DescribeSecurityGroups",
        "ec2:DescribeSubnets",
        "ec2:DescribeVpcs",
        "ec2:DescribeVpcAttribute",
        "ec2:DescribeVolumes",
        "ec2:DetachInternetGateway",
        "ec2:DisassociateRouteTable",
        "ec2:DisassociateAddress",
        "ec2:ModifyInstanceAttribute",
        "ec2:ModifyNetworkInterfaceAttribute",
        "ec2:ModifySubnetAttribute",
        "ec2:ReleaseAddress",
        "ec2:RevokeSecurityGroupIngress",
        "ec2:RunInstances",
        "ec2:TerminateInstances",
        "tag:GetResources",
        "elasticloadbalancing:AddTags",
        "elasticloadbalancing:CreateLoadBalancer",
        "elasticloadbalancing:ConfigureHealthCheck",
        "elasticloadbalancing:DeleteLoadBalancer",
        "elasticloadbalancing:DescribeLoadBalancers",
        "elasticloadbalancing:DescribeLoadBalancerAttributes",
        "elasticloadbalancing:DescribeTags",
        "elasticloadbalancing:ModifyLoadBalancerAttributes",
        "elasticloadbalancing:RegisterInstancesWithLoadBalancer",
        "elasticloadbalancing:DeregisterInstancesFromLoadBalancer",
        "elasticloadbalancing:RemoveTags",
        "autoscaling:DescribeAutoScalingGroups",
        "autoscaling:DescribeInstanceRefreshes",
        "ec2:CreateLaunchTemplate",
        "ec2:CreateLaunchTemplateVersion",
        "ec2:DescribeLaunchTemplates",
        "ec2:DescribeLaunchTemplateVersions",
        "ec2:DeleteLaunchTemplate",
        "ec2:DeleteLaunchTemplateVersions",
    ]),
    _allow(
        [
            "autoscaling:CreateAutoScalingGroup",
            "autoscaling:UpdateAutoScalingGroup",
            "autoscaling:CreateOrUpdateTags",
            "autoscaling:StartInstanceRefresh",
            "autoscaling:DeleteAutoScalingGroup",
            "autoscaling:DeleteTags",
        ],
        ["arn:*:autoscaling:*:*:autoScalingGroup:*:autoScalingGroupName/*"],
    ),
    _service_linked_role("autoscaling.amazonaws.com", "AWSServiceRoleForAutoScaling"),
    _service_linked_role(
        "elasticloadbalancing.amazonaws.com", "AWSServiceRoleForElasticLoadBalancing"
    ),
    _service_linked_role("spot.amazonaws.com", "AWSServiceRoleForEC2Spot"),
    _allow(
        [
            "secretsmanager:CreateSecret",
            "secretsmanager:DeleteSecret",
            "secretsmanager:TagResource",
        ],
        [CLUSTER_SECRETS_ARN],
    ),
)

CONTROLLERS_EKS_STATEMENTS: tuple[Statement, ...] = (
    _allow(
        ["ssm:GetParameter"],
        ["arn:*:ssm:*:*:parameter/aws/service/eks/optimized-ami/*"],
    ),
    _service_linked_role("eks.amazonaws.com", "AWSServiceRoleForAmazonEKS"),
    _service_linked_role("eks-nodegroup.amazonaws.com", "AWSServiceRoleForAmazonEKSNodegroup"),
    _allow(
        ["iam:ListAttachedRolePolicies", "iam:GetRole"],
        ["arn:*:iam::*:role/*"],
    ),
    _allow(
        ["iam:PassRole"],
        ["*"],
        {"StringEquals": {"iam:PassedToService": "eks.amazonaws.com"}},
    ),
    _allow(
        [
            "eks:DescribeCluster",
            "eks:ListClusters",
            "eks:CreateCluster",
            "eks:TagResource",
            "eks:UpdateClusterVersion",
            "eks:ListTagsForResource",
            "eks:UpdateClusterConfig",
            "eks:DeleteCluster",
            "eks:DescribeUpdate",
            "eks:UntagResource",
            "eks:DescribeNodegroup",
            "eks:ListNodegroups",
            "eks:CreateNodegroup",
            "eks:UpdateNodegroupConfig",
            "eks:UpdateNodegroupVersion",
            "eks:DeleteNodegroup",
        ],
        ["arn:*:eks:*:*:cluster/*", "arn:*:eks:*:*:nodegroup/*/*/*"],
    ),
    _allow(
        ["kms:CreateGrant", "kms:DescribeKey"],
        ["*"],
        {"ForAnyValue:StringLike": {"kms:ResourceAliases": "alias/cluster-api-provider-aws-*"}},
    ),
)

CONTROLLERS_IAM_ROLE_CREATION_STATEMENTS: tuple[Statement, ...] = (
    _allow(
        [
            "iam:DetachRolePolicy",
            "iam:GetPolicy",
            "iam:DeleteRole",
            "iam:CreateRole",
            "iam:ListAttachedRolePolicies",
            "iam:AttachRolePolicy",
        ],
        ["arn:*:iam::*:role/*"],
    ),
)

CLOUD_PROVIDER_CONTROL_PLANE_STATEMENTS: tuple[Statement, ...] = (
    _allow([
        "autoscaling:DescribeAutoScalingGroups",
        "autoscaling:DescribeLaunchConfigurations",
        "autoscaling:DescribeTags",
        "ec2:DescribeInstances",
        "ec2:DescribeImages",
        "ec2:DescribeRegions",
        "ec2:DescribeRouteTables",
        "ec2:DescribeSecurityGroups",
        "ec2:DescribeSubnets",
        "ec2:DescribeVolumes",
        "ec2:CreateSecurityGroup",
        "ec2:CreateTags",
        "ec2:CreateVolume",
        "ec2:ModifyInstanceAttribute",
        "ec2:ModifyVolume",
        "ec2:AttachVolume",
        "ec2:AuthorizeSecurityGroupIngress",
        "ec2:CreateRoute",
        "ec2:DeleteRoute",
        "ec2:DeleteSecurityGroup",
        "ec2:DeleteVolume",
        "ec2:DetachVolume",
        "ec2:RevokeSecurityGroupIngress",
        "ec2:DescribeVpcs",
        "elasticloadbalancing:AddTags",
        "elasticloadbalancing:AttachLoadBalancerToSubnets",
        "elasticloadbalancing:ApplySecurityGroupsToLoadBalancer",
        "elasticloadbalancing:CreateLoadBalancer",
        "elasticloadbalancing:CreateLoadBalancerPolicy",
        "elasticloadbalancing:CreateLoadBalancerListeners",
        "elasticloadbalancing:ConfigureHealthCheck",
        "elasticloadbalancing:DeleteLoadBalancer",
        "elasticloadbalancing:DeleteLoadBalancerListeners",
        "elasticloadbalancing:DescribeLoadBalancers",
        "elasticloadbalancing:DescribeLoadBalancerAttributes",
        "elasticloadbalancing:DetachLoadBalancerFromSubnets",
        "elasticloadbalancing:DeregisterInstancesFromLoadBalancer",
        "elasticloadbalancing:ModifyLoadBalancerAttributes",
        "elasticloadbalancing:RegisterInstancesWithLoadBalancer",
        "elasticloadbalancing:SetLoadBalancerPoliciesForBackendServer",
        "elasticloadbalancing:CreateListener",
        "elasticloadbalancing:CreateTargetGroup",
        "elasticloadbalancing:DeleteListener",
        "elasticloadbalancing:DeleteTargetGroup",
        "elasticloadbalancing:DescribeListeners",
        "elasticloadbalancing:DescribeLoadBalancerPolicies",
        "elasticloadbalancing:DescribeTargetGroups",
        "elasticloadbalancing:DescribeTargetHealth",
        "elasticloadbalancing:ModifyListener",
        "elasticloadbalancing:ModifyTargetGroup",
        "elasticloadbalancing:RegisterTargets",
        "elasticloadbalancing:SetLoadBalancerPoliciesOfListener",
        "iam:CreateServiceLinkedRole",
        "kms:DescribeKey",
    ]),
)

CLOUD_PROVIDER_NODE_STATEMENTS: tuple[Statement, ...] = (
    _allow([
        "ec2:DescribeInstances",
        "ec2:DescribeRegions",
        "ecr:GetAuthorizationToken",
        "ecr:BatchCheckLayerAvailability",
        "ecr:GetDownloadUrlForLayer",
        "ecr:GetRepositoryPolicy",
        "ecr:DescribeRepositories",
        "ecr:ListImages",
        "ecr:BatchGetImage",
    ]),
    _allow(
        ["secretsmanager:DeleteSecret", "secretsmanager:GetSecretValue"],
        [CLUSTER_SECRETS_ARN],
    ),
    _allow([
        "ssm:UpdateInstanceInformation",
        "ssmmessages:CreateControlChannel",
        "ssmmessages:CreateDataChannel",
        "ssmmessages:OpenControlChannel",
        "ssmmessages:OpenDataChannel",
        "s3:GetEncryptionConfiguration",
    ]),
)

CSI_STATEMENTS: tuple[Statement, ...] = (
    _allow([
        "ec2:AttachVolume",
        "ec2:CreateSnapshot",
        "ec2:CreateTags",
        "ec2:CreateVolume",
        "ec2:DeleteSnapshot",
        "ec2:DeleteTags",
        "ec2:DeleteVolume",
        "ec2:DescribeAvailabilityZones",
        "ec2:DescribeInstances",
        "ec2:DescribeSnapshots",
        "ec2:DescribeTags",
        "ec2:DescribeVolumes",
        "ec2:DescribeVolumesModifications",
        "ec2:DetachVolume",
        "ec2:ModifyVolume",
    ]),
)

# Lets the bootstrap user rotate its own access keys.
BOOTSTRAP_USER_STATEMENTS: tuple[Statement, ...] = (
    _allow(
        [
            "iam:GetUser",
            "iam:ListAccessKeys",
            "iam:CreateAccessKey",
            "iam:UpdateAccessKey",
            "iam:DeleteAccessKey",
        ],
        ["arn:*:iam::*:user/${aws:username}"],
    ),
)


def ec2_assume_role_policy(extra_statements: Iterable[Statement] = ()) -> PolicyDocument:
    return build_trust_policy(c.EC2_SERVICE_PRINCIPAL, extra_statements)


def eks_assume_role_policy() -> PolicyDocument:
    return build_trust_policy(c.EKS_SERVICE_PRINCIPAL)


def allowed_ec2_instance_profiles(spec: AWSIAMConfigurationSpec) -> list[str]:
    """Return the role ARNs the controllers may pass to EC2 instances.

    Defaults to every role matching the managed name pattern.
    """
    profiles = spec.cluster_api_controllers.allowed_ec2_instance_profiles
    if profiles is None:
        profiles = [new_managed_name(spec.name_prefix, "*", spec.name_suffix)]
    return [f"arn:{spec.partition}:iam::*:role/{p}" for p in profiles]


def controllers_policy(spec: AWSIAMConfigurationSpec) -> PolicyDocument:
    """Build the Cluster API controllers policy.

    The instance profile ``iam:PassRole`` statement is inserted after the
    service-linked role grants. EKS statements follow unless the managed
    control plane is disabled, then the role creation statements when
    enabled for EKS.
    """
    statements = list(CONTROLLERS_STATEMENTS[:-1])
    statements.append(_allow(["iam:PassRole"], allowed_ec2_instance_profiles(spec)))
    statements.append(CONTROLLERS_STATEMENTS[-1])
    eks = spec.managed_control_plane
    if not eks.disable:
        statements.extend(CONTROLLERS_EKS_STATEMENTS)
        if eks.allow_iam_role_creation:
            statements.extend(CONTROLLERS_IAM_ROLE_CREATION_STATEMENTS)
    return PolicyDocument(statements=statements)


def control_plane_policy() -> PolicyDocument:
    return PolicyDocument(statements=list(CLOUD_PROVIDER_CONTROL_PLANE_STATEMENTS))


def nodes_policy() -> PolicyDocument:
    return PolicyDocument(statements=list(CLOUD_PROVIDER_NODE_STATEMENTS))


def csi_policy() -> PolicyDocument:
    return PolicyDocument(statements=list(CSI_STATEMENTS))


def bootstrap_user_policy(spec: AWSIAMConfigurationSpec) -> PolicyDocument:
    """Bootstrap user catalog followed by the user's extra statements."""
    statements = list(BOOTSTRAP_USER_STATEMENTS)
    statements.extend(spec.bootstrap_user.extra_statements)
    return PolicyDocument(statements=statements)


def inline_policy_document(statements: Iterable[Statement]) -> PolicyDocument:
    return PolicyDocument(statements=list(statements))


# Managed policy documents by logical name, for ``print-policy``
POLICY_DOCUMENTS: dict[str, Callable[[AWSIAMConfigurationSpec], PolicyDocument]] = {
    c.CONTROLLERS_POLICY: controllers_policy,
    c.CONTROL_PLANE_POLICY: lambda spec: control_plane_policy(),
    c.NODE_POLICY: lambda spec: nodes_policy(),
    c.CSI_POLICY: lambda spec: csi_policy(),
}


def policy_document(name: str, spec: AWSIAMConfigurationSpec) -> PolicyDocument:
    """Look up and build a managed policy document by logical name.

    Raises:
        UnknownPolicyDocumentError: If ``name`` is not registered.
    """
    builder = POLICY_DOCUMENTS.get(name)
    if builder is None:
        raise UnknownPolicyDocumentError(
            f"Unknown policy document '{name}'. "
            f"Choose one of: {', '.join(POLICY_DOCUMENTS)}"
        )
    return builder(spec)
