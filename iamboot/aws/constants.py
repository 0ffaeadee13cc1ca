"""Logical names, service principals and fixed ARNs used in the template."""

# Logical names (template resource keys)
AWS_IAM_USER_BOOTSTRAPPER = "AWSIAMUserBootstrapper"
AWS_IAM_GROUP_BOOTSTRAPPER = "AWSIAMGroupBootstrapper"
AWS_IAM_ROLE_CONTROL_PLANE = "AWSIAMRoleControlPlane"
AWS_IAM_ROLE_CONTROLLERS = "AWSIAMRoleControllers"
AWS_IAM_ROLE_NODES = "AWSIAMRoleNodes"
AWS_IAM_ROLE_EKS_CONTROL_PLANE = "AWSIAMRoleEKSControlPlane"
AWS_IAM_INSTANCE_PROFILE_CONTROL_PLANE = "AWSIAMInstanceProfileControlPlane"
AWS_IAM_INSTANCE_PROFILE_CONTROLLERS = "AWSIAMInstanceProfileControllers"
AWS_IAM_INSTANCE_PROFILE_NODES = "AWSIAMInstanceProfileNodes"

# Managed policy logical names, also accepted by ``print-policy``
CONTROLLERS_POLICY = "AWSIAMManagedPolicyControllers"
CONTROL_PLANE_POLICY = "AWSIAMManagedPolicyCloudProviderControlPlane"
NODE_POLICY = "AWSIAMManagedPolicyCloudProviderNodes"
CSI_POLICY = "AWSEBSCSIPolicyController"

# Semantic bases passed to the naming resolver
CONTROL_PLANE_NAME = "control-plane"
CONTROLLERS_NAME = "controllers"
NODES_NAME = "nodes"
CSI_NAME = "csi"

EC2_SERVICE_PRINCIPAL = "ec2.amazonaws.com"
EKS_SERVICE_PRINCIPAL = "eks.amazonaws.com"

# Role name the managed control plane controller expects to find
DEFAULT_EKS_CONTROL_PLANE_ROLE = "eks-controlplane.cluster-api-provider-aws.sigs.k8s.io"

EKS_CLUSTER_POLICY_NAME = "AmazonEKSClusterPolicy"
ECR_READ_ONLY_POLICY_NAME = "AmazonEC2ContainerRegistryReadOnly"


def aws_managed_policy_arn(partition: str, policy_name: str) -> str:
    """Return the ARN of an AWS-managed policy in ``partition``."""
    return f"arn:{partition}:iam::aws:policy/{policy_name}"
