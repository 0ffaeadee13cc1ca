"""
Resource assembler for the Cluster API AWS IAM bootstrap template.

:class:`Template` walks an :class:`AWSIAMConfigurationSpec` and produces a
:class:`ResourceMap` of users, groups, managed policies, roles and instance
profiles. References between resources are :class:`Ref` logical names,
so insertion order only affects emission order.
"""

from __future__ import annotations

from iamboot.base.config import AWSIAMConfigurationSpec, new_configuration
from iamboot.base.exceptions import ConfigurationError
from iamboot.base.logger import bind
from iamboot.base.naming import new_managed_name
from iamboot.base.policy import Statement
from iamboot.base.resources import (
    Group,
    IAMResource,
    InlinePolicy,
    InstanceProfile,
    ManagedPolicy,
    Ref,
    ResourceMap,
    Role,
    User,
)

from . import constants as c
from . import policies


class Template:
    """Bootstrap template for IAM users, policies and roles.

    Attributes:
        spec: The immutable configuration the template renders.
    """

    def __init__(self, spec: AWSIAMConfigurationSpec | None = None) -> None:
        """Initialise the template.

        Args:
            spec: Configuration to render. Defaults to a configuration
                holding only default values.

        Raises:
            ConfigurationError: If ``spec`` is not an
                :class:`AWSIAMConfigurationSpec`.
        """
        if spec is None:
            spec = new_configuration().spec
        if not isinstance(spec, AWSIAMConfigurationSpec):
            raise ConfigurationError(
                f"Template requires an AWSIAMConfigurationSpec, got {type(spec).__name__}"
            )
        self.spec = spec

    def new_managed_name(self, name: str) -> str:
        """Create an IAM name with this configuration's prefix and suffix."""
        return new_managed_name(self.spec.name_prefix, name, self.spec.name_suffix)

    def render(self) -> ResourceMap:
        """Assemble every resource the configuration asks for.

        Returns:
            A fresh resource map. Every reference in it resolves to a
            resource in the same map.

        Raises:
            DanglingReferenceError: If a reference does not resolve, which
                indicates a bug in the assembler rather than bad input.
        """
        log = bind("template", "render")
        resources = ResourceMap()

        def add(logical_name: str, resource: IAMResource) -> None:
            resources.add(logical_name, resource)
            kind = resource.kind  # type: ignore[attr-defined]
            log.debug(f"Added {kind} '{logical_name}'", resource=logical_name, kind=kind)

        spec = self.spec

        if spec.bootstrap_user.enable:
            add(c.AWS_IAM_USER_BOOTSTRAPPER, self._bootstrap_user())
            add(c.AWS_IAM_GROUP_BOOTSTRAPPER, Group(group_name=spec.bootstrap_user.group_name))

        add(c.CONTROLLERS_POLICY, ManagedPolicy(
            managed_policy_name=self.new_managed_name(c.CONTROLLERS_NAME),
            description="For the Kubernetes Cluster API Provider AWS Controllers",
            policy_document=policies.controllers_policy(spec),
            groups=self._controllers_policy_groups(),
            roles=self._controllers_policy_roles(),
        ))

        if not spec.control_plane.disable_cloud_provider_policy:
            add(c.CONTROL_PLANE_POLICY, ManagedPolicy(
                managed_policy_name=self.new_managed_name(c.CONTROL_PLANE_NAME),
                description="For the Kubernetes Cloud Provider AWS Control Plane",
                policy_document=policies.control_plane_policy(),
                roles=[Ref(logical_name=c.AWS_IAM_ROLE_CONTROL_PLANE)],
            ))

        if not spec.nodes.disable_cloud_provider_policy:
            add(c.NODE_POLICY, ManagedPolicy(
                managed_policy_name=self.new_managed_name(c.NODES_NAME),
                description="For the Kubernetes Cloud Provider AWS nodes",
                policy_document=policies.nodes_policy(),
                roles=[Ref(logical_name=c.AWS_IAM_ROLE_NODES)],
            ))

        if spec.control_plane.enable_csi_policy:
            add(c.CSI_POLICY, ManagedPolicy(
                managed_policy_name=self.new_managed_name(c.CSI_NAME),
                description="For the AWS EBS CSI Driver for Kubernetes",
                policy_document=policies.csi_policy(),
                roles=[Ref(logical_name=c.AWS_IAM_ROLE_CONTROL_PLANE)],
            ))

        add(c.AWS_IAM_ROLE_CONTROL_PLANE, Role(
            role_name=self.new_managed_name(c.CONTROL_PLANE_NAME),
            assume_role_policy_document=policies.ec2_assume_role_policy(
                spec.control_plane.trust_statements
            ),
            managed_policy_arns=list(spec.control_plane.extra_policy_attachments),
            policies=self._inline_policies(
                c.CONTROL_PLANE_NAME, spec.control_plane.extra_statements
            ),
            tags=dict(spec.control_plane.tags),
        ))

        add(c.AWS_IAM_ROLE_CONTROLLERS, Role(
            role_name=self.new_managed_name(c.CONTROLLERS_NAME),
            assume_role_policy_document=policies.ec2_assume_role_policy(
                spec.cluster_api_controllers.trust_statements
            ),
            tags=dict(spec.cluster_api_controllers.tags),
        ))

        add(c.AWS_IAM_ROLE_NODES, Role(
            role_name=self.new_managed_name(c.NODES_NAME),
            assume_role_policy_document=policies.ec2_assume_role_policy(
                spec.nodes.trust_statements
            ),
            managed_policy_arns=self._node_managed_policy_arns(),
            policies=self._inline_policies(c.NODES_NAME, spec.nodes.extra_statements),
            tags=dict(spec.nodes.tags),
        ))

        for logical_name, role, base in (
            (c.AWS_IAM_INSTANCE_PROFILE_CONTROL_PLANE, c.AWS_IAM_ROLE_CONTROL_PLANE, c.CONTROL_PLANE_NAME),
            (c.AWS_IAM_INSTANCE_PROFILE_CONTROLLERS, c.AWS_IAM_ROLE_CONTROLLERS, c.CONTROLLERS_NAME),
            (c.AWS_IAM_INSTANCE_PROFILE_NODES, c.AWS_IAM_ROLE_NODES, c.NODES_NAME),
        ):
            add(logical_name, InstanceProfile(
                instance_profile_name=self.new_managed_name(base),
                roles=[Ref(logical_name=role)],
            ))

        if not spec.managed_control_plane.disable:
            add(c.AWS_IAM_ROLE_EKS_CONTROL_PLANE, Role(
                role_name=c.DEFAULT_EKS_CONTROL_PLANE_ROLE,
                assume_role_policy_document=policies.eks_assume_role_policy(),
                managed_policy_arns=self._eks_control_plane_policy_arns(),
                tags=dict(spec.managed_control_plane.tags),
            ))

        resources.validate_references()
        log.info(f"Rendered {len(resources)} resources")
        return resources

    # --- helpers ---

    def _bootstrap_user(self) -> User:
        user = self.spec.bootstrap_user
        groups: list[Ref | str] = [Ref(logical_name=c.AWS_IAM_GROUP_BOOTSTRAPPER)]
        groups.extend(user.extra_groups)
        return User(
            user_name=user.user_name,
            groups=groups,
            # The user's own extra attachments, not the control plane's
            managed_policy_arns=list(user.extra_policy_attachments),
            policies=[
                InlinePolicy(
                    policy_name=user.user_name,
                    policy_document=policies.bootstrap_user_policy(self.spec),
                )
            ],
            tags=dict(user.tags),
        )

    def _controllers_policy_groups(self) -> list[Ref]:
        if not self.spec.bootstrap_user.enable:
            return []
        return [Ref(logical_name=c.AWS_IAM_GROUP_BOOTSTRAPPER)]

    def _controllers_policy_roles(self) -> list[Ref]:
        roles = [Ref(logical_name=c.AWS_IAM_ROLE_CONTROLLERS)]
        if not self.spec.control_plane.disable_cluster_api_controller_policy_attachment:
            roles.append(Ref(logical_name=c.AWS_IAM_ROLE_CONTROL_PLANE))
        return roles

    def _inline_policies(self, base: str, statements: list[Statement]) -> list[InlinePolicy]:
        # Only extra statements become inline policies; the catalogs are managed policies.
        if not statements:
            return []
        return [
            InlinePolicy(
                policy_name=self.new_managed_name(base),
                policy_document=policies.inline_policy_document(statements),
            )
        ]

    def _node_managed_policy_arns(self) -> list[str]:
        arns = list(self.spec.nodes.extra_policy_attachments)
        if self.spec.nodes.ec2_container_registry_read_only:
            arns.append(c.aws_managed_policy_arn(self.spec.partition, c.ECR_READ_ONLY_POLICY_NAME))
        return arns

    def _eks_control_plane_policy_arns(self) -> list[str]:
        arns = [c.aws_managed_policy_arn(self.spec.partition, c.EKS_CLUSTER_POLICY_NAME)]
        arns.extend(self.spec.managed_control_plane.extra_policy_attachments)
        return arns


def render(spec: AWSIAMConfigurationSpec | None = None) -> ResourceMap:
    """Shortcut for ``Template(spec).render()``."""
    return Template(spec).render()
