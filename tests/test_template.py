"""Tests for the IAM bootstrap template assembler."""

import logging

import pytest

from iamboot.aws import constants as c
from iamboot.aws import policies
from iamboot.aws.template import Template, render
from iamboot.base.config import (
    AWSIAMConfigurationSpec,
    BootstrapUser,
    ControlPlane,
    EKSConfig,
    Nodes,
)
from iamboot.base.exceptions import (
    ConfigurationError,
    DanglingReferenceError,
    DuplicateResourceError,
)
from iamboot.base.logger import get_logger
from iamboot.base.policy import Statement
from iamboot.base.resources import (
    Group,
    InstanceProfile,
    ManagedPolicy,
    Ref,
    ResourceMap,
    Role,
    User,
)

ALWAYS_PRESENT_ROLES = {
    c.AWS_IAM_ROLE_CONTROL_PLANE,
    c.AWS_IAM_ROLE_CONTROLLERS,
    c.AWS_IAM_ROLE_NODES,
}

ALL_TOGGLES = [
    {},
    {"bootstrap_user": BootstrapUser(enable=True)},
    {"control_plane": ControlPlane(disable_cloud_provider_policy=True, enable_csi_policy=True)},
    {"nodes": Nodes(disable_cloud_provider_policy=True)},
    {"managed_control_plane": EKSConfig(disable=True)},
    {
        "bootstrap_user": BootstrapUser(enable=True),
        "control_plane": ControlPlane(
            enable_csi_policy=True,
            disable_cluster_api_controller_policy_attachment=True,
        ),
        "nodes": Nodes(disable_cloud_provider_policy=True),
        "managed_control_plane": EKSConfig(disable=True),
    },
]


def _spec(**kwargs):
    return AWSIAMConfigurationSpec(**kwargs)


class TestDefaultTemplate:
    def test_resource_names(self):
        resources = Template().render()
        assert list(resources) == [
            c.CONTROLLERS_POLICY,
            c.CONTROL_PLANE_POLICY,
            c.NODE_POLICY,
            c.AWS_IAM_ROLE_CONTROL_PLANE,
            c.AWS_IAM_ROLE_CONTROLLERS,
            c.AWS_IAM_ROLE_NODES,
            c.AWS_IAM_INSTANCE_PROFILE_CONTROL_PLANE,
            c.AWS_IAM_INSTANCE_PROFILE_CONTROLLERS,
            c.AWS_IAM_INSTANCE_PROFILE_NODES,
            c.AWS_IAM_ROLE_EKS_CONTROL_PLANE,
        ]

    def test_managed_names(self):
        resources = Template().render()
        assert resources[c.AWS_IAM_ROLE_NODES].role_name == (
            "nodes.cluster-api-provider-aws.sigs.k8s.io"
        )
        assert resources[c.CONTROLLERS_POLICY].managed_policy_name == (
            "controllers.cluster-api-provider-aws.sigs.k8s.io"
        )

    def test_prefix_and_suffix(self):
        template = Template(_spec(name_prefix="test-", name_suffix=".cluster-api"))
        assert template.new_managed_name("nodes") == "test-nodes.cluster-api"
        resources = template.render()
        assert resources[c.AWS_IAM_INSTANCE_PROFILE_NODES].instance_profile_name == (
            "test-nodes.cluster-api"
        )

    def test_controllers_policy_attachments(self):
        policy = Template().render()[c.CONTROLLERS_POLICY]
        assert policy.groups == []
        assert policy.roles == [
            Ref(logical_name=c.AWS_IAM_ROLE_CONTROLLERS),
            Ref(logical_name=c.AWS_IAM_ROLE_CONTROL_PLANE),
        ]

    def test_roles_trust_ec2(self):
        resources = Template().render()
        for name in ALWAYS_PRESENT_ROLES:
            trust = resources[name].assume_role_policy_document
            assert trust.statements[0].principal == {"Service": ["ec2.amazonaws.com"]}
            assert trust.statements[0].actions == ["sts:AssumeRole"]

    def test_no_inline_policies_without_extra_statements(self):
        resources = Template().render()
        assert resources[c.AWS_IAM_ROLE_CONTROL_PLANE].policies == []
        assert resources[c.AWS_IAM_ROLE_NODES].policies == []

    def test_invalid_spec_type(self):
        with pytest.raises(ConfigurationError):
            Template({"namePrefix": "x"})


class TestInvariants:
    @pytest.mark.parametrize("kwargs", ALL_TOGGLES)
    def test_three_roles_and_profiles(self, kwargs):
        resources = render(_spec(**kwargs))
        roles = resources.of_kind("Role")
        assert ALWAYS_PRESENT_ROLES <= set(roles)
        assert set(roles) - ALWAYS_PRESENT_ROLES <= {c.AWS_IAM_ROLE_EKS_CONTROL_PLANE}

        profiles = resources.of_kind("InstanceProfile")
        assert len(profiles) == 3
        targets = {p.roles[0].logical_name for p in profiles.values()}
        assert targets == ALWAYS_PRESENT_ROLES
        for profile in profiles.values():
            assert len(profile.roles) == 1
            assert isinstance(resources[profile.roles[0].logical_name], Role)

    @pytest.mark.parametrize("kwargs", ALL_TOGGLES)
    def test_references_resolve(self, kwargs):
        resources = render(_spec(**kwargs))
        for _, ref in resources.references():
            assert ref.logical_name in resources

    @pytest.mark.parametrize("kwargs", ALL_TOGGLES)
    def test_deterministic(self, kwargs):
        first = render(_spec(**kwargs))
        second = render(_spec(**kwargs))
        assert list(first) == list(second)
        assert first == second
        assert first is not second

    def test_mutating_output_leaves_catalog_alone(self):
        node_policy = render()[c.NODE_POLICY]
        node_policy.policy_document.statements[0].actions.append("iam:*")
        assert "iam:*" not in policies.CLOUD_PROVIDER_NODE_STATEMENTS[0].actions
        fresh = render()[c.NODE_POLICY].policy_document
        assert fresh.statements == list(policies.CLOUD_PROVIDER_NODE_STATEMENTS)

    def test_mutating_output_leaves_config_alone(self):
        extra = Statement(actions=["s3:GetObject"], resources=["*"])
        spec = _spec(nodes=Nodes(extra_statements=[extra]))
        role = render(spec)[c.AWS_IAM_ROLE_NODES]
        role.policies[0].policy_document.statements[0].actions.append("iam:*")
        assert spec.nodes.extra_statements[0].actions == ["s3:GetObject"]
        assert render(spec) == render(spec)


class TestBootstrapUser:
    def test_disabled_has_no_user_or_group(self):
        resources = render(_spec(bootstrap_user=BootstrapUser(enable=False, user_name="x")))
        assert resources.of_kind("User") == {}
        assert resources.of_kind("Group") == {}

    def test_ignores_control_plane_attachments(self):
        resources = render(_spec(
            bootstrap_user=BootstrapUser(enable=True),
            control_plane=ControlPlane(extra_policy_attachments=["arn:aws:iam::123456789012:policy/cp"]),
        ))
        assert resources[c.AWS_IAM_USER_BOOTSTRAPPER].managed_policy_arns == []

    def test_enabled(self):
        extra = Statement(actions=["s3:ListBucket"], resources=["*"])
        resources = render(_spec(bootstrap_user=BootstrapUser(
            enable=True,
            user_name="bootstrapper",
            group_name="bootstrappers",
            extra_groups=["admins"],
            extra_policy_attachments=["arn:aws:iam::aws:policy/ReadOnlyAccess"],
            extra_statements=[extra],
            tags={"owner": "platform"},
        )))
        user = resources[c.AWS_IAM_USER_BOOTSTRAPPER]
        assert isinstance(user, User)
        assert user.user_name == "bootstrapper"
        assert user.groups == [Ref(logical_name=c.AWS_IAM_GROUP_BOOTSTRAPPER), "admins"]
        assert user.managed_policy_arns == ["arn:aws:iam::aws:policy/ReadOnlyAccess"]
        assert user.tags == {"owner": "platform"}
        assert len(user.policies) == 1
        assert user.policies[0].policy_name == "bootstrapper"
        assert user.policies[0].policy_document.statements[-1] == extra

        group = resources[c.AWS_IAM_GROUP_BOOTSTRAPPER]
        assert group == Group(group_name="bootstrappers")

    def test_controllers_policy_attached_to_group(self):
        resources = render(_spec(bootstrap_user=BootstrapUser(enable=True)))
        assert resources[c.CONTROLLERS_POLICY].groups == [
            Ref(logical_name=c.AWS_IAM_GROUP_BOOTSTRAPPER)
        ]


class TestControlPlaneToggles:
    def test_disable_cloud_provider_policy_removes_only_that_policy(self):
        base = render(_spec())
        toggled = render(_spec(control_plane=ControlPlane(disable_cloud_provider_policy=True)))
        assert set(base) - set(toggled) == {c.CONTROL_PLANE_POLICY}
        assert set(toggled) <= set(base)
        for name in toggled:
            assert toggled[name] == base[name]
        attached_to_control_plane = [
            name
            for name, policy in toggled.of_kind("ManagedPolicy").items()
            if Ref(logical_name=c.AWS_IAM_ROLE_CONTROL_PLANE) in policy.roles
        ]
        assert attached_to_control_plane == [c.CONTROLLERS_POLICY]

    def test_enable_csi_adds_one_policy(self):
        base = render(_spec())
        toggled = render(_spec(control_plane=ControlPlane(enable_csi_policy=True)))
        assert set(toggled) - set(base) == {c.CSI_POLICY}
        csi = toggled[c.CSI_POLICY]
        assert isinstance(csi, ManagedPolicy)
        assert csi.managed_policy_name == "csi.cluster-api-provider-aws.sigs.k8s.io"
        assert csi.roles == [Ref(logical_name=c.AWS_IAM_ROLE_CONTROL_PLANE)]

    def test_csi_idempotent(self):
        spec = _spec(control_plane=ControlPlane(enable_csi_policy=True))
        assert render(spec) == render(spec)

    def test_disable_controller_policy_attachment(self):
        resources = render(_spec(control_plane=ControlPlane(
            disable_cluster_api_controller_policy_attachment=True
        )))
        assert resources[c.CONTROLLERS_POLICY].roles == [
            Ref(logical_name=c.AWS_IAM_ROLE_CONTROLLERS)
        ]

    def test_extra_attachments_statements_and_tags(self):
        extra = Statement(actions=["logs:PutLogEvents"], resources=["*"])
        trust = Statement(
            principal={"AWS": ["arn:aws:iam::123456789012:root"]},
            actions=["sts:AssumeRole"],
        )
        resources = render(_spec(control_plane=ControlPlane(
            extra_policy_attachments=["arn:aws:iam::123456789012:policy/extra"],
            extra_statements=[extra],
            trust_statements=[trust],
            tags={"env": "dev"},
        )))
        role = resources[c.AWS_IAM_ROLE_CONTROL_PLANE]
        assert role.managed_policy_arns == ["arn:aws:iam::123456789012:policy/extra"]
        assert role.tags == {"env": "dev"}
        assert role.policies[0].policy_name == "control-plane.cluster-api-provider-aws.sigs.k8s.io"
        assert role.policies[0].policy_document.statements == [extra]
        assert role.assume_role_policy_document.statements[1] == trust


class TestNodesToggles:
    def test_disable_cloud_provider_policy(self):
        resources = render(_spec(nodes=Nodes(disable_cloud_provider_policy=True)))
        assert c.NODE_POLICY not in resources
        assert c.AWS_IAM_ROLE_NODES in resources

    def test_ecr_read_only(self):
        resources = render(_spec(
            partition="aws-us-gov",
            nodes=Nodes(
                extra_policy_attachments=["arn:aws-us-gov:iam::123456789012:policy/extra"],
                ec2_container_registry_read_only=True,
            ),
        ))
        assert resources[c.AWS_IAM_ROLE_NODES].managed_policy_arns == [
            "arn:aws-us-gov:iam::123456789012:policy/extra",
            "arn:aws-us-gov:iam::aws:policy/AmazonEC2ContainerRegistryReadOnly",
        ]


class TestManagedControlPlane:
    def test_default_role(self):
        role = render(_spec())[c.AWS_IAM_ROLE_EKS_CONTROL_PLANE]
        assert role.role_name == "eks-controlplane.cluster-api-provider-aws.sigs.k8s.io"
        assert role.assume_role_policy_document.statements[0].principal == {
            "Service": ["eks.amazonaws.com"]
        }
        assert role.managed_policy_arns == ["arn:aws:iam::aws:policy/AmazonEKSClusterPolicy"]

    def test_fixed_name_ignores_prefix(self):
        role = render(_spec(name_prefix="p-"))[c.AWS_IAM_ROLE_EKS_CONTROL_PLANE]
        assert role.role_name == c.DEFAULT_EKS_CONTROL_PLANE_ROLE

    def test_extra_attachments(self):
        role = render(_spec(managed_control_plane=EKSConfig(
            extra_policy_attachments=["arn:aws:iam::aws:policy/AmazonEKSVPCResourceController"],
            tags={"k": "v"},
        )))[c.AWS_IAM_ROLE_EKS_CONTROL_PLANE]
        assert role.managed_policy_arns == [
            "arn:aws:iam::aws:policy/AmazonEKSClusterPolicy",
            "arn:aws:iam::aws:policy/AmazonEKSVPCResourceController",
        ]
        assert role.tags == {"k": "v"}

    def test_disable_removes_only_eks_role(self):
        base = render(_spec())
        toggled = render(_spec(managed_control_plane=EKSConfig(disable=True)))
        assert c.AWS_IAM_ROLE_EKS_CONTROL_PLANE not in toggled
        assert len(toggled.of_kind("Role")) == 3
        for name in ALWAYS_PRESENT_ROLES:
            assert toggled[name] == base[name]


class TestResourceMap:
    def test_duplicate_logical_name(self):
        resources = ResourceMap()
        resources.add("G", Group(group_name="g"))
        with pytest.raises(DuplicateResourceError):
            resources.add("G", Group(group_name="other"))

    def test_dangling_reference(self):
        resources = ResourceMap()
        resources.add("Profile", InstanceProfile(
            instance_profile_name="p", roles=[Ref(logical_name="MissingRole")]
        ))
        with pytest.raises(DanglingReferenceError, match="MissingRole"):
            resources.validate_references()

    def test_forward_reference_allowed(self):
        resources = ResourceMap()
        resources.add("Profile", InstanceProfile(
            instance_profile_name="p", roles=[Ref(logical_name="R")]
        ))
        resources.add("R", Role(
            role_name="r",
            assume_role_policy_document=Template().render()[c.AWS_IAM_ROLE_NODES].assume_role_policy_document,
        ))
        resources.validate_references()
        assert list(resources.references()) == [("Profile", Ref(logical_name="R"))]


class TestRenderLogging:
    @pytest.fixture
    def debug_records(self, caplog):
        get_logger()
        caplog.set_level(logging.DEBUG, logger="iamboot")
        return caplog

    def test_each_resource_logged(self, debug_records):
        resources = render(_spec())
        added = [r for r in debug_records.records if r.levelno == logging.DEBUG]
        assert [r.resource for r in added] == list(resources)
        assert {r.kind for r in added} == {"ManagedPolicy", "Role", "InstanceProfile"}
        assert debug_records.records[-1].getMessage() == "Rendered 10 resources"

    def test_one_request_id_per_render(self, debug_records):
        render(_spec())
        render(_spec())
        ids = [r.request_id for r in debug_records.records]
        assert len(set(ids)) == 2
        assert all(r.component == "template" and r.operation == "render" for r in debug_records.records)
