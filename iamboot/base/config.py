"""
Pydantic models for the IAM bootstrap configuration.

The configuration is read once, merged with defaults and frozen. Field
names are snake_case in Python; the YAML document uses the camelCase keys
of the ``AWSIAMConfiguration`` kind. Bad values are rejected at load time
instead of surfacing as a half-rendered template.
"""

from __future__ import annotations

from pathlib import Path
from typing import Any, Literal

import yaml
from pydantic import BaseModel, ConfigDict, Field, ValidationError, model_validator
from pydantic.alias_generators import to_camel

from .exceptions import ConfigurationError
from .policy import Statement

API_VERSION = "bootstrap.aws.infrastructure.cluster.x-k8s.io/v1alpha1"
KIND = "AWSIAMConfiguration"

DEFAULT_NAME_SUFFIX = ".cluster-api-provider-aws.sigs.k8s.io"
DEFAULT_BOOTSTRAP_USER_NAME = "bootstrapper.cluster-api-provider-aws.sigs.k8s.io"
DEFAULT_PARTITION = "aws"


class _SpecModel(BaseModel):
    model_config = ConfigDict(
        extra="forbid",
        frozen=True,
        alias_generator=to_camel,
        populate_by_name=True,
    )


class AWSIAMRoleSpec(_SpecModel):
    """Settings shared by every role-producing group."""

    extra_policy_attachments: list[str] = Field(
        default_factory=list, description="ARNs of existing managed policies to attach"
    )
    extra_statements: list[Statement] = Field(
        default_factory=list, description="Statements for an inline policy on the role"
    )
    trust_statements: list[Statement] = Field(
        default_factory=list, description="Statements appended to the trust policy"
    )
    tags: dict[str, str] = Field(default_factory=dict)


class ControlPlane(AWSIAMRoleSpec):
    disable_cloud_provider_policy: bool = False
    disable_cluster_api_controller_policy_attachment: bool = Field(
        default=False, alias="disableClusterAPIControllerPolicyAttachment"
    )
    enable_csi_policy: bool = Field(default=False, alias="enableCSIPolicy")


class ClusterAPIControllers(AWSIAMRoleSpec):
    allowed_ec2_instance_profiles: list[str] | None = Field(
        default=None,
        alias="allowedEC2InstanceProfiles",
        description="Role names the controllers may pass to EC2; defaults to the managed name pattern",
    )


class Nodes(AWSIAMRoleSpec):
    disable_cloud_provider_policy: bool = False
    ec2_container_registry_read_only: bool = False


class BootstrapUser(_SpecModel):
    enable: bool = False
    user_name: str = DEFAULT_BOOTSTRAP_USER_NAME
    group_name: str = DEFAULT_BOOTSTRAP_USER_NAME
    extra_policy_attachments: list[str] = Field(default_factory=list)
    extra_groups: list[str] = Field(default_factory=list)
    extra_statements: list[Statement] = Field(default_factory=list)
    tags: dict[str, str] = Field(default_factory=dict)

    @model_validator(mode="after")
    def require_names_when_enabled(self) -> BootstrapUser:
        """Ensure an enabled bootstrap user has a user and group name."""
        if self.enable and not (self.user_name and self.group_name):
            raise ValueError(
                "bootstrapUser.userName and bootstrapUser.groupName are required "
                "when the bootstrap user is enabled"
            )
        return self


class EKSConfig(_SpecModel):
    """Managed control plane (EKS) settings."""

    disable: bool = False
    allow_iam_role_creation: bool = Field(default=False, alias="allowIAMRoleCreation")
    extra_policy_attachments: list[str] = Field(default_factory=list)
    tags: dict[str, str] = Field(default_factory=dict)


class AWSIAMConfigurationSpec(_SpecModel):
    """Root of the configuration tree consumed by the template."""

    name_prefix: str = ""
    name_suffix: str = DEFAULT_NAME_SUFFIX
    partition: str = DEFAULT_PARTITION
    control_plane: ControlPlane = Field(default_factory=ControlPlane)
    cluster_api_controllers: ClusterAPIControllers = Field(
        default_factory=ClusterAPIControllers, alias="clusterAPIControllers"
    )
    nodes: Nodes = Field(default_factory=Nodes)
    bootstrap_user: BootstrapUser = Field(default_factory=BootstrapUser)
    managed_control_plane: EKSConfig = Field(default_factory=EKSConfig, alias="eks")


class AWSIAMConfiguration(_SpecModel):
    """The versioned ``AWSIAMConfiguration`` document."""

    api_version: Literal[API_VERSION] = API_VERSION  # type: ignore[valid-type]
    kind: Literal[KIND] = KIND  # type: ignore[valid-type]
    spec: AWSIAMConfigurationSpec = Field(default_factory=AWSIAMConfigurationSpec)

    def to_dict(self) -> dict[str, Any]:
        """Return the document with its camelCase keys, ready for YAML."""
        return self.model_dump(mode="json", by_alias=True, exclude_none=True)


def new_configuration() -> AWSIAMConfiguration:
    """Return a configuration document holding only defaults."""
    return AWSIAMConfiguration()


def validate_config(data: dict[str, Any] | None) -> AWSIAMConfiguration:
    """Validate raw configuration data and return a typed document.

    Args:
        data: Parsed configuration. Either a full ``AWSIAMConfiguration``
            document or ``None`` for defaults.

    Returns:
        A validated, immutable configuration document.

    Raises:
        ConfigurationError: If the data is not a mapping or fails validation.
    """
    if data is None:
        return new_configuration()
    if not isinstance(data, dict):
        raise ConfigurationError(
            f"Configuration must be a mapping, got {type(data).__name__}"
        )
    try:
        return AWSIAMConfiguration.model_validate(data)
    except ValidationError as e:
        raise ConfigurationError(f"Invalid configuration:\n{e}") from e


def load_config(path: str | Path) -> AWSIAMConfiguration:
    """Load and validate an ``AWSIAMConfiguration`` YAML file.

    Raises:
        ConfigurationError: If the file cannot be read, is not valid YAML
            or fails validation.
    """
    path = Path(path)
    try:
        with path.open("r") as fh:
            data = yaml.safe_load(fh)
    except OSError as e:
        raise ConfigurationError(f"Unable to read configuration file '{path}': {e}") from e
    except yaml.YAMLError as e:
        raise ConfigurationError(f"Invalid YAML in configuration file '{path}': {e}") from e
    return validate_config(data)


__all__ = [
    "API_VERSION",
    "KIND",
    "DEFAULT_NAME_SUFFIX",
    "DEFAULT_BOOTSTRAP_USER_NAME",
    "DEFAULT_PARTITION",
    "AWSIAMRoleSpec",
    "ControlPlane",
    "ClusterAPIControllers",
    "Nodes",
    "BootstrapUser",
    "EKSConfig",
    "AWSIAMConfigurationSpec",
    "AWSIAMConfiguration",
    "new_configuration",
    "validate_config",
    "load_config",
]
