"""Provider-neutral building blocks: configuration, policy and resource models.

The AWS-specific catalogs and the template assembler in :mod:`iamboot.aws`
are built entirely on the types exported here.
"""

from .config import (
    AWSIAMConfiguration,
    AWSIAMConfigurationSpec,
    load_config,
    new_configuration,
    validate_config,
)
from .naming import new_managed_name
from .policy import PolicyDocument, Statement, build_trust_policy
from .resources import (
    Group,
    InlinePolicy,
    InstanceProfile,
    ManagedPolicy,
    Ref,
    ResourceMap,
    Role,
    User,
)


__all__ = [
    "AWSIAMConfiguration",
    "AWSIAMConfigurationSpec",
    "load_config",
    "new_configuration",
    "validate_config",
    "new_managed_name",
    "PolicyDocument",
    "Statement",
    "build_trust_policy",
    "Group",
    "InlinePolicy",
    "InstanceProfile",
    "ManagedPolicy",
    "Ref",
    "ResourceMap",
    "Role",
    "User",
]
