"""iamboot: IAM bootstrap templates for Cluster API Provider AWS.

Render the default template with a single call::

    from iamboot import Template, to_cloudformation

    resources = Template().render()
    template = to_cloudformation(resources)
"""

from .aws import Template, render, to_cloudformation, to_json, to_yaml
from .base import (
    AWSIAMConfiguration,
    AWSIAMConfigurationSpec,
    ResourceMap,
    load_config,
    new_configuration,
    validate_config,
)

__all__ = [
    "AWSIAMConfiguration",
    "AWSIAMConfigurationSpec",
    "ResourceMap",
    "Template",
    "load_config",
    "new_configuration",
    "render",
    "to_cloudformation",
    "to_json",
    "to_yaml",
    "validate_config",
]
