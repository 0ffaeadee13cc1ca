"""AWS permission catalogs, the template assembler and CloudFormation rendering."""

from .cloudformation import to_cloudformation, to_json, to_yaml
from .policies import POLICY_DOCUMENTS, policy_document
from .template import Template, render

__all__ = [
    "Template",
    "render",
    "to_cloudformation",
    "to_json",
    "to_yaml",
    "POLICY_DOCUMENTS",
    "policy_document",
]
