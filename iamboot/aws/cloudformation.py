"""
Render a :class:`ResourceMap` as an AWS CloudFormation template.

Every resource becomes ``{"Type": "AWS::IAM::<Kind>", "Properties": {...}}``
with PascalCase property names; references become ``{"Ref": <name>}``.
Empty values are dropped, so toggled-off attachments leave no trace.
"""

from __future__ import annotations

import json
from typing import Any

import yaml
from pydantic.alias_generators import to_pascal

from iamboot.base.policy import PolicyDocument
from iamboot.base.resources import IAMResource, InlinePolicy, Ref, ResourceMap

TEMPLATE_FORMAT_VERSION = "2010-09-09"
TYPE_PREFIX = "AWS::IAM::"


def _render_tags(tags: dict[str, str]) -> list[dict[str, str]]:
    return [{"Key": k, "Value": tags[k]} for k in sorted(tags)]


def _render_value(value: Any) -> Any:
    if isinstance(value, Ref):
        return {"Ref": value.logical_name}
    if isinstance(value, PolicyDocument):
        return value.to_dict()
    if isinstance(value, InlinePolicy):
        return {
            "PolicyName": value.policy_name,
            "PolicyDocument": value.policy_document.to_dict(),
        }
    if isinstance(value, list):
        return [_render_value(v) for v in value]
    return value


def render_resource(resource: IAMResource) -> dict[str, Any]:
    """Render one resource as a CloudFormation resource declaration."""
    properties: dict[str, Any] = {}
    for name in type(resource).model_fields:
        if name == "kind":
            continue
        value = getattr(resource, name)
        if value is None or value == "" or value == [] or value == {}:
            continue
        if name == "tags":
            properties["Tags"] = _render_tags(value)
        else:
            properties[to_pascal(name)] = _render_value(value)
    return {
        "Type": f"{TYPE_PREFIX}{resource.kind}",  # type: ignore[attr-defined]
        "Properties": properties,
    }


def to_cloudformation(
    resources: ResourceMap,
    description: str | None = None,
) -> dict[str, Any]:
    """Build a CloudFormation template from a resource map.

    Args:
        resources: Assembled resources, emitted in map order.
        description: Optional template description.

    Returns:
        The template as plain dicts and lists.
    """
    template: dict[str, Any] = {"AWSTemplateFormatVersion": TEMPLATE_FORMAT_VERSION}
    if description:
        template["Description"] = description
    template["Resources"] = {
        name: render_resource(resource) for name, resource in resources.items()
    }
    return template


def to_yaml(template: dict[str, Any]) -> str:
    return yaml.safe_dump(template, sort_keys=False, default_flow_style=False)


def to_json(template: dict[str, Any]) -> str:
    return json.dumps(template, indent=2)
