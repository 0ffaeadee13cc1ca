"""
Pydantic models for IAM policy documents.

Fields use snake_case in Python and serialize with the CloudFormation /
IAM JSON keys (``Version``, ``Statement``, ``Effect``, ...) so a document
can be fed straight into a template or read back from configuration.
"""

from __future__ import annotations

from typing import Any, Iterable, Literal

from pydantic import BaseModel, ConfigDict, Field, field_validator

CURRENT_VERSION = "2012-10-17"

ASSUME_ROLE_ACTION = "sts:AssumeRole"

PRINCIPAL_SERVICE = "Service"
PRINCIPAL_AWS = "AWS"


class Statement(BaseModel):
    """A single IAM policy statement."""

    model_config = ConfigDict(extra="forbid", frozen=True, populate_by_name=True)

    sid: str | None = Field(default=None, alias="Sid")
    effect: Literal["Allow", "Deny"] = Field(default="Allow", alias="Effect")
    principal: dict[str, list[str]] | None = Field(default=None, alias="Principal")
    not_principal: dict[str, list[str]] | None = Field(default=None, alias="NotPrincipal")
    actions: list[str] = Field(alias="Action", min_length=1)
    resources: list[str] | None = Field(default=None, alias="Resource")
    condition: dict[str, dict[str, Any]] | None = Field(default=None, alias="Condition")

    @field_validator("actions", "resources", mode="before")
    @classmethod
    def wrap_single_value(cls, value: Any) -> Any:
        """IAM JSON allows a bare string where a list is expected."""
        if isinstance(value, str):
            return [value]
        return value

    @field_validator("principal", "not_principal", mode="before")
    @classmethod
    def wrap_principal_values(cls, value: Any) -> Any:
        if isinstance(value, dict):
            return {k: [v] if isinstance(v, str) else v for k, v in value.items()}
        return value


class PolicyDocument(BaseModel):
    """A versioned list of statements, order preserved as declared."""

    model_config = ConfigDict(extra="forbid", frozen=True, populate_by_name=True)

    version: str = Field(default=CURRENT_VERSION, alias="Version")
    statements: list[Statement] = Field(default_factory=list, alias="Statement")

    @field_validator("statements", mode="after")
    @classmethod
    def own_statements(cls, value: list[Statement]) -> list[Statement]:
        # Each document owns copies; catalogs and config statements are never aliased.
        return [s.model_copy(deep=True) for s in value]

    def to_dict(self) -> dict[str, Any]:
        """Return the IAM JSON representation of the document."""
        return self.model_dump(by_alias=True, exclude_none=True)


def build_trust_policy(
    principal_id: str,
    extra_statements: Iterable[Statement] = (),
) -> PolicyDocument:
    """Build an assume-role policy for a service principal.

    Args:
        principal_id: Service identifier allowed to assume the role
            (e.g. ``ec2.amazonaws.com``).
        extra_statements: Additional trust statements, appended after
            the service statement.

    Returns:
        A policy document whose first statement allows ``principal_id``
        to call ``sts:AssumeRole``.
    """
    statements = [
        Statement(
            effect="Allow",
            principal={PRINCIPAL_SERVICE: [principal_id]},
            actions=[ASSUME_ROLE_ACTION],
        )
    ]
    statements.extend(extra_statements)
    return PolicyDocument(statements=statements)


__all__ = [
    "CURRENT_VERSION",
    "ASSUME_ROLE_ACTION",
    "PRINCIPAL_SERVICE",
    "PRINCIPAL_AWS",
    "Statement",
    "PolicyDocument",
    "build_trust_policy",
]
