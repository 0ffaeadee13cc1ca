"""
IAM resource variants and the resource map they are collected into.

Each resource kind is a plain frozen model with a ``kind`` discriminator.
Cross-resource links are :class:`Ref` values holding a logical name, never
the target object, so resources can be added to a map in any order.
"""

from __future__ import annotations

from collections.abc import Iterator, Mapping
from typing import Literal, Union

from pydantic import BaseModel, ConfigDict, Field

from .exceptions import DanglingReferenceError, DuplicateResourceError
from .policy import PolicyDocument


class Ref(BaseModel):
    """Reference to another resource by logical name."""

    model_config = ConfigDict(frozen=True)

    logical_name: str


class InlinePolicy(BaseModel):
    """Policy document embedded in a user or role."""

    model_config = ConfigDict(frozen=True)

    policy_name: str
    policy_document: PolicyDocument


class IAMResource(BaseModel):
    model_config = ConfigDict(extra="forbid", frozen=True)

    def refs(self) -> list[Ref]:
        """Return every :class:`Ref` held by this resource, in field order."""
        found: list[Ref] = []
        for name in type(self).model_fields:
            value = getattr(self, name)
            if isinstance(value, Ref):
                found.append(value)
            elif isinstance(value, list):
                found.extend(v for v in value if isinstance(v, Ref))
        return found


class User(IAMResource):
    kind: Literal["User"] = "User"
    user_name: str
    groups: list[Union[Ref, str]] = Field(default_factory=list)
    managed_policy_arns: list[str] = Field(default_factory=list)
    policies: list[InlinePolicy] = Field(default_factory=list)
    tags: dict[str, str] = Field(default_factory=dict)


class Group(IAMResource):
    kind: Literal["Group"] = "Group"
    group_name: str


class Role(IAMResource):
    kind: Literal["Role"] = "Role"
    role_name: str
    assume_role_policy_document: PolicyDocument
    managed_policy_arns: list[str] = Field(default_factory=list)
    policies: list[InlinePolicy] = Field(default_factory=list)
    tags: dict[str, str] = Field(default_factory=dict)


class ManagedPolicy(IAMResource):
    kind: Literal["ManagedPolicy"] = "ManagedPolicy"
    managed_policy_name: str
    description: str = ""
    policy_document: PolicyDocument
    groups: list[Ref] = Field(default_factory=list)
    roles: list[Ref] = Field(default_factory=list)


class InstanceProfile(IAMResource):
    kind: Literal["InstanceProfile"] = "InstanceProfile"
    instance_profile_name: str
    roles: list[Ref] = Field(min_length=1, max_length=1)


class ResourceMap(Mapping[str, IAMResource]):
    """Insertion-ordered mapping of logical name to resource.

    Keys are unique and a resource is never replaced once added.
    """

    def __init__(self) -> None:
        self._resources: dict[str, IAMResource] = {}

    def add(self, logical_name: str, resource: IAMResource) -> None:
        """Insert ``resource`` under ``logical_name``.

        Raises:
            DuplicateResourceError: If the logical name is already taken.
        """
        if logical_name in self._resources:
            raise DuplicateResourceError(
                f"Resource '{logical_name}' already exists in the map"
            )
        self._resources[logical_name] = resource

    def __getitem__(self, logical_name: str) -> IAMResource:
        return self._resources[logical_name]

    def __iter__(self) -> Iterator[str]:
        return iter(self._resources)

    def __len__(self) -> int:
        return len(self._resources)

    def __repr__(self) -> str:
        return f"ResourceMap({list(self._resources)!r})"

    def of_kind(self, kind: str) -> dict[str, IAMResource]:
        """Return the resources of one kind, keyed by logical name."""
        return {
            name: res
            for name, res in self._resources.items()
            if getattr(res, "kind", None) == kind
        }

    def references(self) -> Iterator[tuple[str, Ref]]:
        """Yield ``(source logical name, ref)`` for every reference."""
        for name, res in self._resources.items():
            for ref in res.refs():
                yield name, ref

    def validate_references(self) -> None:
        """Check every reference resolves to a resource in this map.

        Raises:
            DanglingReferenceError: On the first unresolved reference.
        """
        for source, ref in self.references():
            if ref.logical_name not in self._resources:
                raise DanglingReferenceError(
                    f"Resource '{source}' references missing resource "
                    f"'{ref.logical_name}'"
                )


__all__ = [
    "Ref",
    "InlinePolicy",
    "IAMResource",
    "User",
    "Group",
    "Role",
    "ManagedPolicy",
    "InstanceProfile",
    "ResourceMap",
]
