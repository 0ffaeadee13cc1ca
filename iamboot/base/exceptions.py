"""
iamboot exception hierarchy.

Every failure raised by the package inherits from :class:`IAMBootError`.
Configuration problems are precondition violations and are never
recovered from; template errors indicate a bug in the assembler itself.
"""


# ── Base ──────────────────────────────────────────────────────────────
class IAMBootError(Exception):
    """Root exception for all iamboot errors."""


# ── Configuration ─────────────────────────────────────────────────────
class ConfigurationError(IAMBootError):
    """Configuration spec is missing, malformed or invalid."""


# ── Template assembly ─────────────────────────────────────────────────
class TemplateError(IAMBootError):
    """Base exception for resource map assembly."""


class DuplicateResourceError(TemplateError):
    """A logical name was inserted into a resource map twice."""


class DanglingReferenceError(TemplateError):
    """A resource references a logical name missing from the map."""


# ── Policy documents ──────────────────────────────────────────────────
class PolicyError(IAMBootError):
    """Base exception for policy document lookups."""


class UnknownPolicyDocumentError(PolicyError):
    """No policy document is registered under the requested name."""
