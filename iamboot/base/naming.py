"""Provider-facing resource names."""


def new_managed_name(prefix: str, base: str, suffix: str) -> str:
    """Join ``prefix``, ``base`` and ``suffix`` into a resource name.

    No length or charset validation happens here; names the provider
    rejects surface when the manifest is applied.
    """
    return f"{prefix}{base}{suffix}"
