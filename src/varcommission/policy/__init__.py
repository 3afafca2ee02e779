"""Commission policy configuration."""

from varcommission.policy.resolver import PolicyResolver

__all__ = [
    "PolicyResolver",
]
