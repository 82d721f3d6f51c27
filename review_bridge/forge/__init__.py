"""Forge (code hosting) integrations."""

from .base import ForgeClient, ForgeError
from .github import GitHubClient


__all__ = [
    "ForgeClient",
    "ForgeError",
    "GitHubClient",
]
