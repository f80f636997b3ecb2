"""Clients for the upstream lookup API and the card store."""

from .github_store import GitHubStore
from .lookup import LookupClient

__all__ = ["GitHubStore", "LookupClient"]
