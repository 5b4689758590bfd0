"""
Type contracts for JournalQ

Shared base models, the caller credential, and Protocols for the external
collaborators (domain stores). Core components depend on these contracts,
never on concrete HTTP clients, so tests can substitute in-memory fakes.
"""

from journalq.contracts.base import CamelModel
from journalq.contracts.collaborators import DomainStore
from journalq.contracts.identity import Credential

__all__ = ["CamelModel", "Credential", "DomainStore"]
