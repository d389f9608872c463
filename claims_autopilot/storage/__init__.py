"""Storage layer for automation state and the audit log."""

from .store import AutomationStore
from .memory_store import InMemoryStore
from .json_store import JsonFileStore
from .audit_log import AuditLog

__all__ = ['AutomationStore', 'InMemoryStore', 'JsonFileStore', 'AuditLog']
