"""Persistent storage: audit log and allowlist on PostgreSQL."""

from channel_summarizer.storage.allowlist import Allowlist
from channel_summarizer.storage.audit import AuditLog, AuditRecord
from channel_summarizer.storage.database import DatabaseManager

__all__ = ["Allowlist", "AuditLog", "AuditRecord", "DatabaseManager"]
