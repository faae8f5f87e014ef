"""Audit logging package."""

from mali.audit.logger import AuditLogger

__all__ = ["AuditLogger"]
