from hrportal.models.audit.audit_log import AuditLog

__all__ = ["AuditLog"]
