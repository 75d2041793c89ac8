from .services import AuditService

__all__ = ["AuditService"]
