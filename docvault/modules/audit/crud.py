"""CRUD operations for audit entries using FastCRUD."""

from fastcrud import FastCRUD

from .models import AuditLog

audit_log_crud: FastCRUD = FastCRUD(AuditLog)
