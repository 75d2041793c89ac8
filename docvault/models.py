"""Registers every ORM model on ``Base.metadata``."""

from .modules.action.models import Action
from .modules.audit.models import AuditLog
from .modules.document.models import Document
from .modules.tag.models import DocumentTag, Tag
from .modules.task.models import Task

__all__ = ["Action", "AuditLog", "Document", "DocumentTag", "Tag", "Task"]
