from .schemas import FilesScope, FolderScope, ScopeDescriptor
from .services import ScopeResolver, parse_scope

__all__ = ["FilesScope", "FolderScope", "ScopeDescriptor", "ScopeResolver", "parse_scope"]
