"""Resolution of scope descriptors to document ids."""

from typing import Any, List, Optional, Union

from pydantic import ValidationError as PydanticValidationError
from sqlalchemy.ext.asyncio import AsyncSession

from ..common.exceptions import InvalidScopeError
from ..permission import Role, resolve_effective_owner_filter
from ..tag.store import TagStore
from .schemas import FilesScope, FolderScope, scope_adapter


def parse_scope(data: Any) -> Union[FolderScope, FilesScope]:
    """Validate a raw scope payload.

    Exactly one of a folder name or a non-empty id list must be given.

    Raises:
        InvalidScopeError: If the payload is not a valid scope
    """
    if isinstance(data, (FolderScope, FilesScope)):
        return data
    try:
        return scope_adapter.validate_python(data)
    except PydanticValidationError as e:
        raise InvalidScopeError(
            "Scope must specify exactly one of a folder name or a non-empty list of document ids"
        ) from e


class ScopeResolver:
    """Turns a scope into candidate document ids.

    File ids are returned as given, minus duplicates; they are not loaded
    here, so existence and visibility are checked by the caller.
    """

    def __init__(self, tag_store: Optional[TagStore] = None):
        self.tag_store = tag_store or TagStore()

    async def resolve(
        self,
        scope: Union[FolderScope, FilesScope],
        role: Role,
        user_id: str,
        db: AsyncSession,
    ) -> List[int]:
        """Resolve ``scope`` for the caller ``(role, user_id)``.

        Raises:
            ResourceNotFoundError: If a folder scope names no visible tag
        """
        if isinstance(scope, FolderScope):
            owner_id = resolve_effective_owner_filter(role, user_id)
            return await self.tag_store.get_document_ids_by_folder(scope.name, owner_id, db)

        return list(dict.fromkeys(scope.ids))
