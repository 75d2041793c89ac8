"""Scope descriptors shared by search and batch actions."""

from typing import Annotated, List, Literal, Union

from pydantic import BaseModel, ConfigDict, Field, TypeAdapter

from ..tag.schemas import TagName


class FolderScope(BaseModel):
    """Every live document whose primary tag has this name."""

    model_config = ConfigDict(extra="forbid")

    kind: Literal["folder"] = "folder"
    name: TagName


class FilesScope(BaseModel):
    """An explicit list of document ids."""

    model_config = ConfigDict(extra="forbid")

    kind: Literal["files"] = "files"
    ids: Annotated[List[int], Field(min_length=1)]


ScopeDescriptor = Annotated[Union[FolderScope, FilesScope], Field(discriminator="kind")]

scope_adapter = TypeAdapter(ScopeDescriptor)
