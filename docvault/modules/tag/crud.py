"""CRUD operations for tag entities using FastCRUD."""

from fastcrud import FastCRUD

from .models import DocumentTag, Tag

tag_crud: FastCRUD = FastCRUD(Tag)
document_tag_crud: FastCRUD = FastCRUD(DocumentTag)
