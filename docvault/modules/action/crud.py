"""CRUD operations for actions using FastCRUD."""

from fastcrud import FastCRUD

from .models import Action

action_crud: FastCRUD = FastCRUD(Action)
