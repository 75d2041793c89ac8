"""CRUD operations for tasks using FastCRUD."""

from fastcrud import FastCRUD

from .models import Task

task_crud: FastCRUD = FastCRUD(Task)
