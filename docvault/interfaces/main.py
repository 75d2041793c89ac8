from ..infrastructure.app_factory import create_application
from ..infrastructure.config.settings import get_settings
from ..interfaces.api import router as api_router

settings = get_settings()

app = create_application(
    router=api_router,
    settings=settings,
    description="""
    # DocVault API

    Multi-tenant document management:

    * **Documents**: upload, list, search and delete documents
    * **Folders**: every document sits in exactly one folder, its primary tag
    * **Tags**: any number of secondary tags per document
    * **Actions**: scripted batch actions over a folder or a list of documents
    * **Audit**: every write is recorded

    Requests carry `Authorization: Bearer <jwt>` with `sub` and `role`
    (`admin`, `support`, `moderator` or `user`) claims. Support and
    moderator accounts are read-only.
    """,
)
