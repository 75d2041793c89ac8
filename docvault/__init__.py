"""DocVault: multi-tenant document management with folders, scoped actions and RBAC."""

__version__ = "0.1.0"
