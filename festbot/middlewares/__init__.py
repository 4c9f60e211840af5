from festbot.middlewares.db_middleware import DatabaseMiddleware
from festbot.middlewares.auth_middleware import AdminMiddleware, IdentityMiddleware, Identity, IsAdmin

__all__ = ["DatabaseMiddleware", "AdminMiddleware", "IdentityMiddleware", "Identity", "IsAdmin"]
