from .tokens import InvalidTokenError, create_access_token, decode_access_token

__all__ = ["InvalidTokenError", "create_access_token", "decode_access_token"]
