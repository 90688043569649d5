from .auth import AuthClient

__all__ = ["AuthClient"]
