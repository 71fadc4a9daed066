"""Authentication for the Agora API."""

from agora.auth.middleware import AuthMiddleware, Viewer, get_viewer
from agora.auth.verifier import HmacJwtVerifier, TokenVerifier

__all__ = ["AuthMiddleware", "HmacJwtVerifier", "TokenVerifier", "Viewer", "get_viewer"]
