from .app import create_app
from .security import HmacHeaderAuthenticator, fuse_key

__all__ = ["create_app", "HmacHeaderAuthenticator", "fuse_key"]
