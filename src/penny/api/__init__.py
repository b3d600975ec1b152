"""HTTP surface for the expense service."""
from penny.api.app import create_app

__all__ = ["create_app"]
