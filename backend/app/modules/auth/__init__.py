# Authentication module

from app.modules.auth.dependencies import (
    get_current_user,
    get_current_faculty,
    get_optional_verifier,
)

__all__ = [
    "get_current_user",
    "get_current_faculty",
    "get_optional_verifier",
]
