"""Re-export individual schema modules for easy imports."""

from .user import LoginIn, MessageOut, RegisterIn, TokenOut
from .profile import ProfileResponse, ProfileUpdateResponse, RoutineResponse

__all__ = [
    "LoginIn",
    "MessageOut",
    "RegisterIn",
    "TokenOut",
    "ProfileResponse",
    "ProfileUpdateResponse",
    "RoutineResponse",
]
