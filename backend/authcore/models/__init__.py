from authcore.models.login_attempt import LoginAttempt
from authcore.models.session import UserSession
from authcore.models.user import User

__all__ = [
    "LoginAttempt",
    "User",
    "UserSession",
]
