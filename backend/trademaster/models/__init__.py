"""Database models"""

from trademaster.models.user import User
from trademaster.models.password_reset import PasswordResetToken

__all__ = ["User", "PasswordResetToken"]
