"""
Users module - identity directory, account approval and candidate lookup.
"""

from career_findr.modules.users.models import User, UserRole
from career_findr.modules.users.repository import UserRepository

__all__ = ["User", "UserRole", "UserRepository"]
