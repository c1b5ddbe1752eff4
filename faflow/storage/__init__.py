"""
Storage subsystem for faflow.

`Database` keeps registered users (cookies, enabled entry types,
preferences) and the known-entry records that mark an entry as
already delivered to a user.
"""

from .database import Database, User  # noqa: F401
