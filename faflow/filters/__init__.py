"""
Filtering subsystem for faflow.

* `novelty` – Drops entries the known-entry store already records for
  the current user.
* `users` – Per-type author whitelists and blocked-tag flagging of
  submissions.
"""

from .novelty import NoveltyFilter  # noqa: F401
from .users import UserFilter, blocked_reasons, flag_blocked  # noqa: F401
