"""
Extraction subsystem for faflow.

Every CSS selector that depends on FurAffinity's markup lives in this
package.  Each listing surface has its own module:

* `notes` – the private-message inbox and single note pages.
* `others` – the "other messages" page (submission comments, journal
  comments and journals) and the comment and journal pages.
* `submissions` – the submission inbox and submission view pages.

Listing parsers accept a date-validity callback and skip nodes that
fail to parse instead of aborting the page.  `common.is_logged_in`
inspects the settings page to decide whether session cookies are
still valid.
"""

from .common import is_logged_in, parse_document  # noqa: F401
from .notes import parse_note_content, parse_notes  # noqa: F401
from .others import parse_comment_content, parse_journal_content, parse_other_entries  # noqa: F401
from .submissions import SubmissionPage, parse_submission_content, parse_submission_page  # noqa: F401
