"""
Collection subsystem for faflow.

The `collect` package turns a registered user into a stream of new
entries:

* `fetcher` – `aiohttp` client sending the user's cookies with a fixed
  user agent and timeout.
* `session` – per-user, per-pass settings (date floors, whitelists,
  concurrency limit, iteration order).
* `pool` – bounded, unordered concurrent content retrieval.
* `ordering` – reversal of a newest-first listing.
* `collector` – the per-surface pipelines built from the above.
* `runner` – one pass over every user, and periodic passes.
"""

from .collector import FurAffinityCollector  # noqa: F401
from .fetcher import DocumentFetcher, FetchError, FetchResult  # noqa: F401
from .ordering import reverse_stream  # noqa: F401
from .pool import fetch_contents  # noqa: F401
from .runner import SessionError, collect_for_user, run_pass, watch  # noqa: F401
from .session import CollectorSession  # noqa: F401
