"""
Faflow package for the FurAffinity notifier.

This package contains submodules for collecting a registered user's
notifications from FurAffinity, turning the raw message-center HTML
into typed entries, deciding which of those entries are new and
retrieving their full content before they are handed to a notifier.
Each submodule implements a specific step of one collection pass.

The high‑level flow is:

1. **entries** – The entry taxonomy (`EntryType`) and the entry model
   (notes, submissions, comments and journals) shared by every stage.
2. **extract** – Parse a listing page (notes inbox, "other" messages,
   submission inbox) into entry summaries, and parse detail pages into
   entry content.  All CSS selectors live here.
3. **filters** – Decide novelty against the known-entry store and apply
   per-type username whitelists and blocked-tag flagging.
4. **collect** – Fetch pages with `aiohttp`, fan out content retrieval
   under a per-user concurrency bound, optionally reverse the listing
   order, and run one pass per registered user.
5. **storage** / **notify** – The sqlite-backed user and known-entry
   store, and the notifier that delivers entries and records them.
6. **cli** – Command line entry point wiring together the above
   components.
"""

__version__ = "0.1.0"
