"""Command-line tools for docvector.

- ``python -m docvector.cli.ingest`` - ingest a file or a directory of
  files, or delete a stored document.
- ``python -m docvector.cli.query`` - rank stored chunks against a query.

Heavy imports (providers, stores) are deferred inside the handlers to keep
``--help`` fast.
"""
