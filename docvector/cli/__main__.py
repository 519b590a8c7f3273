"""Allow ``python -m docvector.cli`` execution; runs the ingestion CLI."""

from docvector.cli.ingest import main

main()
