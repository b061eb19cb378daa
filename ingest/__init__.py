"""
Ingest package: HTTP transport, session handling and paginated fetches against a Redmine server.
"""
