"""
Greenhall Capital backend.

This package provides a FastAPI application serving team members, news
posts and portfolio companies, with a document store abstraction for the
records and an asset store abstraction for their images.
"""
