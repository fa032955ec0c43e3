"""
Backend package for the MAIO olympiad website.

This package provides a FastAPI application serving news, events, media,
competition results and sponsors over a pluggable document, relational or
in-memory store, plus local file uploads.
"""
