"""
Task board service package.

This package provides a FastAPI application over project, task and user
collection services, backed by a pluggable document store (in-memory, SQL,
Cloud Firestore or a local JSON file).
"""
