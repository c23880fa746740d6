"""
Feature modules live under this package.

Each module owns its routes and models, and reuses the platform primitives
(auth, storage, DB session, error taxonomy).
"""
