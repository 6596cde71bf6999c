"""
Clean API - users and products behind JWT authentication and a policy engine

This package contains:
- api: FastAPI REST endpoints and request dependencies
- access_control: Policy model, cache, engine and authorization service
- auth: JWT tokens, password hashing and access auditing
- services: Use cases for registration, users and products
- storage: SQLAlchemy adapters (Postgres, SQLite), models and repositories
- platform: Cross-cutting concerns (config, logging, errors, metrics)
"""

__version__ = "0.1.0"
