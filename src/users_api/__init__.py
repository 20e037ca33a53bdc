"""
Users API package.

Modules:
- config: environment-driven settings and logging setup
- db: PostgreSQL connection pooling + query helpers
- users: the user store (SQL statements and error translation)
- security: password hashing and JWT helpers
- errors: error taxonomy mapped to HTTP statuses
- schemas: Pydantic models for the REST API
- main: FastAPI application and routes
"""
