"""Database module for Beacon Analytics.

Key components:
- db_config.py: Connection string resolution from the environment
- database.py: Schema creation
- database_session.py: Engine, session factory and session context manager
- json_type.py: JSON column type (JSONB on PostgreSQL)
- models.py: SQLAlchemy ORM models for tenants, API keys, events and daily summaries
"""
