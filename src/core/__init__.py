"""
Core components for Beacon Analytics.

This package contains the pieces shared by the services and the HTTP layer:
- Configuration (config.py) and logging setup (logging_config.py)
- Database engine, sessions and models (database/)
- Request and result schemas (schemas.py) and payload validation (validation.py)
- Error taxonomy (exceptions.py)
- API key authentication (auth.py)
- API key and time helpers (utils/)
"""
