"""
Service modules for Beacon Analytics.

Each service is a class holding an injected SQLAlchemy session factory (and,
where it schedules work, the background queue). ServiceContainer in
container.py wires them together.
"""
