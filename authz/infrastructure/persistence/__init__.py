"""SQLAlchemy async persistence (models, repositories, database manager)."""
