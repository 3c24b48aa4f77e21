"""Core path logic, schemas, configuration and logging."""
