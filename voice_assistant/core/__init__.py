"""Core configuration, models, exceptions and status reporting."""
