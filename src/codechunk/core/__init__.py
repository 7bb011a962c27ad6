"""Configuration, models, logging and workspace paths."""
