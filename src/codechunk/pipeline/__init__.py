"""Multi-file orchestration."""
