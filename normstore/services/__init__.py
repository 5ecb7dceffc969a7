"""Services Layer — shell around core: logging and error context."""
