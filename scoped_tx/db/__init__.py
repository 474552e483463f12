"""Store adapters, lifecycle and database errors."""
