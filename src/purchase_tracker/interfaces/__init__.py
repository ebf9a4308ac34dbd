"""Protocol definitions for the storage and metrics boundaries."""
