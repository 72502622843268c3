"""Platform raw-counter collectors."""
