"""Counter store, rate calculator and aggregation."""
