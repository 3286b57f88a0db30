"""Leave calculators, store accessors and batch jobs."""
