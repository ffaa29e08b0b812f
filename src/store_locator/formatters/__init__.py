"""Human-readable output for stage results."""
