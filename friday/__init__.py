"""Friday request-orchestration core."""
