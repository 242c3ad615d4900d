"""Console presentation shell for the access gate."""
