"""HTTP API for the job engine and book pipelines."""
