"""Run orchestration, enrichment and reporting services."""
