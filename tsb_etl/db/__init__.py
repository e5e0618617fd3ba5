"""PostgreSQL schema and batched upserts."""
