"""Record store access: PostgreSQL upsert/lookup and an in-process store."""
