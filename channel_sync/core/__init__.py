"""Application core: configuration, database, errors, middleware and observability."""
