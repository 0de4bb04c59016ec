"""Forum search: record types, query dialects and backend drivers."""
