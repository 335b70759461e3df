"""File-level helpers: content hashing and atomic writes."""
