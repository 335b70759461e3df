"""Manifest domain: enumeration, collection, documents and serialization."""
