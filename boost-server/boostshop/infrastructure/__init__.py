"""Adapters for the database, the upstream provider and payment gateways."""
