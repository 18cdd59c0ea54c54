"""Statutory rate table schema, loader and validator."""
