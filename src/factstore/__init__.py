"""Distributed fact storage on Cassandra."""

__version__ = "0.1.0"
