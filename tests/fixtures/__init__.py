"""Shared test models and query shapes."""
