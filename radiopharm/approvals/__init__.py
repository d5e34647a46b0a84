"""Configurable multi-step approval workflows bound to lifecycle entities."""
