"""Adapters for the systems a Domain is synchronized with."""
