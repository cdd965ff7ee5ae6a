"""Shared utilities for ODI."""
