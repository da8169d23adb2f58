"""Shared helpers for tsterm."""
