"""Concrete storage, scanning and metrics components."""
