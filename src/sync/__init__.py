"""Upstream marketplace sync adapters and credential handling."""
