"""
DDD Service Backend - API Routers
Version: 1.0.0

Changelog:
v1.0.0 (2026-09-28): Initial routers
"""
