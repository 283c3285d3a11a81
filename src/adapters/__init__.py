"""Adaptadores de infraestructura (httpx, exportadores JSON/HTML)."""
