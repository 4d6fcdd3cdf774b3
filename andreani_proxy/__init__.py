"""Proxy service for Andreani quotes and shipments."""
