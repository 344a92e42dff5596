"""Upstream transports and host failover."""
