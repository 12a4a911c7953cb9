"""Shared blackboard backend: message format, TLS server and load-testing client."""

__version__ = "0.1.0"
__all__ = ["messages", "server", "client"]