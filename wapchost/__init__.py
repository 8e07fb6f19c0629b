"""Host runtime for the waPC protocol: module state, sync and async hosts, a worker pool and a MessagePack codec."""

__version__ = "0.1.0"

__all__ = ["codec", "errors", "host", "host_async", "modulestate", "pool", "protocol"]