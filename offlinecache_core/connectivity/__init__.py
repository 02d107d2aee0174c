"""Connectivity module - Online/offline observation."""

from offlinecache_core.connectivity.monitor import ConnectivityMonitor

__all__ = ["ConnectivityMonitor"]
