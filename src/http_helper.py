# HTTP Helper for Motor Controller Connections
# Session configuration for the discovery sweep and for direct device commands

import aiohttp
import logging

logger = logging.getLogger(__name__)

def create_device_session(timeout_seconds: float = 5) -> aiohttp.ClientSession:
    """
    Create properly configured aiohttp session for a single motor controller (always HTTP)
    Prevents connection leaks with proper cleanup and limits
    """
    connector = aiohttp.TCPConnector(
        limit_per_host=2,           # Max 2 connections per controller IP
        ssl=False,                  # Local controllers use HTTP only
        force_close=True,           # Force connection cleanup
        enable_cleanup_closed=True  # Additional cleanup
    )

    return aiohttp.ClientSession(
        connector=connector,
        timeout=aiohttp.ClientTimeout(total=timeout_seconds)
    )

def create_probe_session(timeout_seconds: float = 2, max_connections: int = 256) -> aiohttp.ClientSession:
    """
    Create aiohttp session shared by every probe of one network sweep
    Connection pool is capped at the sweep concurrency; nothing is kept alive between probes
    """
    connector = aiohttp.TCPConnector(
        limit=max_connections,
        limit_per_host=0,           # Hosts are probed on several endpoints at once
        ssl=False,
        force_close=True,
        enable_cleanup_closed=True
    )

    logger.debug(f"Creating probe session (timeout={timeout_seconds}s, max_connections={max_connections})")
    return aiohttp.ClientSession(
        connector=connector,
        timeout=aiohttp.ClientTimeout(total=timeout_seconds)
    )
