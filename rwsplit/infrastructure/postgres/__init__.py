"""PostgreSQL connection handles with asyncpg.

This module provides:

- `AsyncpgConnection`: a connection handle for one target, backed by an asyncpg pool
- `DriverSettings`: asyncpg pool sizing shared by every target

Usage
-----
::

    pool = ReadWriteConnectionPool.from_config(config)  # uses AsyncpgConnection
    writer = await pool.aget_writer()
    await writer.aexecute("INSERT ...")
"""

from .config import AsyncpgServerSettings, DriverSettings
from .connection import AsyncpgConnection

__all__ = [
    "AsyncpgConnection",
    "AsyncpgServerSettings",
    "DriverSettings",
]
