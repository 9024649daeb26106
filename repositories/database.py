# ============================================================================
# DATABASE CONNECTION POOL
# ============================================================================
# EPOCH: 1 - WORKFLOW ORCHESTRATION
# STATUS: Core - Async PostgreSQL connection management
# PURPOSE: Connection pooling, transactions and table identifiers
# CREATED: 19 OCT 2026
# ============================================================================
"""
Database Connection Pool

Manages async PostgreSQL connections using psycopg3 and psycopg_pool.
Singleton pattern ensures one pool per application.

Supports two authentication methods:
1. Managed Identity (Azure) - USE_MANAGED_IDENTITY=true
2. Password auth (local dev) - DATABASE_URL or POSTGRES_* vars

Repositories accept an optional connection. When the workflow façade
needs several writes to commit together (job update + package debit,
chain insert + debits) it opens one transaction and passes the
connection down:

    async with transaction(pool) as conn:
        await ledger.debit(..., conn=conn)
        await jobs.update(job, conn=conn)
"""

import os
import logging
from typing import Optional
from contextlib import asynccontextmanager

from psycopg import AsyncConnection, OperationalError, sql
from psycopg_pool import AsyncConnectionPool, PoolTimeout

from core.config import get_defaults
from core.errors import StoreUnavailableError

logger = logging.getLogger(__name__)

# Global pool instance
_pool: Optional[AsyncConnectionPool] = None

# OAuth scope for Azure Database for PostgreSQL
POSTGRES_SCOPE = "https://ossrdbms-aad.database.windows.net/.default"


def _get_managed_identity_token() -> str:
    """Acquire a PostgreSQL access token with the app's managed identity."""
    from azure.identity import DefaultAzureCredential, ManagedIdentityCredential

    client_id = os.environ.get("AZURE_CLIENT_ID")
    if client_id:
        logger.info(f"Using user-assigned Managed Identity: {client_id[:8]}...")
        credential = ManagedIdentityCredential(client_id=client_id)
    else:
        credential = DefaultAzureCredential()

    return credential.get_token(POSTGRES_SCOPE).token


def get_connection_string() -> str:
    """
    Get database connection string from environment.

    Priority:
    1. Managed Identity (if USE_MANAGED_IDENTITY=true)
    2. DATABASE_URL environment variable
    3. Individual POSTGRES_* components

    Returns:
        PostgreSQL connection string
    """
    host = os.environ.get("POSTGRES_HOST", "localhost")
    port = os.environ.get("POSTGRES_PORT", "5432")
    name = os.environ.get("POSTGRES_DB", "postgres")
    sslmode = os.environ.get("POSTGRES_SSLMODE", "require")

    if os.environ.get("USE_MANAGED_IDENTITY", "false").lower() == "true":
        identity_name = os.environ.get("POSTGRES_IDENTITY_NAME", "")
        logger.info("Using Managed Identity for PostgreSQL authentication")
        token = _get_managed_identity_token()
        return (
            f"host={host} port={port} dbname={name} "
            f"user={identity_name} password={token} sslmode={sslmode}"
        )

    if url := os.environ.get("DATABASE_URL"):
        return url

    user = os.environ.get("POSTGRES_USER", "postgres")
    password = os.environ.get("POSTGRES_PASSWORD", "")

    return f"postgresql://{user}:{password}@{host}:{port}/{name}?sslmode={sslmode}"


def _safe_conninfo(conninfo: str) -> str:
    """Connection info with the password masked for logging."""
    if "@" in conninfo:
        return conninfo.split("@")[-1]
    if "password=" in conninfo:
        return conninfo.split("password=")[0] + "password=***"
    return conninfo


async def init_pool(
    min_size: Optional[int] = None,
    max_size: Optional[int] = None,
    connection_string: Optional[str] = None,
) -> AsyncConnectionPool:
    """
    Initialize the global connection pool.

    Args:
        min_size: Minimum connections to maintain
        max_size: Maximum connections allowed
        connection_string: Override connection string (defaults to env)

    Returns:
        AsyncConnectionPool instance
    """
    global _pool

    if _pool is not None:
        logger.warning("Pool already initialized, returning existing pool")
        return _pool

    db_defaults = get_defaults().database
    min_size = min_size or db_defaults.pool_min_size
    max_size = max_size or db_defaults.pool_max_size

    conninfo = connection_string or get_connection_string()
    logger.info(f"Initializing connection pool: {_safe_conninfo(conninfo)}")

    _pool = AsyncConnectionPool(
        conninfo=conninfo,
        min_size=min_size,
        max_size=max_size,
        timeout=db_defaults.pool_timeout,
        open=False,
    )

    await _pool.open()
    logger.info(f"Connection pool opened (min={min_size}, max={max_size})")

    return _pool


async def get_pool() -> AsyncConnectionPool:
    """Get the global connection pool, initializing if needed."""
    global _pool

    if _pool is None:
        await init_pool()

    return _pool


async def close_pool() -> None:
    """Close the global connection pool."""
    global _pool

    if _pool is not None:
        await _pool.close()
        _pool = None
        logger.info("Connection pool closed")


@asynccontextmanager
async def use_connection(
    pool: AsyncConnectionPool,
    conn: Optional[AsyncConnection] = None,
):
    """
    Yield the caller's connection, or borrow one from the pool.

    Connection-level failures surface as StoreUnavailableError.
    """
    if conn is not None:
        yield conn
        return

    try:
        async with pool.connection() as pooled:
            yield pooled
    except (OperationalError, PoolTimeout) as e:
        logger.error(f"Database unavailable: {type(e).__name__}: {e}")
        raise StoreUnavailableError(f"Database unavailable: {e}") from e


@asynccontextmanager
async def transaction(pool: AsyncConnectionPool):
    """
    Open one transaction; commits on success, rolls back on any exception.

    Usage:
        async with transaction(pool) as conn:
            await repo.update(job, conn=conn)
    """
    async with use_connection(pool) as conn:
        async with conn.transaction():
            yield conn


# ============================================================================
# SCHEMA CONSTANTS
# ============================================================================

SCHEMA = get_defaults().database.schema

# Table identifiers - use with sql.SQL().format() for injection-safe queries
TABLE_JOBS = sql.Identifier(SCHEMA, "jobs")
TABLE_WORKERS = sql.Identifier(SCHEMA, "workers")
TABLE_PACKAGE_SERVICES = sql.Identifier(SCHEMA, "package_services")
TABLE_CLIENT_PACKAGES = sql.Identifier(SCHEMA, "client_packages")
TABLE_PACKAGE_USAGE = sql.Identifier(SCHEMA, "package_usage")
TABLE_NOTIFICATIONS = sql.Identifier(SCHEMA, "notifications")
TABLE_JOB_COMMENTS = sql.Identifier(SCHEMA, "job_comments")
TABLE_JOB_EVENTS = sql.Identifier(SCHEMA, "job_events")
