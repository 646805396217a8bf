"""
Credscore — Graph database connection
Neo4j driver management and schema initialization.

Profiles, addresses, linked social accounts, reviews, stakes and invitations
all live in the graph; the directory and activity store query it through run_query().
"""
from contextlib import asynccontextmanager
from typing import Any, Dict, List, Optional

import structlog
from neo4j import AsyncDriver, AsyncGraphDatabase

from credscore.config import settings

logger = structlog.get_logger()

_driver: Optional[AsyncDriver] = None


def get_driver() -> AsyncDriver:
    """Get or create the Neo4j driver (singleton)."""
    global _driver
    if _driver is None:
        _driver = AsyncGraphDatabase.driver(
            settings.NEO4J_URI,
            auth=(settings.NEO4J_USER, settings.NEO4J_PASSWORD),
        )
        logger.info("neo4j_connected", uri=settings.NEO4J_URI)
    return _driver


@asynccontextmanager
async def get_session():
    """Get a Neo4j session (async context manager)."""
    session = get_driver().session()
    try:
        yield session
    finally:
        await session.close()


async def run_query(query: str, **params: Any) -> List[Dict[str, Any]]:
    """Run a read query and return every record as a dict."""
    async with get_session() as session:
        result = await session.run(query, params)
        return [record.data() async for record in result]


async def init_schema():
    """Constraints and indexes the scoring queries rely on."""
    constraints = [
        "CREATE CONSTRAINT IF NOT EXISTS FOR (p:Profile) REQUIRE p.profile_id IS UNIQUE",
        "CREATE CONSTRAINT IF NOT EXISTS FOR (a:Address) REQUIRE a.address IS UNIQUE",
        "CREATE CONSTRAINT IF NOT EXISTS FOR (s:SocialProfile) REQUIRE s.account_id IS UNIQUE",
    ]

    indexes = [
        "CREATE INDEX IF NOT EXISTS FOR (s:SocialProfile) ON (s.username)",
        "CREATE INDEX IF NOT EXISTS FOR (r:Review) ON (r.subject)",
        "CREATE INDEX IF NOT EXISTS FOR (v:Vouch) ON (v.subject_profile_id)",
    ]

    async with get_session() as session:
        for query in constraints + indexes:
            try:
                await session.run(query)
            except Exception as e:
                logger.warning("schema_init_warning", query=query[:60], error=str(e))

    logger.info("schema_initialized", constraints=len(constraints), indexes=len(indexes))


async def close():
    """Close the Neo4j driver."""
    global _driver
    if _driver:
        await _driver.close()
        _driver = None
        logger.info("neo4j_disconnected")
