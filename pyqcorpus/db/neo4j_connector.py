import os
from typing import Any, Dict, List, Optional

from neo4j import GraphDatabase

from pyqcorpus.config import load_env_file

_driver = None


def get_driver():
    """Return the shared Neo4j driver, creating it on first use."""
    global _driver
    if _driver is None:
        uri, user, pwd = _get_neo4j_config()
        try:
            _driver = GraphDatabase.driver(uri, auth=(user, pwd))
        except Exception as exc:
            raise RuntimeError(
                f"Failed to create Neo4j driver for URI '{uri}'. Check that the database is running and the credentials are correct.\nError: {exc}"
            ) from exc
    return _driver


def close_driver():
    global _driver
    if _driver is not None:
        _driver.close()
        _driver = None


def run_cypher(query: str, parameters: Optional[Dict[str, Any]] = None) -> List[Dict[str, Any]]:
    """Run a Cypher statement and return list of records as dicts."""
    driver = get_driver()
    with driver.session() as session:
        result = session.run(query, parameters or {})
        return [record.data() for record in result]


def _get_neo4j_config():
    """Get Neo4j URI, user, and password, loading .env if necessary and applying defaults.

    Returns (uri, user, password). Raises a helpful RuntimeError when the password is missing.
    """
    load_env_file()

    uri = os.getenv("NEO4J_URI") or "bolt://localhost:7687"
    user = os.getenv("NEO4J_USER") or "neo4j"
    pwd = os.getenv("NEO4J_PASSWORD")

    if not pwd:
        raise RuntimeError(
            "NEO4J_PASSWORD is not set.\n"
            "Define NEO4J_URI / NEO4J_USER / NEO4J_PASSWORD in your environment or in a .env file at the project root."
        )

    return uri, user, pwd
