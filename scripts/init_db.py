#!/usr/bin/env python3
"""
RetailOps Database Initialization Script
Creates database tables and seeds roles, default warehouses and the administrator
"""
import logging

from retailops.core.database import SessionLocal, check_db_connection, init_db
from retailops.services.bootstrap import bootstrap

logging.basicConfig(level=logging.INFO)
logger = logging.getLogger(__name__)


def init_database():
    """Create the schema and seed reference data"""
    if not check_db_connection():
        raise RuntimeError("Database connection failed")

    init_db()

    session = SessionLocal()
    try:
        created = bootstrap(session)
    finally:
        session.close()

    logger.info(f"Database initialization completed successfully: {created}")


if __name__ == "__main__":
    init_database()
