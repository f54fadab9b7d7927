"""
Database initialization script.
"""
import logging
from budgetwise.db.session import init_db

logger = logging.getLogger(__name__)


def main():
    logging.basicConfig(level=logging.INFO)
    logger.info("Initializing database...")
    init_db()
    logger.info("Database initialized successfully!")


if __name__ == "__main__":
    main()
