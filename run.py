import logging

from utils.logging_config import setup_logging, silence_sql_loggers

# Initialize centralized logging configuration
setup_logging()

from app import main

# SQLAlchemy may reset logger levels while the engine is created on import
silence_sql_loggers()
logging.info("🔇 SQL loggers silenced (aiosqlite, sqlalchemy.*)")

if __name__ == '__main__':
    main()
