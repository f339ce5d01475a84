# inventory/config.py

import logging
import os

class DatabaseConfig:
    BACKEND = os.getenv('INVENTORY_DB_BACKEND', 'sqlite')
    SQLITE_NAME = os.getenv('INVENTORY_DB_NAME', 'file_inventory.db')
    HOST = os.getenv('DB_HOST', 'localhost')
    PORT = int(os.getenv('DB_PORT', '5432'))
    NAME = os.getenv('DB_NAME', 'inventory')
    USER = os.getenv('DB_USER', 'user')
    PASSWORD = os.getenv('DB_PASSWORD', 'password')

class LoggingConfig:
    LEVEL = logging.INFO
    FILE_PATH = os.getenv('LOG_FILE', 'inventory.log')
