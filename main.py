# main.py
import os
import logging
import argparse
import sys
from typing import List, Optional

from inventory.config import DatabaseConfig, LoggingConfig
from inventory.database import PostgresDatabase
from inventory.exceptions import InventoryError
from inventory.models import ScanResult
from inventory.orchestrator import default_db_path, run_scan


def setup_logging(verbose: bool = False, log_file: str = LoggingConfig.FILE_PATH):
    """Настройка логирования"""
    logging.basicConfig(
        level = logging.DEBUG if verbose else LoggingConfig.LEVEL,
        format = '%(asctime)s - %(name)s - %(levelname)s - %(message)s',
        handlers=[
            logging.FileHandler(log_file),
            logging.StreamHandler()
        ]
    )
    return logging.getLogger(__name__)


def parse_arguments(argv: Optional[List[str]] = None):
    """Парсинг аргументов командной строки"""
    parser = argparse.ArgumentParser(description='File inventory scanner')
    parser.add_argument('-refresh', '--refresh', action='store_true',
                        help='Mark records not seen in this scan as deleted')
    parser.add_argument('--path', default='.', help='Path to scan')
    parser.add_argument('--db', help='SQLite database file (default: <path>/file_inventory.db)')
    parser.add_argument('--backend', choices=('sqlite', 'postgres'), default=DatabaseConfig.BACKEND,
                        help='Inventory store backend')
    parser.add_argument('--db-host', default=DatabaseConfig.HOST, help='Database host')
    parser.add_argument('--db-port', type=int, default=DatabaseConfig.PORT, help='Database port')
    parser.add_argument('--db-name', default=DatabaseConfig.NAME, help='Database name')
    parser.add_argument('--db-user', default=DatabaseConfig.USER, help='Database user')
    parser.add_argument('--db-password', default=DatabaseConfig.PASSWORD, help='Database password')
    parser.add_argument('-v', '--verbose', action='store_true', help='Debug logging')

    return parser.parse_args(argv)


def log_result(logger, result: ScanResult):
    """Логирование результатов сканирования"""
    logger.info(
        f"Scan completed for {result.root}:\n"
        f"  Directories: {result.directories:,}\n"
        f"  Files: {result.files:,}\n"
        f"  Total size: {result.total_size:,} bytes\n"
        f"  Inserted: {result.inserted:,}\n"
        f"  Updated: {result.updated:,}\n"
        f"  Marked deleted: {result.marked_deleted:,}\n"
        f"  Duration: {result.duration:.2f} seconds"
    )

    if result.inventory is not None:
        logger.info(
            f"Inventory totals:\n"
            f"  Live directories: {result.inventory.directories:,}\n"
            f"  Live files: {result.inventory.files:,}\n"
            f"  Live size: {result.inventory.total_size:,} bytes"
        )

    if result.errors:
        logger.error(f"Errors during scan: {len(result.errors)}")


def main(argv: Optional[List[str]] = None) -> int:
    """Основная функция"""
    args = parse_arguments(argv)
    logger = setup_logging(args.verbose)
    logger.info("Starting file inventory scanner")

    # Проверяем существование указанного пути
    if not os.path.isdir(args.path):
        logger.error(f"Path {args.path} does not exist")
        return 1

    db = None
    db_path = None
    try:
        if args.backend == 'postgres':
            db = PostgresDatabase(
                host = args.db_host,
                port = args.db_port,
                database = args.db_name,
                user = args.db_user,
                password = args.db_password
            )
            location = db.location
        else:
            db_path = args.db or default_db_path(args.path)
            location = db_path

        result = run_scan(
            args.path,
            refresh = args.refresh,
            db = db,
            db_path = db_path,
            excluded_paths = [LoggingConfig.FILE_PATH]
        )

    except InventoryError as e:
        logger.error(f"Critical error: {str(e)}")
        return 1
    finally:
        if db is not None:
            db.close()

    print(f"File inventory has been {'refreshed' if args.refresh else 'created'} in {location}")
    log_result(logger, result)
    logger.info("File inventory scanner finished")
    return 0


if __name__ == "__main__":
    sys.exit(main())
