# inventory/reconciler.py

import logging
from typing import List, Optional

from .database import Database
from .exceptions import StoreError
from .models import InventoryRecord

logger = logging.getLogger(__name__)


class Reconciler:
    """Сверка наблюдаемых записей с хранилищем по пути"""

    def __init__(self, db: Database, scan_time: int):
        self.db = db
        self.scan_time = scan_time
        self.inserted = 0
        self.updated = 0
        self.errors: List[str] = []

    def reconcile(self, record: InventoryRecord) -> Optional[str]:
        """
        Приведение записи по пути record.path к текущему состоянию.
        При ошибке записи возвращает None, обход продолжается.
        """
        try:
            outcome = self.db.upsert_record(record, self.scan_time)
        except StoreError as e:
            error_msg = f"Error saving record {record.path}: {str(e)}"
            logger.error(error_msg)
            self.errors.append(error_msg)
            return None

        if outcome == 'inserted':
            self.inserted += 1
        else:
            self.updated += 1
        logger.debug(f"{outcome} {record.path}")
        return outcome
