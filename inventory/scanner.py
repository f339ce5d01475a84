# inventory/scanner.py

import os
import stat
import logging
from typing import Iterable, List, Set

from .attributes import file_attributes_string, get_extension
from .exceptions import ScanError
from .models import InventoryRecord
from .reconciler import Reconciler
from .timeutil import stat_times

logger = logging.getLogger(__name__)


def _normalize(path: str) -> str:
    return os.path.normcase(os.path.abspath(path))


class FilesystemScanner:
    """
    Рекурсивный обход дерева каталогов.
    Каждый элемент передаётся в Reconciler, каталог записывается
    до спуска в него. Символические ссылки записываются, но не
    разыменовываются, поэтому циклов при обходе не бывает.
    """

    def __init__(self, reconciler: Reconciler, excluded_paths: Iterable[str] = ()):
        self.reconciler = reconciler
        # Файлы самого хранилища и лога не сканируются
        self.excluded_paths: Set[str] = {_normalize(p) for p in excluded_paths}
        self.directories = 0
        self.files = 0
        self.total_size = 0
        self.errors: List[str] = []

    def _is_excluded(self, path: str) -> bool:
        return _normalize(path) in self.excluded_paths

    def _on_walk_error(self, error: OSError) -> None:
        """Каталог не открылся: поддерево пропускается, обход идёт дальше"""
        error_msg = f"Cannot open directory '{error.filename}': {error.strerror}"
        logger.error(error_msg)
        self.errors.append(error_msg)

    def build_record(self, dir_path: str, name: str) -> InventoryRecord:
        """Запись инвентаря для элемента name в каталоге dir_path"""
        abs_path = os.path.join(dir_path, name)
        file_stat = os.lstat(abs_path)
        is_directory = stat.S_ISDIR(file_stat.st_mode)
        created_time, modified_time, accessed_time = stat_times(file_stat)

        return InventoryRecord(
            name = name,
            path = abs_path,
            extension = get_extension(name),
            size = 0 if is_directory else file_stat.st_size,
            is_directory = is_directory,
            created_time = created_time,
            modified_time = modified_time,
            accessed_time = accessed_time,
            attributes = file_attributes_string(file_stat, name)
        )

    def _visit(self, dir_path: str, name: str) -> bool:
        """Сверка одного элемента; True, если в него нужно спускаться"""
        try:
            record = self.build_record(dir_path, name)
        except OSError as e:
            error_msg = f"Error processing {os.path.join(dir_path, name)}: {str(e)}"
            logger.error(error_msg)
            self.errors.append(error_msg)
            return False

        self.reconciler.reconcile(record)

        if record.is_directory:
            self.directories += 1
        else:
            self.files += 1
            self.total_size += record.size
        return record.is_directory

    def scan(self, root: str) -> None:
        """Обход дерева от root; сам root не записывается"""
        if not os.path.isdir(root):
            raise ScanError(f"Path {root} is not a directory")

        # Путь - ключ записи, поэтому он не должен зависеть от написания корня
        root = os.path.abspath(root)
        for dirpath, dirnames, filenames in os.walk(root, onerror=self._on_walk_error):
            # Спускаемся только в настоящие каталоги, записанные на этом шаге
            descend = []
            for dirname in dirnames:
                if self._is_excluded(os.path.join(dirpath, dirname)):
                    continue
                if self._visit(dirpath, dirname):
                    descend.append(dirname)
            dirnames[:] = descend

            for filename in filenames:
                if self._is_excluded(os.path.join(dirpath, filename)):
                    continue
                self._visit(dirpath, filename)

        logger.debug(
            f"Walked {root}: {self.directories} directories, "
            f"{self.files} files, {self.total_size} bytes"
        )
