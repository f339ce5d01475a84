# inventory/exceptions.py
"""Иерархия исключений инвентаризации.

Все исключения пакета наследуются от InventoryError.
"""


class InventoryError(Exception):
    """Базовое исключение инвентаризации."""


class StoreError(InventoryError):
    """Хранилище недоступно: не открывается, не создаётся схема или запрос завершился ошибкой."""


class ScanError(InventoryError):
    """Корень сканирования отсутствует или не является каталогом."""
