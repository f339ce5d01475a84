# inventory/attributes.py
"""Нормализованная классификация файлов: расширение и строка атрибутов.

Строка атрибутов строится из флагов в стиле Windows (FILE_ATTRIBUTE_*).
На Windows берётся st_file_attributes как есть, на POSIX флаги выводятся
из режима файла и имени. Флаги S (system) и A (archive) на POSIX
эквивалента не имеют и там всегда отсутствуют.
"""

import os
import stat

# Канонический порядок символов в строке атрибутов
ATTRIBUTE_CODES = (
    (stat.FILE_ATTRIBUTE_READONLY, 'R'),
    (stat.FILE_ATTRIBUTE_HIDDEN, 'H'),
    (stat.FILE_ATTRIBUTE_SYSTEM, 'S'),
    (stat.FILE_ATTRIBUTE_DIRECTORY, 'D'),
    (stat.FILE_ATTRIBUTE_ARCHIVE, 'A'),
    (stat.FILE_ATTRIBUTE_NORMAL, 'N'),
)


def get_extension(name: str) -> str:
    """Расширение после последней точки в нижнем регистре; у dot-файлов расширения нет"""
    dot = name.rfind('.')
    if dot <= 0:
        return ''
    return name[dot + 1:].lower()


def encode_attributes(flags: int) -> str:
    """Кодирование флагов в строку вида 'RHSDAN'"""
    return ''.join(code for flag, code in ATTRIBUTE_CODES if flags & flag)


def attribute_flags(st: os.stat_result, name: str) -> int:
    """Флаги FILE_ATTRIBUTE_* для результата stat"""
    native = getattr(st, 'st_file_attributes', None)
    if native is not None:
        return native

    flags = 0
    if not st.st_mode & stat.S_IWUSR:
        flags |= stat.FILE_ATTRIBUTE_READONLY
    if name.startswith('.') and name not in ('.', '..'):
        flags |= stat.FILE_ATTRIBUTE_HIDDEN
    if stat.S_ISDIR(st.st_mode):
        flags |= stat.FILE_ATTRIBUTE_DIRECTORY
    if not flags and stat.S_ISREG(st.st_mode):
        flags |= stat.FILE_ATTRIBUTE_NORMAL
    return flags


def file_attributes_string(st: os.stat_result, name: str) -> str:
    return encode_attributes(attribute_flags(st, name))
