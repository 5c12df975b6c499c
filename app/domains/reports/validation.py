from pathlib import PurePath

# Форматы результатов тестов, которые принимает генерация
ALLOWED_EXTENSIONS = frozenset({"xml", "json", "html", "csv", "txt", "log"})


def is_valid_format(filename: str) -> bool:
    """Проверка расширения файла без учета регистра; содержимое не анализируется"""
    suffix = PurePath(filename).suffix
    if not suffix:
        return False
    return suffix[1:].lower() in ALLOWED_EXTENSIONS
