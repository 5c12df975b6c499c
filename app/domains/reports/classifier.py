"""Классификация ответа сервиса генерации.

Ответ либо содержит маркер ``[ERROR]`` (сервис отклонил файл), либо
целиком является содержимым отчета с секциями ``[CONTEO]``, ``[TEL]``, ``[TIR]``.
"""
import re
from dataclasses import dataclass
from typing import Dict

ERROR_MARKER = "[ERROR]"

_SECTION_HEADER = re.compile(r"^[ \t]*\[([A-Z][A-Z0-9_]*)\][ \t]*$", re.MULTILINE)


@dataclass(frozen=True)
class ClassifiedResponse:
    is_error: bool
    content: str


def classify_response(text: str) -> ClassifiedResponse:
    """Разделение ответа на ошибку и успешное содержимое"""
    marker_at = text.find(ERROR_MARKER)
    if marker_at == -1:
        return ClassifiedResponse(is_error=False, content=text)

    # Маркер и все, что перед ним, отбрасываются
    detail = text[marker_at + len(ERROR_MARKER):].strip()
    return ClassifiedResponse(is_error=True, content=detail)


def split_sections(text: str) -> Dict[str, str]:
    """Разбиение успешного ответа на секции по заголовкам вида [TEL]"""
    sections: Dict[str, str] = {}
    headers = list(_SECTION_HEADER.finditer(text))

    for index, header in enumerate(headers):
        end = headers[index + 1].start() if index + 1 < len(headers) else len(text)
        sections[header.group(1)] = text[header.end():end].strip()

    return sections
