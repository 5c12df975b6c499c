"""Файловое хранилище загруженных артефактов.

Хранилище только добавляет и читает файлы; удаление не поддерживается.
"""
import asyncio
import logging
import re
from pathlib import Path
from uuid import uuid4

logger = logging.getLogger(__name__)


def build_object_name(file_name: str) -> str:
    """Уникальное безопасное имя файла на диске"""
    safe_name = re.sub(r"[^A-Za-z0-9_.-]", "_", file_name) or "artifact.bin"
    return f"{uuid4()}_{safe_name}"


class ArtifactStore:
    def __init__(self, upload_dir: str):
        self.upload_dir = Path(upload_dir)

    async def save(self, file_name: str, payload: bytes) -> str:
        """Сохранение содержимого; возвращает путь для последующего чтения"""
        target = self.upload_dir / build_object_name(file_name)
        await asyncio.to_thread(self._write, target, payload)
        logger.info(f"Stored artifact {file_name} at {target} ({len(payload)} bytes)")
        return str(target)

    async def read(self, storage_path: str) -> bytes:
        return await asyncio.to_thread(Path(storage_path).read_bytes)

    def _write(self, target: Path, payload: bytes) -> None:
        target.parent.mkdir(parents=True, exist_ok=True)
        target.write_bytes(payload)
