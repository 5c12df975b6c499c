from app.domains.files.entities import UploadedFile
from app.domains.files.schemas import UploadedFileResponse

__all__ = ["UploadedFile", "UploadedFileResponse"]
