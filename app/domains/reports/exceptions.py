import uuid


class ReportError(Exception):
    """Базовая ошибка домена Reports"""


class ReportNotFoundError(ReportError):
    def __init__(self, report_id: uuid.UUID):
        super().__init__(f"Report {report_id} not found")
        self.report_id = report_id


class FileNotFoundInStoreError(ReportError):
    def __init__(self, file_id: uuid.UUID):
        super().__init__(f"File {file_id} not found")
        self.file_id = file_id


class VersionNotFoundError(ReportError):
    def __init__(self, version_id):
        super().__init__(f"Version {version_id} not found")
        self.version_id = version_id


class UnsupportedFormatError(ReportError):
    def __init__(self, file_name: str):
        super().__init__(f"Unsupported file format: {file_name}")
        self.file_name = file_name


class DuplicateContentError(ReportError):
    def __init__(self):
        super().__init__("Duplicate content: use the instruction text to adjust the report")


class MissingVersionReferenceError(ReportError):
    def __init__(self):
        super().__init__("previous_version_id is required to regenerate a report")


class ReportBusyError(ReportError):
    def __init__(self, report_id: uuid.UUID):
        super().__init__(f"Report {report_id} already has a generation in progress")
        self.report_id = report_id


class InvalidTransitionError(ReportError):
    def __init__(self, current, target):
        super().__init__(f"Cannot move report from {current.value} to {target.value}")
        self.current = current
        self.target = target
