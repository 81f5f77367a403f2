# --- Error types -------------------------------------------------------------
from enum import Enum


class ErrorCode(Enum):
    """Fixed error codes surfaced to callers of a scan."""
    GET_METHOD_INVOKE_LINK_FAIL = (10001, "Failed to build method invoke links")
    VERSION_CONTROL_FAIL = (10002, "Failed to read changes from version control")

    @property
    def code(self) -> int:
        return self.value[0]

    @property
    def message(self) -> str:
        return self.value[1]


class ChainBuildError(Exception):
    """
    Fatal failure of a whole analysis run. Raised at or above the artifact-root
    boundary; nothing below that boundary ever raises it.
    """

    def __init__(self, error_code: ErrorCode, detail: str = ""):
        self.error_code = error_code
        self.detail = detail
        message = f"[{error_code.code}] {error_code.message}"
        if detail:
            message = f"{message}: {detail}"
        super().__init__(message)

    @property
    def code(self) -> int:
        return self.error_code.code


class ClassFormatError(ValueError):
    """A class file is truncated or structurally invalid."""
