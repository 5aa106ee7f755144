from typing import List, Tuple


class CostboardError(Exception):
    pass


class DocumentNotFound(CostboardError):
    """The charges document is absent or unreachable; await an upload."""


class DocumentParseError(CostboardError):
    """Malformed JSON or a document that is not shaped like a charges file."""


class DocumentValidationError(CostboardError):
    """Well-formed document with fields that cannot be priced."""

    def __init__(self, errors: List[Tuple[str, str]]):
        self.errors = errors
        detail = "; ".join(f"{path}: {message}" for path, message in errors)
        super().__init__(f"invalid charges document: {detail}")

    def as_dicts(self):
        return [{"field": path, "message": message} for path, message in self.errors]
