import json
import logging
import os
from typing import Any, List, Optional, Tuple

from pydantic import ValidationError

from .errors import DocumentNotFound, DocumentParseError, DocumentValidationError
from .schemas import SERVICE_KINDS, CostDocument, FlatService, SkippedService

LOG = logging.getLogger(__name__)

CHARGES_PATH = os.environ.get("CHARGES_PATH", "data/charges.json")

USABLE_KEY = "AWS_usable_services"
DEFAULT_KEY = "AWS_default_services"


def _field_path(prefix: str, loc: Tuple[Any, ...]) -> str:
    path = prefix
    for part in loc:
        path += f"[{part}]" if isinstance(part, int) else f".{part}"
    return path


def _collect(prefix: str, err: ValidationError, into: List[Tuple[str, str]]):
    for e in err.errors():
        into.append((_field_path(prefix, e["loc"]), e["msg"]))


def parse_document(obj: Any) -> CostDocument:
    """Build a typed document from decoded JSON.

    Shape problems (not an object, missing or non-list service arrays) raise
    DocumentParseError. Field problems anywhere inside raise a single
    DocumentValidationError listing every offending path. Services with an
    unknown name are skipped and recorded on the document.
    """
    if not isinstance(obj, dict):
        raise DocumentParseError("charges document must be a JSON object")
    for key in (USABLE_KEY, DEFAULT_KEY):
        if not isinstance(obj.get(key), list):
            raise DocumentParseError(f"charges document needs a list under {key!r}")

    errors: List[Tuple[str, str]] = []
    usable, skipped = [], []
    for i, raw in enumerate(obj[USABLE_KEY]):
        prefix = f"{USABLE_KEY}[{i}]"
        if not isinstance(raw, dict):
            errors.append((prefix, "service entry must be an object"))
            continue
        name = raw.get("service")
        if name is not None and not isinstance(name, str):
            errors.append((f"{prefix}.service", "service name must be a string"))
            continue
        kind = SERVICE_KINDS.get(name)
        if kind is None:
            LOG.warning("unrecognized service %r at %s, excluded from totals", name, prefix)
            skipped.append(SkippedService(index=i, service=name, reason="unrecognized service"))
            continue
        try:
            usable.append(kind.model_validate(raw))
        except ValidationError as e:
            _collect(prefix, e, errors)

    default = []
    for i, raw in enumerate(obj[DEFAULT_KEY]):
        try:
            default.append(FlatService.model_validate(raw))
        except ValidationError as e:
            _collect(f"{DEFAULT_KEY}[{i}]", e, errors)

    if errors:
        raise DocumentValidationError(errors)
    return CostDocument(usable_services=usable, default_services=default, skipped_services=skipped)


def load_uploaded_document(raw: bytes) -> CostDocument:
    try:
        obj = json.loads(raw)
    except (UnicodeDecodeError, ValueError) as e:
        raise DocumentParseError(f"Invalid JSON file format: {e}") from e
    return parse_document(obj)


def load_default_document(path: Optional[str] = None) -> Optional[CostDocument]:
    """Load the well-known charges file; None means nothing to show yet."""
    path = path or CHARGES_PATH
    try:
        with open(path, "rb") as fh:
            raw = fh.read()
    except FileNotFoundError:
        LOG.info("No charges document at %s, please upload a file", path)
        return None
    except OSError as e:
        raise DocumentNotFound(f"cannot read {path}: {e}") from e
    return load_uploaded_document(raw)


class DocumentState:
    """The document currently on display and where it came from."""

    def __init__(self, document: Optional[CostDocument] = None, source: Optional[str] = None):
        self.document = document
        self.source = source

    @property
    def loaded(self) -> bool:
        return self.document is not None

    def require(self) -> CostDocument:
        if self.document is None:
            raise DocumentNotFound("no charges document loaded, upload one")
        return self.document

    def load_default(self, path: Optional[str] = None) -> bool:
        document = load_default_document(path)
        if document is None:
            return False
        self.document, self.source = document, path or CHARGES_PATH
        LOG.info("loaded charges document from %s", self.source)
        return True

    def replace_from_upload(self, raw: bytes, source: str = "upload") -> CostDocument:
        # a failed load raises before anything is swapped
        document = load_uploaded_document(raw)
        self.document, self.source = document, source
        LOG.info("loaded uploaded charges document %s", source)
        return document
