from office_core.domains.documents.entities import (
    CellEntry, Content, Document, DocumentKind, RichTextContent, Slide,
    SlideDeckContent, SpreadsheetContent, content_from_data, content_to_data,
    default_content
)
from office_core.domains.documents.schemas import (
    CellResponse, CellsResponse, CellUpdate, ContentUpdate, DocumentCreate,
    DocumentImport, DocumentListResponse, DocumentRename, DocumentResponse,
    OpenRequest, SessionResponse
)

__all__ = [
    "CellEntry", "Content", "Document", "DocumentKind", "RichTextContent", "Slide",
    "SlideDeckContent", "SpreadsheetContent", "content_from_data", "content_to_data",
    "default_content",
    "CellResponse", "CellsResponse", "CellUpdate", "ContentUpdate", "DocumentCreate",
    "DocumentImport", "DocumentListResponse", "DocumentRename", "DocumentResponse",
    "OpenRequest", "SessionResponse"
]
