from app.crud.document import (
    get_document,
    save_document,
)

__all__ = [
    "get_document",
    "save_document",
]
