from app.models.base import Base, create_session_factory, get_engine
from app.models.document import LocalDocument

__all__ = ["Base", "LocalDocument", "get_engine", "create_session_factory"]
