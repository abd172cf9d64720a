"""Chat module."""

from .service import ChatService, IChatService
from .stickers import StickerCatalog

__all__ = ["ChatService", "IChatService", "StickerCatalog"]
