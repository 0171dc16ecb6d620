# backend/lexvault/services/__init__.py
from .audit import audit_service
from .clients import client_service
from .scan import scan_converter
from .storage import FileStorage

__all__ = ["audit_service", "client_service", "scan_converter", "FileStorage"]
