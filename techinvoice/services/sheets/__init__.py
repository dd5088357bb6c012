from .backend import HEADER_ROW, SheetHandle, SheetRow, SheetsBackend
from .google import GoogleSheetsBackend
from .sync import SpreadsheetSync

__all__ = [
    "HEADER_ROW",
    "GoogleSheetsBackend",
    "SheetHandle",
    "SheetRow",
    "SheetsBackend",
    "SpreadsheetSync",
]
