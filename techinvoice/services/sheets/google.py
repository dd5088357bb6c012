"""
Google Sheets backend over the Sheets v4 REST API.

Authentication uses a service account (email + private key from settings);
HTTP calls go through httpx.AsyncClient.
"""

import asyncio
from typing import Optional
from urllib.parse import quote

import httpx
from loguru import logger
from google.auth.transport.requests import Request as GoogleAuthRequest
from google.oauth2 import service_account

from .backend import HEADER_ROW, SheetHandle, SheetRow, SheetsBackend
from ...core.config import settings

SHEETS_SCOPES = ["https://www.googleapis.com/auth/spreadsheets"]
TOKEN_URI = "https://oauth2.googleapis.com/token"


class GoogleSheetsBackend(SheetsBackend):
    def __init__(
        self,
        spreadsheet_id: Optional[str] = None,
        service_account_email: Optional[str] = None,
        private_key: Optional[str] = None,
        api_base: Optional[str] = None,
        default_sheet_title: Optional[str] = None,
        credentials=None,
        timeout: float = 10.0,
    ):
        """
        Args:
            spreadsheet_id: Target document (GOOGLE_SHEET_ID)
            service_account_email: Service account (GOOGLE_SERVICE_ACCOUNT_EMAIL)
            private_key: PEM key with real newlines (GOOGLE_PRIVATE_KEY)
            api_base: Sheets API root, overridable for tests
            default_sheet_title: Title used when the document has no sheets yet
            credentials: Pre-built google-auth credentials (skips key loading)
        """
        self.spreadsheet_id = spreadsheet_id or settings.google_sheet_id
        self.service_account_email = service_account_email or settings.google_service_account_email
        self.private_key = private_key or settings.google_private_key_pem
        self.api_base = (api_base or settings.google_sheets_api_base).rstrip("/")
        self.default_sheet_title = default_sheet_title or settings.sheet_title
        self.timeout = timeout
        self._credentials = credentials

    def _load_credentials(self):
        if self._credentials is not None:
            return self._credentials

        if not self.spreadsheet_id:
            raise ValueError("GOOGLE_SHEET_ID environment variable is required")
        if not self.service_account_email or not self.private_key:
            raise ValueError("Google service account credentials are required")

        self._credentials = service_account.Credentials.from_service_account_info(
            {
                "type": "service_account",
                "client_email": self.service_account_email,
                "private_key": self.private_key,
                "token_uri": TOKEN_URI,
            },
            scopes=SHEETS_SCOPES,
        )
        return self._credentials

    async def _auth_headers(self) -> dict:
        credentials = self._load_credentials()
        if not credentials.valid:
            # google-auth refreshes synchronously
            await asyncio.to_thread(credentials.refresh, GoogleAuthRequest())
        return {"Authorization": f"Bearer {credentials.token}"}

    def _url(self, path: str) -> str:
        return f"{self.api_base}/spreadsheets/{self.spreadsheet_id}{path}"

    @staticmethod
    def _range(sheet_title: str, cells: str) -> str:
        escaped = sheet_title.replace("'", "''")
        return quote(f"'{escaped}'!{cells}", safe="")

    async def open(self) -> SheetHandle:
        if not self.spreadsheet_id:
            raise ValueError("GOOGLE_SHEET_ID environment variable is required")

        headers = await self._auth_headers()

        async with httpx.AsyncClient(timeout=self.timeout) as client:
            r = await client.get(
                self._url(""),
                params={"fields": "sheets.properties.title"},
                headers=headers,
            )
            r.raise_for_status()
            sheets = r.json().get("sheets") or []

            if sheets:
                sheet_title = sheets[0]["properties"]["title"]
            else:
                sheet_title = self.default_sheet_title
                logger.info("Spreadsheet has no sheets, creating one", sheet_title=sheet_title)
                r = await client.post(
                    self._url(":batchUpdate"),
                    json={"requests": [{"addSheet": {"properties": {"title": sheet_title}}}]},
                    headers=headers,
                )
                r.raise_for_status()

            r = await client.get(
                self._url(f"/values/{self._range(sheet_title, 'A1:E1')}"),
                headers=headers,
            )
            r.raise_for_status()
            first_row = (r.json().get("values") or [[]])[0]

            if not any(first_row[:3]):
                logger.info("Writing header row", sheet_title=sheet_title)
                r = await client.put(
                    self._url(f"/values/{self._range(sheet_title, 'A1:E1')}"),
                    params={"valueInputOption": "RAW"},
                    json={"values": [HEADER_ROW]},
                    headers=headers,
                )
                r.raise_for_status()

        logger.info("Google Sheets document opened", spreadsheet_id=self.spreadsheet_id, sheet_title=sheet_title)
        return SheetHandle(spreadsheet_id=self.spreadsheet_id, sheet_title=sheet_title)

    async def append_row(self, handle: SheetHandle, row: SheetRow) -> None:
        headers = await self._auth_headers()

        async with httpx.AsyncClient(timeout=self.timeout) as client:
            r = await client.post(
                self._url(f"/values/{self._range(handle.sheet_title, 'A1:E1')}:append"),
                params={"valueInputOption": "USER_ENTERED", "insertDataOption": "INSERT_ROWS"},
                json={"values": [row.values()]},
                headers=headers,
            )
            r.raise_for_status()
