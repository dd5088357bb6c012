import json
import math
import re
from typing import Any, Optional

from loguru import logger
from openai import AsyncOpenAI

from ..core.config import settings
from ..core.errors import ExtractionError
from ..models.invoice import EmailData, ExtractedFields

SYSTEM_PROMPT = (
    "You are an expert at extracting structured invoice data from emails. "
    "Always return valid JSON."
)

EXTRACTION_PROMPT = """Extract invoice information from this email and return ONLY a JSON object.

Email: {email_content}

Return JSON with these exact fields:
{{
  "sender": "company or person name",
  "invoiceDate": "YYYY-MM-DD format",
  "amount": number (just the number, no currency symbols)
}}

If any field cannot be determined, use null."""

ISO_DATE_PATTERN = re.compile(r"^\d{4}-\d{2}-\d{2}$")


def build_email_context(email: EmailData) -> str:
    """Subject, sender and body as one block of text for the model"""
    return (
        f"Subject: {email.subject}\n"
        f"From: {email.sender}\n"
        f"Content: {email.content}"
    ).strip()


def normalize_extraction(raw: Any) -> ExtractedFields:
    """
    Validate a decoded model response into ExtractedFields.

    Missing or empty values become None. amount must be a finite number and
    invoiceDate must look like YYYY-MM-DD, otherwise they are dropped.

    Raises:
        ExtractionError: If raw is not a JSON object
    """
    if not isinstance(raw, dict):
        raise ExtractionError("Failed to extract invoice data: Invalid response format from AI")

    sender = raw.get("sender") or None
    if sender is not None and not isinstance(sender, str):
        sender = str(sender)

    amount = raw.get("amount") or None
    if amount is not None:
        # bool is an int subclass; "true" is not an amount
        if isinstance(amount, bool) or not isinstance(amount, (int, float)) or not math.isfinite(amount):
            amount = None
        else:
            amount = float(amount)

    invoice_date = raw.get("invoiceDate") or None
    if invoice_date is not None:
        if not isinstance(invoice_date, str) or not ISO_DATE_PATTERN.match(invoice_date):
            invoice_date = None

    return ExtractedFields(sender=sender, invoice_date=invoice_date, amount=amount)


class InvoiceExtractor:
    """
    Turns email text into ExtractedFields with a chat-completion model.

    The extractor never retries; a failed call surfaces as ExtractionError and
    the caller decides what to do with it.
    """

    def __init__(
        self,
        client: Optional[AsyncOpenAI] = None,
        model: Optional[str] = None,
        temperature: Optional[float] = None,
        max_tokens: Optional[int] = None,
    ):
        self._client = client
        self.model = model or settings.openai_model
        self.temperature = settings.extraction_temperature if temperature is None else temperature
        self.max_tokens = max_tokens or settings.extraction_max_tokens

    @property
    def client(self) -> AsyncOpenAI:
        if self._client is None:
            if not settings.openai_api_key:
                raise ExtractionError("OPENAI_API_KEY is not configured")
            self._client = AsyncOpenAI(api_key=settings.openai_api_key, base_url=settings.openai_base_url)
        return self._client

    async def extract(self, email: EmailData) -> ExtractedFields:
        """
        Extract sender, invoice date and amount from an email.

        Raises:
            ExtractionError: On API failure, empty response or non-object JSON
        """
        prompt = EXTRACTION_PROMPT.format(email_content=build_email_context(email))

        try:
            completion = await self.client.chat.completions.create(
                model=self.model,
                messages=[
                    {"role": "system", "content": SYSTEM_PROMPT},
                    {"role": "user", "content": prompt},
                ],
                temperature=self.temperature,
                max_tokens=self.max_tokens,
            )
        except ExtractionError:
            raise
        except Exception as e:
            logger.error(f"LLM extraction call failed: {e}", email_id=email.id)
            raise ExtractionError(f"Failed to extract invoice data: {e}") from e

        response = completion.choices[0].message.content if completion.choices else None
        if not response:
            logger.error("Empty response from LLM", email_id=email.id)
            raise ExtractionError("Failed to extract invoice data: No response from model")

        try:
            raw = json.loads(response)
        except json.JSONDecodeError as e:
            logger.error(f"LLM returned invalid JSON: {e}", email_id=email.id, response=response[:200])
            raise ExtractionError(f"Failed to extract invoice data: invalid JSON ({e})") from e

        fields = normalize_extraction(raw)
        logger.info(
            "Extracted invoice fields",
            email_id=email.id,
            sender=fields.sender,
            invoice_date=fields.invoice_date,
            amount=fields.amount,
        )
        return fields

