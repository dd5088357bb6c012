"""
Intake gate: decides whether an inbound email enters the invoice pipeline.

Rules are evaluated in order and the first failing rule wins. The gate has
no side effects; it only reads the email and the record store.
"""

from loguru import logger
from pydantic import BaseModel

from ..models.invoice import EligibilityDecision, EmailData
from .storage.invoice_store_base import InvoiceStoreBase

REASON_NO_MARKER = "subject lacks marker phrase"
REASON_EMPTY_CONTENT = "empty content"
REASON_DUPLICATE = "already processed"


class IntakeRulesConfig(BaseModel):
    """Configuration for the intake gate (loaded from environment)"""
    subject_marker: str = "tech invoice"
    duplicate_scan_window: int = 25
    strict_duplicate_check: bool = False


class IntakeValidator:
    """
    Eligibility gate for inbound emails.

    Duplicate detection is best-effort by default: only the most recent
    `duplicate_scan_window` records are inspected, so a message whose earlier
    record has been pushed out of that window is accepted again.
    strict_duplicate_check switches to an indexed lookup by source email id.
    Neither mode protects against two concurrent intakes of the same message.
    """

    def __init__(self, store: InvoiceStoreBase, config: IntakeRulesConfig = None):
        self.store = store
        self.config = config or IntakeRulesConfig()

    def _already_seen(self, source_email_id: str) -> bool:
        if self.config.strict_duplicate_check:
            return bool(self.store.find_by_source_email_id(source_email_id))

        recent = self.store.find_many(limit=self.config.duplicate_scan_window, offset=0)
        return any(record.source_email_id == source_email_id for record in recent)

    def is_eligible(self, email: EmailData) -> EligibilityDecision:
        """
        Evaluate the intake rules for an email.

        Returns:
            EligibilityDecision; reason names the first rule that failed
        """
        if self.config.subject_marker.lower() not in email.subject.lower():
            decision = EligibilityDecision(eligible=False, reason=REASON_NO_MARKER)
        elif not email.content or not email.content.strip():
            decision = EligibilityDecision(eligible=False, reason=REASON_EMPTY_CONTENT)
        elif self._already_seen(email.id):
            decision = EligibilityDecision(eligible=False, reason=REASON_DUPLICATE)
        else:
            decision = EligibilityDecision(eligible=True)

        logger.info(
            "Intake eligibility decision",
            email_id=email.id,
            eligible=decision.eligible,
            reason=decision.reason,
        )
        return decision


def create_intake_validator(
    store: InvoiceStoreBase,
    subject_marker: str = None,
    duplicate_scan_window: int = None,
    strict_duplicate_check: bool = None,
) -> IntakeValidator:
    """
    Factory function to create the intake gate with optional overrides.

    Uses environment variables as defaults.
    """
    from ..core.config import settings

    config = IntakeRulesConfig(
        subject_marker=subject_marker if subject_marker is not None else settings.intake_subject_marker,
        duplicate_scan_window=duplicate_scan_window if duplicate_scan_window is not None else settings.duplicate_scan_window,
        strict_duplicate_check=strict_duplicate_check if strict_duplicate_check is not None else settings.strict_duplicate_check,
    )
    return IntakeValidator(store, config)
