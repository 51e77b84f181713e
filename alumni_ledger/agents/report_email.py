"""
Report Email Agent

Drafts the email a class bookkeeper sends to share a filtered report.

CRITICAL BOUNDARIES:
   - CAN: Word the subject, greeting and closing
   - CAN: Lay out the entries it is given as a markdown table
   - CANNOT: Send anything (the draft is handed back to the operator)
   - CANNOT: Invent entries or totals (the summary is computed here and
     passed in, never asked for)

The LLM is a WRITER, not an ACCOUNTANT.
If it fails in any way, a plain deterministic draft is returned instead,
so the operator always gets something to send.
"""

import json
import re
from collections.abc import Iterable
from typing import Any, Optional

import google.generativeai as genai
import structlog
from pydantic import BaseModel, Field

from alumni_ledger.config import get_settings
from alumni_ledger.models.ledger import LedgerEntry, ReportFilter, ReportSummary

logger = structlog.get_logger(__name__)

EMAIL_PATTERN = re.compile(r"^[^\s@]+@[^\s@]+\.[^\s@]+$")


class EmailDraft(BaseModel):
    """A drafted report email, ready for the operator to copy."""

    recipients: list[str] = Field(..., min_length=1)
    subject: str = Field(..., min_length=1)
    body: str = Field(..., min_length=1)
    entry_count: int = Field(
        ...,
        ge=0,
        description="How many entries are embedded in the body"
    )
    used_llm: bool = Field(
        description="False when the deterministic fallback was used"
    )


def is_valid_email(address: str) -> bool:
    return bool(EMAIL_PATTERN.match(address))


def clean_recipients(addresses: Iterable[str]) -> tuple[list[str], list[str]]:
    """
    Split raw addresses into (valid, rejected), dropping blanks and repeats.

    Addresses may be given one per item or separated by commas/spaces.
    """
    valid: list[str] = []
    rejected: list[str] = []
    for raw in addresses:
        for address in re.split(r"[,\s]+", raw or ""):
            if not address:
                continue
            if not is_valid_email(address):
                rejected.append(address)
            elif address not in valid:
                valid.append(address)
    return valid, rejected


def _format_usd(amount) -> str:
    sign = "-" if amount < 0 else ""
    return f"{sign}${abs(amount):,.2f}"


def _markdown_table(entries: list[LedgerEntry]) -> str:
    lines = [
        "| Date | Classmate | Description | Category | Amount |",
        "| --- | --- | --- | --- | --- |",
    ]
    for entry in entries:
        description = entry.description.replace("|", "/")
        lines.append(
            f"| {entry.date.isoformat()} | {entry.classmate_name} | {description} "
            f"| {entry.category.value} | {entry.amount:.2f} |"
        )
    return "\n".join(lines)


class ReportEmailAgent:
    """
    AI agent that drafts report emails.

    RESPONSIBILITIES:
    - Turn a report summary and its top entries into a readable email

    BOUNDARIES:
    - NEVER sends email
    - NEVER computes or alters figures
    """

    def __init__(
        self,
        model: Optional[Any] = None,
        max_rows: Optional[int] = None,
    ):
        """
        Initialize the agent.

        Args:
            model: Anything with generate_content(prompt) returning an
                   object with a .text attribute. Defaults to Gemini.
            max_rows: Entries embedded in the body. Defaults to the
                      configured report_email_max_rows.
        """
        self._max_rows = max_rows or get_settings().app.report_email_max_rows
        self._model = model if model is not None else self._configure_genai()

    def _configure_genai(self):
        """Configure Google Generative AI."""
        settings = get_settings().gemini
        genai.configure(api_key=settings.api_key)
        return genai.GenerativeModel(
            model_name=settings.model_name,
            generation_config={
                "temperature": settings.temperature,
                "max_output_tokens": settings.max_tokens,
                "response_mime_type": "application/json",
            }
        )

    def _build_prompt(
        self,
        rows: list[LedgerEntry],
        summary: ReportSummary,
        filters: ReportFilter,
    ) -> str:
        transactions = [
            {
                "Date": entry.date.isoformat(),
                "Classmate": entry.classmate_name,
                "Description": entry.description,
                "Category": entry.category.value,
                "Amount": f"{entry.amount:.2f}",
            }
            for entry in rows
        ]
        start = filters.start_date.isoformat() if filters.start_date else "N/A"
        end = filters.end_date.isoformat() if filters.end_date else "N/A"

        return f"""Generate a professional email draft for an alumni association bookkeeper.
The purpose of the email is to share a filtered transaction report.

The report summary is:
- Total Transactions: {summary.count}
- Total Amount: {_format_usd(summary.total_amount)}
- Date Range: {start} to {end}

The email should contain:
1. A clear subject line.
2. A polite opening.
3. The report summary.
4. A statement mentioning that the top {self._max_rows} transactions are included below and the full report can be exported as a CSV.
5. A markdown table of the transaction data provided.
6. A professional closing.

Use ONLY the data below. Do NOT add transactions or change any amount.

Here is the transaction data (JSON format):
{json.dumps(transactions, indent=2)}

Respond with ONLY a JSON object in this exact format:
{{"subject": "...", "body": "..."}}"""

    def _parse_response(self, text: str) -> tuple[str, str]:
        text = text.strip()
        start = text.find("{")
        end = text.rfind("}") + 1
        if start < 0 or end <= start:
            raise ValueError("No JSON object in model response")

        data = json.loads(text[start:end])
        subject = str(data.get("subject", "")).strip()
        body = str(data.get("body", "")).strip()
        if not subject or not body:
            raise ValueError("Model response is missing subject or body")
        return subject, body

    def fallback_draft(
        self,
        rows: list[LedgerEntry],
        summary: ReportSummary,
        filters: ReportFilter,
    ) -> tuple[str, str]:
        """Deterministic subject and body used when the LLM is unavailable."""
        start = filters.start_date.isoformat() if filters.start_date else "N/A"
        end = filters.end_date.isoformat() if filters.end_date else "N/A"
        subject = f"Class Transaction Report ({start} to {end})"
        body = "\n".join([
            "Hello,",
            "",
            "Please find below a summary of the class transaction report.",
            "",
            f"- Total Transactions: {summary.count}",
            f"- Total Amount: {_format_usd(summary.total_amount)}",
            f"- Date Range: {start} to {end}",
            "",
            f"The top {len(rows)} transactions are included below. "
            "The full report can be exported as a CSV.",
            "",
            _markdown_table(rows),
            "",
            "Best regards,",
            "Class Bookkeeper",
        ])
        return subject, body

    def draft(
        self,
        recipients: Iterable[str],
        entries: list[LedgerEntry],
        summary: ReportSummary,
        filters: Optional[ReportFilter] = None,
    ) -> EmailDraft:
        """
        Draft a report email for the given (already filtered) entries.

        Raises:
            ValueError: No valid recipient, or nothing to report
        """
        valid, rejected = clean_recipients(recipients)
        if rejected:
            logger.warning("report_email_recipients_rejected", rejected=rejected)
        if not valid:
            raise ValueError("At least one valid recipient email is required")
        if not entries:
            raise ValueError("There are no transactions to report")

        filters = filters or ReportFilter()
        rows = entries[:self._max_rows]

        try:
            response = self._model.generate_content(
                self._build_prompt(rows, summary, filters)
            )
            subject, body = self._parse_response(response.text)
            used_llm = True
        except Exception as e:
            logger.warning("report_email_llm_failed", error=str(e))
            subject, body = self.fallback_draft(rows, summary, filters)
            used_llm = False

        return EmailDraft(
            recipients=valid,
            subject=subject,
            body=body,
            entry_count=len(rows),
            used_llm=used_llm,
        )
