"""Deterministic stand-in for the batch action processor.

Given the documents of a scope and the user's messages, each known action
name produces one output file. Unknown action names produce nothing.
"""

import re
from dataclasses import dataclass
from typing import Callable, Dict, List, Sequence

from .schemas import ActionMessage

VENDOR_PATTERN = re.compile(r"vendor[:\s]+(\w+)", re.IGNORECASE)
AMOUNT_PATTERN = re.compile(r"\$?(\d+(?:,\d{3})*(?:\.\d{2})?)")
PREVIEW_LENGTH = 100


@dataclass(frozen=True)
class ProcessorDocument:
    id: int
    filename: str
    text_content: str


@dataclass(frozen=True)
class ProcessorOutput:
    type: str
    filename: str
    mime_type: str
    content: str


class MockProcessor:
    """Produces CSV and Markdown outputs from document text."""

    def __init__(self) -> None:
        self._handlers: Dict[str, Callable[[Sequence[ProcessorDocument], str], ProcessorOutput]] = {
            "make_csv": self.make_csv,
            "make_document": self.make_document,
        }

    def process(
        self,
        documents: Sequence[ProcessorDocument],
        messages: Sequence[ActionMessage],
        actions: Sequence[str],
    ) -> List[ProcessorOutput]:
        user_message = next((message.content for message in messages if message.role == "user"), "")
        return [
            self._handlers[action](documents, user_message) for action in actions if action in self._handlers
        ]

    def make_csv(self, documents: Sequence[ProcessorDocument], user_message: str) -> ProcessorOutput:
        """Vendor totals when the request mentions vendors, else a per-document summary."""
        if "vendor" in user_message.lower():
            return self._vendor_totals(documents)

        lines = ["Filename,WordCount,CharCount"]
        for document in documents:
            lines.append(f"{document.filename},{_word_count(document.text_content)},{len(document.text_content)}")
        return ProcessorOutput("csv", "document_summary.csv", "text/csv", "\n".join(lines) + "\n")

    def make_document(self, documents: Sequence[ProcessorDocument], user_message: str) -> ProcessorOutput:
        parts = [
            "# Document Analysis Report\n",
            f"## User Request\n{user_message}\n",
            f"## Analyzed Documents\nTotal: {len(documents)}\n",
        ]
        for index, document in enumerate(documents, start=1):
            text = document.text_content
            parts.append(
                f"### {index}. {document.filename}\n"
                f"- Words: {_word_count(text)}\n"
                f"- Characters: {len(text)}\n"
                f"- Preview: {text[:PREVIEW_LENGTH]}...\n"
            )
        parts.append(f"## Summary\nThis report was generated based on {len(documents)} documents.\n")
        return ProcessorOutput("document", "analysis_report.md", "text/markdown", "\n".join(parts))

    def _vendor_totals(self, documents: Sequence[ProcessorDocument]) -> ProcessorOutput:
        totals: Dict[str, float] = {}
        for document in documents:
            vendor = VENDOR_PATTERN.search(document.text_content)
            amount = AMOUNT_PATTERN.search(document.text_content)
            if vendor and amount:
                name = vendor.group(1)
                totals[name] = totals.get(name, 0.0) + float(amount.group(1).replace(",", ""))

        lines = ["Vendor,Total"]
        lines.extend(f"{vendor},${total:.2f}" for vendor, total in totals.items())
        lines.append(f"Total,${sum(totals.values()):.2f}")
        return ProcessorOutput("csv", "vendor_totals.csv", "text/csv", "\n".join(lines) + "\n")


def _word_count(text: str) -> int:
    return len(text.split())
