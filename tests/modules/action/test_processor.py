"""Tests for the scripted action processor."""

import pytest

from docvault.modules.action.processor import MockProcessor, ProcessorDocument
from docvault.modules.action.schemas import ActionMessage


@pytest.fixture
def processor() -> MockProcessor:
    return MockProcessor()


@pytest.fixture
def invoices():
    return [
        ProcessorDocument(1, "acme-1.txt", "Vendor: Acme\nAmount: $1,200.50"),
        ProcessorDocument(2, "acme-2.txt", "Vendor: Acme\nAmount: $99.50"),
        ProcessorDocument(3, "globex.txt", "vendor Globex total 40"),
        ProcessorDocument(4, "memo.txt", "no vendor line here"),
    ]


def test_make_csv_vendor_totals(processor: MockProcessor, invoices):
    """Test that vendor requests sum amounts per vendor."""
    [output] = processor.process(invoices, [ActionMessage(role="user", content="Vendor totals please")], ["make_csv"])

    assert output.type == "csv"
    assert output.filename == "vendor_totals.csv"
    assert output.mime_type == "text/csv"
    assert output.content.splitlines() == [
        "Vendor,Total",
        "Acme,$1300.00",
        "Globex,$40.00",
        "Total,$1340.00",
    ]


def test_make_csv_document_summary(processor: MockProcessor, invoices):
    """Test the per-document summary when vendors are not mentioned."""
    [output] = processor.process(invoices[:2], [ActionMessage(role="user", content="summarize")], ["make_csv"])

    assert output.filename == "document_summary.csv"
    lines = output.content.splitlines()
    assert lines[0] == "Filename,WordCount,CharCount"
    assert lines[1] == f"acme-1.txt,4,{len(invoices[0].text_content)}"
    assert len(lines) == 3


def test_make_document_report(processor: MockProcessor, invoices):
    """Test the markdown report lists every analysed document."""
    messages = [
        ActionMessage(role="system", content="be brief"),
        ActionMessage(role="user", content="Write a report"),
    ]

    [output] = processor.process(invoices, messages, ["make_document"])

    assert output.type == "document"
    assert output.filename == "analysis_report.md"
    assert output.mime_type == "text/markdown"
    assert output.content.startswith("# Document Analysis Report")
    assert "## User Request\nWrite a report" in output.content
    assert "Total: 4" in output.content
    assert "### 4. memo.txt" in output.content


def test_process_ignores_unknown_actions(processor: MockProcessor, invoices):
    """Test that unknown action names produce no output and known ones keep their order."""
    outputs = processor.process(
        invoices, [ActionMessage(role="user", content="go")], ["make_document", "translate", "make_csv"]
    )

    assert [output.type for output in outputs] == ["document", "csv"]


def test_process_without_user_message(processor: MockProcessor, invoices):
    """Test that a missing user message is treated as empty."""
    [output] = processor.process(invoices, [ActionMessage(role="system", content="vendor")], ["make_csv"])

    assert output.filename == "document_summary.csv"
