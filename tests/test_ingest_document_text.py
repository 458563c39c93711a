import threading
import time
from datetime import date
from types import SimpleNamespace

import pytest

import spendlite.ingest.pdf as pdf_mod
from spendlite.errors import NoTransactionsFound
from spendlite.ingest.document_text import (
    ingest_lines,
    ingest_text,
    normalize_marker_date,
    split_lines,
)
from spendlite.ingest.utils import load_transactions


def test_single_record():
    txns = ingest_lines(["1 Jan 2025", "COLES", "12.34"])
    assert len(txns) == 1
    t = txns[0]
    assert (t.raw_date, t.description, t.amount) == ("2025-01-01", "COLES", 12.34)
    assert t.parsed_date == date(2025, 1, 1)


def test_bpay_payment_is_excluded():
    assert ingest_lines(["1 Jan 2025", "PAYMENT-BPAY THANK YOU", "50.00"]) == []
    assert ingest_lines(["1 Jan 2025", "payment bpay", "50.00"]) == []


def test_multi_line_description_and_header_artifacts():
    lines = [
        "Date",
        "Description",
        "Withdrawal",
        "Deposit",
        "14 Feb 2025",
        "Withdrawal",
        "UBER *TRIP",
        "SYDNEY AU",
        "-$23.10",
        "Closing balance",
    ]
    txns = ingest_lines(lines)
    assert [(t.raw_date, t.description, t.amount) for t in txns] == [
        ("2025-02-14", "UBER *TRIP SYDNEY AU", 23.10)
    ]


def test_new_date_marker_discards_partial_record():
    lines = ["2 Mar 2025", "ORPHAN LINE", "3 Mar 2025", "ALDI", "7.00"]
    txns = ingest_lines(lines)
    assert [(t.raw_date, t.description) for t in txns] == [("2025-03-03", "ALDI")]


def test_unclosed_record_and_stray_amounts_produce_nothing():
    assert ingest_lines(["9.99", "5 Apr 2025", "NO AMOUNT FOLLOWS"]) == []
    # Amounts need exactly two decimals
    assert ingest_lines(["5 Apr 2025", "SHOP", "1,234.56", "12.5"]) == []


def test_consecutive_records_and_whitespace_text():
    text = "\n  1 May 2025 \n KMART \n 10.00\n\n\n2 May 2025\nTARGET\n$5.50\n"
    assert split_lines(text) == ["1 May 2025", "KMART", "10.00", "2 May 2025", "TARGET", "$5.50"]
    txns = ingest_text(text)
    assert [(t.description, t.amount) for t in txns] == [("KMART", 10.0), ("TARGET", 5.5)]


def test_marker_date_normalization():
    assert normalize_marker_date("7 sep 2024") == "2024-09-07"
    assert normalize_marker_date("07 Dec 2024") == "2024-12-07"
    assert normalize_marker_date("7 Foo 2024") is None
    assert normalize_marker_date("7 September 2024") is None


def test_ingest_text_handles_empty_input():
    assert ingest_text("") == []
    assert ingest_text(None) == []


# ---- PDF extraction ------------------------------------------------------------


PAGES = [
    "1 Jan 2025\nCOLES\n12.34",
    "2 Jan 2025\nWOOLWORTHS",
    "45.00\n3 Jan 2025\nKMART\n9.00",
]


def _fake_pdfplumber(pages: list[str], *, delays: list[float] | None = None):
    state = {"max_inflight": 0, "inflight": 0}
    lock = threading.Lock()

    class _Page:
        def __init__(self, i: int) -> None:
            self.i = i

        def extract_words(self, **kwargs):
            with lock:
                state["inflight"] += 1
                state["max_inflight"] = max(state["max_inflight"], state["inflight"])
            try:
                if delays:
                    time.sleep(delays[self.i])
                return [{"text": ln} for ln in pages[self.i].split("\n")]
            finally:
                with lock:
                    state["inflight"] -= 1

    class _Doc:
        def __init__(self) -> None:
            self.pages = [_Page(i) for i in range(len(pages))]

        def __enter__(self):
            return self

        def __exit__(self, *exc) -> None:
            return None

    return SimpleNamespace(open=lambda path: _Doc()), state


def test_extract_pdf_text_sequential(monkeypatch: pytest.MonkeyPatch, tmp_path):
    fake, _ = _fake_pdfplumber(PAGES)
    monkeypatch.setattr(pdf_mod, "pdfplumber", fake)
    text = pdf_mod.extract_pdf_text(tmp_path / "x.pdf")
    assert text == "\n".join(PAGES) + "\n"


def test_concurrent_extraction_preserves_page_order(monkeypatch: pytest.MonkeyPatch, tmp_path):
    # Page 1 finishes last; a record spanning pages 2 and 3 must still be found.
    fake, state = _fake_pdfplumber(PAGES, delays=[0.2, 0.05, 0.0])
    monkeypatch.setattr(pdf_mod, "pdfplumber", fake)
    txns = pdf_mod.load_pdf_transactions(tmp_path / "x.pdf", concurrency=3)
    assert [(t.description, t.amount) for t in txns] == [
        ("COLES", 12.34),
        ("WOOLWORTHS", 45.0),
        ("KMART", 9.0),
    ]
    assert state["max_inflight"] >= 2


def test_extract_pdf_text_rejects_bad_concurrency(tmp_path):
    with pytest.raises(ValueError):
        pdf_mod.extract_pdf_text(tmp_path / "x.pdf", concurrency=0)


def test_load_transactions_reports_empty_pdf(monkeypatch: pytest.MonkeyPatch, tmp_path):
    fake, _ = _fake_pdfplumber(["Statement summary\nNothing to see"])
    monkeypatch.setattr(pdf_mod, "pdfplumber", fake)
    with pytest.raises(NoTransactionsFound):
        load_transactions(tmp_path / "empty.pdf")


# ---- Real statement layout --------------------------------------------------------


def _write_statement_pdf(path, rows: list[tuple[str, str, str]]) -> None:
    """Write a one-page PDF laying ``rows`` out as a three-column table.

    Each cell is its own text object, as statement generators emit them, so
    a row reads as one visual line with wide gaps between the cells.
    """

    ops = []
    for y, cells in zip(range(720, 0, -20), [("Date", "Description", "Withdrawal"), *rows]):
        for x, cell in zip((50, 150, 400), cells):
            ops.append(f"BT /F1 10 Tf {x} {y} Td ({cell}) Tj ET")
    content = "\n".join(ops).encode("latin-1")

    objects = [
        b"<< /Type /Catalog /Pages 2 0 R >>",
        b"<< /Type /Pages /Kids [3 0 R] /Count 1 >>",
        b"<< /Type /Page /Parent 2 0 R /MediaBox [0 0 612 792] /Contents 4 0 R"
        b" /Resources << /Font << /F1 5 0 R >> >> >>",
        b"<< /Length %d >>\nstream\n" % len(content) + content + b"\nendstream",
        b"<< /Type /Font /Subtype /Type1 /BaseFont /Helvetica >>",
    ]
    out = bytearray(b"%PDF-1.4\n")
    offsets = []
    for num, body in enumerate(objects, start=1):
        offsets.append(len(out))
        out += b"%d 0 obj\n" % num + body + b"\nendobj\n"
    xref_at = len(out)
    out += b"xref\n0 %d\n0000000000 65535 f \n" % (len(objects) + 1)
    for off in offsets:
        out += b"%010d 00000 n \n" % off
    out += b"trailer\n<< /Size %d /Root 1 0 R >>\nstartxref\n%d\n%%%%EOF\n" % (
        len(objects) + 1,
        xref_at,
    )
    path.write_bytes(bytes(out))


def test_table_rows_in_real_pdf_are_split_into_cells(tmp_path):
    source = tmp_path / "statement.pdf"
    _write_statement_pdf(
        source,
        [
            ("1 Jan 2025", "COLES SUPERMARKET", "12.34"),
            ("2 Jan 2025", "KMART", "9.00"),
        ],
    )

    assert split_lines(pdf_mod.extract_pdf_text(source)) == [
        "Date",
        "Description",
        "Withdrawal",
        "1 Jan 2025",
        "COLES SUPERMARKET",
        "12.34",
        "2 Jan 2025",
        "KMART",
        "9.00",
    ]
    txns = load_transactions(source)
    assert [(t.raw_date, t.description, t.amount) for t in txns] == [
        ("2025-01-01", "COLES SUPERMARKET", 12.34),
        ("2025-01-02", "KMART", 9.0),
    ]


def test_real_pdf_concurrent_extraction_matches_sequential(tmp_path):
    source = tmp_path / "statement.pdf"
    _write_statement_pdf(source, [("3 Feb 2025", "ALDI", "4.50")])
    assert pdf_mod.extract_pdf_text(source, concurrency=2) == pdf_mod.extract_pdf_text(source)
