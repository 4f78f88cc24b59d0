"""
Tests for the quote and invoice state machines.

Every (from, to) pair of each kind is checked against the allowed edge
list, so adding a status or an edge without updating these tables fails.
"""

from itertools import product

import pytest

from billing_kernel.domain.lifecycle import (
    DocumentKind,
    InvoiceStatus,
    QuoteStatus,
    allowed_targets,
    can_transition,
    is_terminal,
    parse_status,
    require_transition,
)
from billing_kernel.exceptions import IllegalTransitionError, UnknownStatusError

INVOICE_EDGES = {
    (InvoiceStatus.DRAFT, InvoiceStatus.SENT),
    (InvoiceStatus.SENT, InvoiceStatus.VALIDATED),
    (InvoiceStatus.SENT, InvoiceStatus.REFUSED),
    (InvoiceStatus.SENT, InvoiceStatus.CANCELLED),
    (InvoiceStatus.VALIDATED, InvoiceStatus.CANCELLED),
    (InvoiceStatus.REFUSED, InvoiceStatus.CANCELLED),
}

QUOTE_EDGES = {
    (QuoteStatus.DRAFT, QuoteStatus.SENT),
    (QuoteStatus.SENT, QuoteStatus.ACCEPTED),
    (QuoteStatus.SENT, QuoteStatus.REFUSED),
    (QuoteStatus.SENT, QuoteStatus.CANCELLED),
    (QuoteStatus.ACCEPTED, QuoteStatus.CANCELLED),
    (QuoteStatus.REFUSED, QuoteStatus.CANCELLED),
}


class TestInvoiceStateMachine:

    @pytest.mark.parametrize(
        "from_status, to_status", list(product(InvoiceStatus, InvoiceStatus))
    )
    def test_every_pair(self, from_status, to_status):
        expected = (from_status, to_status) in INVOICE_EDGES

        assert can_transition(DocumentKind.INVOICE, from_status, to_status) is expected

    def test_cancelled_is_terminal(self):
        assert is_terminal(DocumentKind.INVOICE, InvoiceStatus.CANCELLED)
        assert not is_terminal(DocumentKind.INVOICE, InvoiceStatus.VALIDATED)

    def test_allowed_targets_from_sent(self):
        assert allowed_targets(DocumentKind.INVOICE, InvoiceStatus.SENT) == {
            InvoiceStatus.VALIDATED,
            InvoiceStatus.REFUSED,
            InvoiceStatus.CANCELLED,
        }


class TestQuoteStateMachine:

    @pytest.mark.parametrize(
        "from_status, to_status", list(product(QuoteStatus, QuoteStatus))
    )
    def test_every_pair(self, from_status, to_status):
        expected = (from_status, to_status) in QUOTE_EDGES

        assert can_transition(DocumentKind.QUOTE, from_status, to_status) is expected

    def test_no_self_loops(self):
        for status in QuoteStatus:
            assert not can_transition(DocumentKind.QUOTE, status, status)

    def test_draft_cannot_skip_to_accepted(self):
        with pytest.raises(IllegalTransitionError) as exc_info:
            require_transition(DocumentKind.QUOTE, QuoteStatus.DRAFT, QuoteStatus.ACCEPTED)

        assert exc_info.value.from_status == "DRAFT"
        assert exc_info.value.to_status == "ACCEPTED"


class TestStatusParsing:

    def test_strings_are_case_insensitive_and_trimmed(self):
        assert parse_status("invoice", " sent ") is InvoiceStatus.SENT
        assert parse_status(DocumentKind.QUOTE, "Accepted") is QuoteStatus.ACCEPTED

    def test_unknown_status_rejected(self):
        with pytest.raises(UnknownStatusError):
            parse_status(DocumentKind.INVOICE, "PAID")

    def test_status_of_other_kind_rejected(self):
        # ACCEPTED exists for quotes only
        with pytest.raises(UnknownStatusError):
            parse_status(DocumentKind.INVOICE, QuoteStatus.ACCEPTED)
        assert not can_transition(DocumentKind.INVOICE, InvoiceStatus.SENT, "ACCEPTED")

    def test_can_transition_is_total(self):
        assert can_transition("invoice", "DRAFT", "SENT") is True
        assert can_transition("invoice", "bogus", "SENT") is False
        assert can_transition("receipt", "DRAFT", "SENT") is False

    def test_require_transition_unknown_target(self):
        with pytest.raises(UnknownStatusError):
            require_transition(DocumentKind.QUOTE, QuoteStatus.SENT, "PAID")

    def test_require_transition_returns_target_member(self):
        target = require_transition(DocumentKind.INVOICE, "SENT", "validated")

        assert target is InvoiceStatus.VALIDATED
