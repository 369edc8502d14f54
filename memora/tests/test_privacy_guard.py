"""Tests for PII redaction."""

from memora.scribe.privacy_guard import mask_pii, redact_with_notes


class TestMaskPii:
    def test_email(self):
        assert mask_pii("Mail jane.doe@example.com today") == "Mail [EMAIL_REDACTED] today"

    def test_phone(self):
        assert mask_pii("Call 555-123-4567") == "Call [PHONE_REDACTED]"

    def test_phone_with_country_code(self):
        assert "[PHONE_REDACTED]" in mask_pii("Call +1 555.123.4567 tonight")

    def test_ssn(self):
        assert mask_pii("SSN 123-45-6789") == "SSN [SSN_REDACTED]"

    def test_credit_card(self):
        assert mask_pii("Card 4111111111111111 expires") == "Card [CREDIT_CARD_REDACTED] expires"

    def test_clean_text_unchanged(self):
        text = "Alice's birthday party is on June 12"
        assert mask_pii(text) == text

    def test_none_and_empty(self):
        assert mask_pii(None) == ""
        assert mask_pii("") == ""


class TestRedactWithNotes:
    def test_notes_count_each_pattern(self):
        text = "a@b.com, c@d.org and SSN 123-45-6789"

        redacted, notes = redact_with_notes(text)

        assert redacted == "[EMAIL_REDACTED], [EMAIL_REDACTED] and SSN [SSN_REDACTED]"
        assert notes == "Redacted 2 [EMAIL_REDACTED]; Redacted 1 [SSN_REDACTED]"

    def test_no_redactions_no_notes(self):
        assert redact_with_notes("nothing to hide") == ("nothing to hide", None)
