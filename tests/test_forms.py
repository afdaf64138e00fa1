"""Tests for app/review/forms.py."""
from __future__ import annotations

import pytest

from app.review.forms import form_type_name, reviewer_form_type
from app.review.normalizer import normalize
from tests.conftest import current_record, legacy_record


class TestFormTypeName:
    @pytest.mark.parametrize(
        "code, name",
        [
            ("PRA", "Protocol Review Assessment Form"),
            ("PRA-EX", "Protocol Review Assessment-Exemption Form"),
            ("PRA_EX", "Protocol Review Assessment-Exemption Form"),
            ("ICA FORM", "Informed Consent Assessment Form"),
            ("Form 06C ICA", "Informed Consent Assessment Form"),
            ("CFEFR", "Continuing Full Ethics Form Review"),
            ("  Form 04A CERF  ", "Continuing Ethics Review Form"),
        ],
    )
    def test_known_codes(self, code, name):
        assert form_type_name(code) == name

    def test_unknown_code_returned_as_is(self):
        assert form_type_name("XYZ") == "XYZ"

    @pytest.mark.parametrize("code", [None, ""])
    def test_empty(self, code):
        assert form_type_name(code) == "N/A"


class TestReviewerFormType:
    def test_assignment_document_type(self):
        p = normalize(current_record(), "P-1")
        form = reviewer_form_type(p, "DRBEN-014", "Dr. Benito Cruz")
        assert form.form_type == "ICA"
        assert form.form_name == "Informed Consent Assessment Form"

    def test_falls_back_to_protocol_document_type(self):
        p = normalize(current_record(document_type="PRA", reviewers=[{"id": "A", "name": "Alicia"}]), "P-1")
        assert reviewer_form_type(p, "A", "Alicia").form_type == "PRA"

    def test_exact_id_wins_over_earlier_substring_match(self):
        p = normalize(
            current_record(
                reviewers=[
                    {"id": "DRAPL-010", "document_type": "PRA"},
                    {"id": "DRAPL-01", "document_type": "ICA"},
                ]
            ),
            "P-1",
        )
        assert reviewer_form_type(p, "DRAPL-01", "DRAPL-01").form_type == "ICA"

    def test_legacy_record(self):
        p = normalize(legacy_record(), "L-1")
        assert reviewer_form_type(p, "Dr. Alicia Reyes", None).form_name == "Informed Consent Assessment Form"

    def test_no_protocol(self):
        assert reviewer_form_type(None, "A", "Alicia").form_name == "N/A"
