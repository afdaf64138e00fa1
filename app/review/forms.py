"""Review form catalogue: document-type codes and their full names."""
from __future__ import annotations

import re
from dataclasses import dataclass

from app.review.identity import find_assignment
from app.review.models import Protocol

_FORM_SUFFIX_RE = re.compile(r"\s*FORM$", re.IGNORECASE)

FORM_TYPE_NAMES: dict[str, str] = {
    "CFEFR": "Continuing Full Ethics Form Review",
    "Form 04A CERF": "Continuing Ethics Review Form",
    "Form 06B1 PRA": "Protocol Review Assessment Form",
    "Form 06B2 PRA-EX": "Protocol Review Assessment-Exemption Form",
    "Form 06C ICA": "Informed Consent Assessment Form",
    "PRA": "Protocol Review Assessment Form",
    "PRA-EX": "Protocol Review Assessment-Exemption Form",
    "PRA_EX": "Protocol Review Assessment-Exemption Form",
    "ICA": "Informed Consent Assessment Form",
}


def normalize_form_code(document_type: str | None) -> str:
    """Strip whitespace and a trailing ``FORM`` suffix."""
    if not document_type:
        return ""
    return _FORM_SUFFIX_RE.sub("", document_type.strip()).strip()


def form_type_name(document_type: str | None) -> str:
    """Full form name for *document_type*; unknown codes are returned as-is."""
    if not document_type:
        return "N/A"
    return FORM_TYPE_NAMES.get(normalize_form_code(document_type), document_type)


@dataclass(frozen=True)
class ReviewerForm:
    form_type: str
    form_name: str


def reviewer_form_type(
    protocol: Protocol | None,
    reviewer_id: str | None,
    reviewer_name: str | None,
) -> ReviewerForm:
    """The form a reviewer fills in for *protocol*.

    The matching assignment's document type wins; otherwise the
    protocol-level document type is used.
    """
    if protocol is None:
        return ReviewerForm(form_type="", form_name="N/A")

    document_type = ""
    assignment = find_assignment(protocol.assignments, reviewer_id, reviewer_name)
    if assignment is not None and assignment.document_type:
        document_type = assignment.document_type
    if not document_type and protocol.document_type:
        document_type = protocol.document_type

    return ReviewerForm(form_type=document_type, form_name=form_type_name(document_type))
