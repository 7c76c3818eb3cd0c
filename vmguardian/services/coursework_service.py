#!/usr/bin/env python3
"""
Course material: assignments and documents.
"""

import logging
from datetime import datetime
from typing import Any, Dict, List, Optional

from vmguardian.exceptions import NotFoundError, ValidationError
from vmguardian.models import Assignment, db, Document
from vmguardian.utils.validation import optional_text, text_field

logger = logging.getLogger(__name__)


def _parse_due_date(value) -> Optional[datetime]:
    if value in (None, ''):
        return None
    try:
        return datetime.fromisoformat(str(value).replace('Z', '+00:00')).replace(tzinfo=None)
    except ValueError:
        raise ValidationError("due_date must be an ISO 8601 date or datetime")


def _title(data: Dict[str, Any]) -> str:
    title = text_field(data, 'title')
    if not title:
        raise ValidationError("Title is required")
    return title


def _save(obj, what: str) -> None:
    try:
        db.session.add(obj)
        db.session.commit()
    except Exception:
        db.session.rollback()
        logger.exception("Failed to save %s", what)
        raise


def _delete(obj, what: str) -> None:
    try:
        db.session.delete(obj)
        db.session.commit()
    except Exception:
        db.session.rollback()
        logger.exception("Failed to delete %s", what)
        raise


# ---------------------------------------------------------------------------
# Assignments
# ---------------------------------------------------------------------------

def list_assignments(course: str = None) -> List[Assignment]:
    query = Assignment.query
    if course:
        query = query.filter_by(course=course)
    # Undated assignments sort last
    return query.order_by(Assignment.due_date.is_(None), Assignment.due_date, Assignment.id).all()


def get_assignment(assignment_id: int) -> Assignment:
    assignment = db.session.get(Assignment, assignment_id)
    if not assignment:
        raise NotFoundError("Assignment not found")
    return assignment


def create_assignment(data: Dict[str, Any]) -> Assignment:
    assignment = Assignment(
        title=_title(data),
        description=optional_text(data, 'description'),
        course=optional_text(data, 'course'),
        due_date=_parse_due_date(data.get('due_date')),
    )
    _save(assignment, "assignment")
    logger.info("Created assignment %s: %s", assignment.id, assignment.title)
    return assignment


def update_assignment(assignment_id: int, data: Dict[str, Any]) -> Assignment:
    assignment = get_assignment(assignment_id)
    if 'title' in data:
        assignment.title = _title(data)
    if 'description' in data:
        assignment.description = optional_text(data, 'description')
    if 'course' in data:
        assignment.course = optional_text(data, 'course')
    if 'due_date' in data:
        assignment.due_date = _parse_due_date(data.get('due_date'))
    _save(assignment, f"assignment {assignment_id}")
    return assignment


def delete_assignment(assignment_id: int) -> None:
    _delete(get_assignment(assignment_id), f"assignment {assignment_id}")


# ---------------------------------------------------------------------------
# Documents
# ---------------------------------------------------------------------------

def list_documents(category: str = None) -> List[Document]:
    query = Document.query
    if category:
        query = query.filter_by(category=category)
    return query.order_by(Document.title).all()


def get_document(document_id: int) -> Document:
    document = db.session.get(Document, document_id)
    if not document:
        raise NotFoundError("Document not found")
    return document


def create_document(data: Dict[str, Any]) -> Document:
    document = Document(
        title=_title(data),
        category=optional_text(data, 'category'),
        content=text_field(data, 'content', strip=False),
    )
    _save(document, "document")
    logger.info("Created document %s: %s", document.id, document.title)
    return document


def update_document(document_id: int, data: Dict[str, Any]) -> Document:
    document = get_document(document_id)
    if 'title' in data:
        document.title = _title(data)
    if 'category' in data:
        document.category = optional_text(data, 'category')
    if 'content' in data:
        document.content = text_field(data, 'content', strip=False)
    _save(document, f"document {document_id}")
    return document


def delete_document(document_id: int) -> None:
    _delete(get_document(document_id), f"document {document_id}")
