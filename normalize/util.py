"""
Decoding helpers.
Turn raw Redmine JSON payloads into normalize.models records, raising DecodeError on malformed
JSON or when an envelope does not have the expected shape.
"""
import json
from typing import Any, Dict, List, Optional

from ingest.transport import DecodeError
from normalize.models import Identifier, ValueField, User, Project, Issue, IssueStatus, TimeEntry


def decode_json(data: bytes) -> Any:
    try:
        return json.loads(data)
    except ValueError as exc:
        raise DecodeError(f"invalid JSON in response: {exc}") from exc


def decode_envelope(data: bytes, key: str) -> Dict[str, Any]:
    """Decode a response body and check that it is an object wrapping `key`."""
    envelope = decode_json(data)
    if not isinstance(envelope, dict):
        raise DecodeError(f"expected a JSON object wrapping {key!r}, got {type(envelope).__name__}")
    if key not in envelope:
        raise DecodeError(f"response envelope has no {key!r} member")
    return envelope


def unwrap(data: bytes, key: str) -> Dict[str, Any]:
    """Return the single record wrapped under `key`."""
    item = decode_envelope(data, key)[key]
    if not isinstance(item, dict):
        raise DecodeError(f"{key!r} should be an object, got {type(item).__name__}")
    return item


def unwrap_list(envelope: Dict[str, Any], key: str) -> List[Dict[str, Any]]:
    items = envelope.get(key)
    if not isinstance(items, list):
        raise DecodeError(f"{key!r} should be an array, got {type(items).__name__}")
    for item in items:
        if not isinstance(item, dict):
            raise DecodeError(f"{key!r} entries should be objects, got {type(item).__name__}")
    return items


def _require_id(raw: Dict[str, Any], kind: str) -> int:
    if not isinstance(raw, dict) or raw.get('id') is None:
        raise DecodeError(f"{kind} record has no id: {raw!r}")
    return raw['id']


def _number(raw: Dict[str, Any], field: str, kind: str, cast, default=None):
    """Coerce raw[field] with `cast`; missing or null gives `default`."""
    value = raw.get(field)
    if value is None or value == '':
        return default
    if isinstance(value, bool):
        raise DecodeError(f"{kind} {field} should be a number, got {value!r}")
    try:
        return cast(value)
    except (TypeError, ValueError) as exc:
        raise DecodeError(f"{kind} {field} should be a number, got {value!r}") from exc


def decode_identifier(raw: Optional[Dict[str, Any]]) -> Optional[Identifier]:
    """Return an Identifier for an association, or None when the server omitted it."""
    if not raw:
        return None
    if not isinstance(raw, dict):
        raise DecodeError(f"association should be an object, got {raw!r}")
    return Identifier(id=raw.get('id'), name=raw.get('name') or '')


def decode_value_field(raw: Dict[str, Any]) -> ValueField:
    field_id = _require_id(raw, 'custom field')
    value = raw.get('value')
    return ValueField(id=field_id, name=raw.get('name') or '', value='' if value is None else value)


def decode_user(raw: Dict[str, Any]) -> User:
    return User(
        id=_require_id(raw, 'user'),
        login=raw.get('login') or '',
        api_key=raw.get('api_key') or '',
        firstname=raw.get('firstname') or '',
        lastname=raw.get('lastname') or '',
        mail=raw.get('mail') or '',
        created_on=raw.get('created_on'),
        last_login_on=raw.get('last_login_on'),
    )


def decode_project(raw: Dict[str, Any]) -> Project:
    return Project(
        id=_require_id(raw, 'project'),
        name=raw.get('name') or '',
        identifier=raw.get('identifier') or '',
        description=raw.get('description') or '',
        is_public=bool(raw.get('is_public', False)),
        status=raw.get('status'),
        created_on=raw.get('created_on'),
        updated_on=raw.get('updated_on'),
        parent=decode_identifier(raw.get('parent')),
    )


def decode_issue(raw: Dict[str, Any]) -> Issue:
    issue_id = _require_id(raw, 'issue')
    custom_fields = raw.get('custom_fields') or []
    if not isinstance(custom_fields, list):
        raise DecodeError(f"custom_fields should be an array, got {custom_fields!r}")
    return Issue(
        id=issue_id,
        subject=raw.get('subject') or '',
        description=raw.get('description') or '',
        status=decode_identifier(raw.get('status')),
        priority=decode_identifier(raw.get('priority')),
        tracker=decode_identifier(raw.get('tracker')),
        category=decode_identifier(raw.get('category')),
        project=decode_identifier(raw.get('project')),
        author=decode_identifier(raw.get('author')),
        assigned_to=decode_identifier(raw.get('assigned_to')),
        start_date=raw.get('start_date'),
        due_date=raw.get('due_date'),
        created_on=raw.get('created_on'),
        updated_on=raw.get('updated_on'),
        closed_on=raw.get('closed_on'),
        done_ratio=_number(raw, 'done_ratio', 'issue', int, 0),
        estimated_hours=_number(raw, 'estimated_hours', 'issue', float),
        custom_fields=[decode_value_field(f) for f in custom_fields],
    )


def decode_issue_status(raw: Dict[str, Any]) -> IssueStatus:
    return IssueStatus(
        id=_require_id(raw, 'issue status'),
        name=raw.get('name') or '',
        is_default=bool(raw.get('is_default', False)),
        is_closed=bool(raw.get('is_closed', False)),
    )


def decode_time_entry(raw: Dict[str, Any]) -> TimeEntry:
    entry_id = _require_id(raw, 'time entry')
    issue = raw.get('issue') or {}
    return TimeEntry(
        id=entry_id,
        hours=_number(raw, 'hours', 'time entry', float, 0.0),
        comments=raw.get('comments') or '',
        spent_on=raw.get('spent_on'),
        created_on=raw.get('created_on'),
        updated_on=raw.get('updated_on'),
        user=decode_identifier(raw.get('user')),
        project=decode_identifier(raw.get('project')),
        activity=decode_identifier(raw.get('activity')),
        issue_id=issue.get('id') if isinstance(issue, dict) else None,
    )
