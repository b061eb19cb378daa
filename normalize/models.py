"""
Typed records decoded from Redmine JSON envelopes.
Associations are Identifier (name/id) references, never embedded records.
"""

from typing import Any, Dict, List, Optional


class Record:
    """Value-compared base for decoded records."""

    def to_dict(self) -> Dict[str, Any]:
        out = {}
        for k, v in vars(self).items():
            out[k] = _plain(v)
        return out

    def __eq__(self, other):
        return type(other) is type(self) and vars(other) == vars(self)

    def __ne__(self, other):
        return not self.__eq__(other)

    def __repr__(self):
        fields = ", ".join(f"{k}={v!r}" for k, v in vars(self).items())
        return f"{type(self).__name__}({fields})"


def _plain(value: Any) -> Any:
    if isinstance(value, Record):
        return value.to_dict()
    if isinstance(value, list):
        return [_plain(v) for v in value]
    return value


class Identifier(Record):
    """
    A name/id reference to another entity.
    """

    def __init__(self, id: int, name: str = ""):
        self.id = id
        self.name = name


class ValueField(Identifier):
    """
    An Identifier with an associated value, used for custom fields.
    The value is a string, or a list of strings for multi-value fields.
    """

    def __init__(self, id: int, name: str = "", value: Any = ""):
        super().__init__(id, name)
        self.value = value


class User(Record):
    def __init__(
        self,
        id: int,
        login: str = "",
        api_key: str = "",
        firstname: str = "",
        lastname: str = "",
        mail: str = "",
        created_on: Optional[str] = None,
        last_login_on: Optional[str] = None,
    ):
        self.id = id
        self.login = login
        self.api_key = api_key
        self.firstname = firstname
        self.lastname = lastname
        self.mail = mail
        self.created_on = created_on
        self.last_login_on = last_login_on

    def to_dict(self) -> Dict[str, Any]:
        # never serialize the key
        out = super().to_dict()
        out["api_key"] = "*****" if self.api_key else ""
        return out


class Project(Record):
    def __init__(
        self,
        id: int,
        name: str = "",
        identifier: str = "",
        description: str = "",
        is_public: bool = False,
        status: Optional[int] = None,
        created_on: Optional[str] = None,
        updated_on: Optional[str] = None,
        parent: Optional[Identifier] = None,
    ):
        self.id = id
        self.name = name
        self.identifier = identifier
        self.description = description
        self.is_public = is_public
        self.status = status
        self.created_on = created_on
        self.updated_on = updated_on
        self.parent = parent


class Issue(Record):
    """
    A single Redmine issue.
    """

    def __init__(
        self,
        id: int,
        subject: str = "",
        description: str = "",
        status: Optional[Identifier] = None,
        priority: Optional[Identifier] = None,
        tracker: Optional[Identifier] = None,
        category: Optional[Identifier] = None,
        project: Optional[Identifier] = None,
        author: Optional[Identifier] = None,
        assigned_to: Optional[Identifier] = None,
        start_date: Optional[str] = None,
        due_date: Optional[str] = None,
        created_on: Optional[str] = None,
        updated_on: Optional[str] = None,
        closed_on: Optional[str] = None,
        done_ratio: int = 0,
        estimated_hours: Optional[float] = None,
        custom_fields: Optional[List[ValueField]] = None,
    ):
        self.id = id
        self.subject = subject
        self.description = description
        self.status = status
        self.priority = priority
        self.tracker = tracker
        self.category = category
        self.project = project
        self.author = author
        self.assigned_to = assigned_to
        self.start_date = start_date
        self.due_date = due_date
        self.created_on = created_on
        self.updated_on = updated_on
        self.closed_on = closed_on
        self.done_ratio = done_ratio
        self.estimated_hours = estimated_hours
        self.custom_fields = custom_fields or []

    def custom_field(self, name: str) -> Optional[ValueField]:
        """Return the custom field with the given name, if present."""
        for field in self.custom_fields:
            if field.name == name:
                return field
        return None


class IssueStatus(Record):
    def __init__(self, id: int, name: str = "", is_default: bool = False, is_closed: bool = False):
        self.id = id
        self.name = name
        self.is_default = is_default
        self.is_closed = is_closed


class TimeEntry(Record):
    """
    A logged amount of time against a project and, optionally, an issue.
    """

    def __init__(
        self,
        id: int,
        hours: float = 0.0,
        comments: str = "",
        spent_on: Optional[str] = None,
        created_on: Optional[str] = None,
        updated_on: Optional[str] = None,
        user: Optional[Identifier] = None,
        project: Optional[Identifier] = None,
        activity: Optional[Identifier] = None,
        issue_id: Optional[int] = None,
    ):
        self.id = id
        self.hours = hours
        self.comments = comments
        self.spent_on = spent_on
        self.created_on = created_on
        self.updated_on = updated_on
        self.user = user
        self.project = project
        self.activity = activity
        self.issue_id = issue_id


class IssueUpdate:
    """
    Sparse partial update for an issue.

    Only fields that were explicitly set are sent. Setting a field to None, 0 or "" sends that value,
    which is how a field is cleared on the server; fields never set are left unchanged.

        update = IssueUpdate(subject="New title")
        update.set("assigned_to_id", None)   # unassign
    """

    FIELDS = (
        "subject",
        "description",
        "status_id",
        "priority_id",
        "tracker_id",
        "project_id",
        "category_id",
        "assigned_to_id",
        "parent_issue_id",
        "start_date",
        "due_date",
        "done_ratio",
        "estimated_hours",
        "notes",
        "custom_fields",
    )

    def __init__(self, **fields):
        self._values: Dict[str, Any] = {}
        for name, value in fields.items():
            self.set(name, value)

    def set(self, name: str, value: Any) -> "IssueUpdate":
        if name not in self.FIELDS:
            raise TypeError(f"IssueUpdate has no field {name!r}")
        if name == "custom_fields" and value is not None:
            value = [_custom_field_payload(v) for v in value]
        self._values[name] = value
        return self

    def unset(self, name: str) -> "IssueUpdate":
        self._values.pop(name, None)
        return self

    def is_set(self, name: str) -> bool:
        return name in self._values

    def to_payload(self) -> Dict[str, Any]:
        return dict(self._values)

    def __len__(self):
        return len(self._values)

    def __eq__(self, other):
        return isinstance(other, IssueUpdate) and other._values == self._values

    def __repr__(self):
        return f"IssueUpdate({self._values!r})"


def _custom_field_payload(value: Any) -> Dict[str, Any]:
    if isinstance(value, ValueField):
        return {"id": value.id, "value": value.value}
    if isinstance(value, dict) and "id" in value:
        return {"id": value["id"], "value": value.get("value")}
    raise TypeError(f"custom field must be a ValueField or a dict with an 'id', got {value!r}")
