"""WTForms schemas for JSON payloads and query strings.

JSON bodies carry real ints, bools and lists, so the fields below check types
instead of coercing; ``45.5`` is rejected as an amount rather than truncated.
"""
from __future__ import annotations

import json
import re
from datetime import date
from typing import Any, Dict, Type

from werkzeug.datastructures import MultiDict
from wtforms import Field, Form
from wtforms.validators import AnyOf, DataRequired, Email, Length, NumberRange, Optional, Regexp
from wtforms.widgets import TextInput

from expensehub.errors import InvalidRequest
from expensehub.models import ApprovalDecision, ApprovalType, ExpenseStatus, MembershipRole

_INTEGER = re.compile(r"^[+-]?\d+$")


class StrictStringField(Field):
    widget = TextInput()

    def process_formdata(self, valuelist):
        if not valuelist:
            return
        value = valuelist[0]
        if not isinstance(value, str):
            self.data = None
            raise ValueError("Not a valid string value.")
        self.data = value.strip()

    def _value(self):
        return self.data or ""


class StrictIntegerField(Field):
    widget = TextInput()

    def process_formdata(self, valuelist):
        if not valuelist:
            return
        value = valuelist[0]
        if isinstance(value, bool):
            self.data = None
        elif isinstance(value, int):
            self.data = value
            return
        elif isinstance(value, str) and _INTEGER.match(value.strip()):
            self.data = int(value.strip())
            return
        self.data = None
        raise ValueError("Not a valid integer value.")


class StrictBooleanField(Field):
    widget = TextInput()

    def process_formdata(self, valuelist):
        if not valuelist:
            return
        value = valuelist[0]
        if isinstance(value, bool):
            self.data = value
        elif isinstance(value, str) and value.strip().lower() in {"true", "false"}:
            self.data = value.strip().lower() == "true"
        else:
            self.data = None
            raise ValueError("Not a valid boolean value.")


class IsoDateField(Field):
    widget = TextInput()

    def process_formdata(self, valuelist):
        if not valuelist:
            return
        value = valuelist[0]
        if isinstance(value, str):
            try:
                self.data = date.fromisoformat(value.strip())
                return
            except ValueError:
                pass
        self.data = None
        raise ValueError("Not a valid date value. Use YYYY-MM-DD.")


class KeyListField(Field):
    """A list of strings, given as a JSON array or a JSON-encoded string."""

    widget = TextInput()

    def process_formdata(self, valuelist):
        values = list(valuelist)
        if len(values) == 1 and isinstance(values[0], str) and values[0].strip().startswith("["):
            try:
                values = json.loads(values[0])
            except ValueError:
                self.data = []
                raise ValueError("Not a valid list of keys.")
        if not isinstance(values, list) or not all(isinstance(item, str) for item in values):
            self.data = []
            raise ValueError("Not a valid list of keys.")
        self.data = [item for item in values if item]


def _enum_values(enum_cls) -> list:
    return [member.value for member in enum_cls]


# Companies and sessions -------------------------------------------------------


class CompanyCreateSchema(Form):
    company_name = StrictStringField(validators=[DataRequired(), Length(min=1, max=255)])
    admin_name = StrictStringField(validators=[DataRequired(), Length(min=1, max=255)])
    admin_email = StrictStringField(validators=[DataRequired(), Email(), Length(max=255)])
    admin_password = StrictStringField(validators=[DataRequired(), Length(min=6, max=128)])
    base_currency = StrictStringField(validators=[Optional(), Length(min=3, max=3)])


class LoginSchema(Form):
    email = StrictStringField(validators=[DataRequired(), Email()])
    password = StrictStringField(validators=[DataRequired()])


# Projects ---------------------------------------------------------------------


class ProjectCreateSchema(Form):
    name = StrictStringField(validators=[DataRequired(), Length(min=1, max=100)])
    description = StrictStringField(validators=[Optional(), Length(max=500)])
    active = StrictBooleanField(validators=[Optional()])


class ProjectUpdateSchema(Form):
    name = StrictStringField(validators=[Optional(), Length(min=1, max=100)])
    description = StrictStringField(validators=[Optional(), Length(max=500)])
    active = StrictBooleanField(validators=[Optional()])


class ProjectToggleSchema(Form):
    active = StrictBooleanField(validators=[Optional()])


# Expenses ---------------------------------------------------------------------


class ExpenseCreateSchema(Form):
    project_id = StrictIntegerField(validators=[NumberRange(min=1, message="Project is required.")])
    amount_minor = StrictIntegerField(
        validators=[NumberRange(min=1, message="Amount must be a positive integer in minor units.")]
    )
    currency = StrictStringField(validators=[Optional(), Length(min=3, max=3)])
    description = StrictStringField(validators=[DataRequired(), Length(min=1, max=500)])
    category = StrictStringField(validators=[DataRequired(), Length(min=1, max=100)])
    paid_by = StrictStringField(validators=[DataRequired(), Length(min=1, max=100)])
    expense_date = IsoDateField(validators=[DataRequired()])
    receipt_file_keys = KeyListField()


class ExpenseUpdateSchema(Form):
    project_id = StrictIntegerField(validators=[Optional(), NumberRange(min=1)])
    amount_minor = StrictIntegerField(
        validators=[Optional(), NumberRange(min=1, message="Amount must be a positive integer in minor units.")]
    )
    currency = StrictStringField(validators=[Optional(), Length(min=3, max=3)])
    description = StrictStringField(validators=[Optional(), Length(min=1, max=500)])
    category = StrictStringField(validators=[Optional(), Length(min=1, max=100)])
    paid_by = StrictStringField(validators=[Optional(), Length(min=1, max=100)])
    expense_date = IsoDateField(validators=[Optional()])


class ExpenseQuerySchema(Form):
    status = StrictStringField(validators=[Optional(), AnyOf(_enum_values(ExpenseStatus))])
    project_id = StrictIntegerField(validators=[Optional(), NumberRange(min=1)])
    start_date = IsoDateField(validators=[Optional()])
    end_date = IsoDateField(validators=[Optional()])
    limit = StrictIntegerField(validators=[Optional(), NumberRange(min=1, max=100)])
    offset = StrictIntegerField(validators=[Optional(), NumberRange(min=0)])


class DecisionSchema(Form):
    decision = StrictStringField(validators=[DataRequired(), AnyOf(_enum_values(ApprovalDecision))])
    note = StrictStringField(validators=[Optional(), Length(max=1000)])


# Uploads ----------------------------------------------------------------------


class PresignedUrlSchema(Form):
    file_name = StrictStringField(validators=[DataRequired(), Length(min=1, max=255)])
    mime_type = StrictStringField(validators=[DataRequired(), Length(max=120)])
    file_size = StrictIntegerField(validators=[NumberRange(min=1, message="File size must be positive.")])


# Administration ---------------------------------------------------------------


class MemberCreateSchema(Form):
    name = StrictStringField(validators=[DataRequired(), Length(min=1, max=255)])
    username = StrictStringField(
        validators=[
            DataRequired(),
            Length(min=1, max=64),
            Regexp(r"^[A-Za-z0-9._-]+$", message="Use letters, digits, dots, dashes or underscores."),
        ]
    )
    role = StrictStringField(validators=[DataRequired(), AnyOf(_enum_values(MembershipRole))])
    project_id = StrictIntegerField(validators=[NumberRange(min=1, message="Project is required.")])


class RoleUpdateSchema(Form):
    role = StrictStringField(validators=[DataRequired(), AnyOf(_enum_values(MembershipRole))])


class PolicyUpdateSchema(Form):
    type = StrictStringField(validators=[Optional(), AnyOf(_enum_values(ApprovalType))])
    threshold_percent = StrictIntegerField(validators=[Optional(), NumberRange(min=1, max=100)])
    max_per_employee_minor = StrictIntegerField(validators=[Optional(), NumberRange(min=1)])
    large_expense_threshold_minor = StrictIntegerField(validators=[Optional(), NumberRange(min=1)])
    require_ceo_for_large = StrictBooleanField(validators=[Optional()])


class AuditQuerySchema(Form):
    action = StrictStringField(validators=[Optional(), Length(max=120)])
    entity = StrictStringField(validators=[Optional(), Length(max=120)])
    limit = StrictIntegerField(validators=[Optional(), NumberRange(min=1, max=100)])
    offset = StrictIntegerField(validators=[Optional(), NumberRange(min=0)])


def validate_payload(schema: Type[Form], payload: Dict[str, Any]) -> Dict[str, Any]:
    """Validate ``payload`` and return the parsed values of the keys it sent.

    Raises :class:`InvalidRequest` with the field errors as details.
    """
    formdata = MultiDict()
    for key, value in payload.items():
        if value is None:
            continue
        if isinstance(value, list):
            for item in value:
                formdata.add(key, item)
        else:
            formdata.add(key, value)

    form = schema(formdata=formdata)
    if not form.validate():
        raise InvalidRequest("Invalid request data", details=form.errors)
    return {name: form[name].data for name in formdata.keys() if name in form}
