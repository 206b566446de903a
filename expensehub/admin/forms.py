from decimal import Decimal

from flask_wtf import FlaskForm
from wtforms import BooleanField, DecimalField, IntegerField, SelectField, StringField, SubmitField
from wtforms.validators import DataRequired, Length, NumberRange, Optional, Regexp

from expensehub.models import ApprovalType, MembershipRole

ROLE_CHOICES = [(role.value, role.value.title()) for role in MembershipRole]


class MemberForm(FlaskForm):
    name = StringField("Full Name", validators=[DataRequired(), Length(max=255)])
    username = StringField(
        "Username",
        validators=[
            DataRequired(),
            Length(max=64),
            Regexp(r"^[A-Za-z0-9._-]+$", message="Use letters, digits, dots, dashes or underscores."),
        ],
    )
    role = SelectField("Role", choices=ROLE_CHOICES, default=MembershipRole.EMPLOYEE.value)
    project_id = SelectField("Project", coerce=int, validators=[DataRequired()])
    submit = SubmitField("Create User")


class RoleForm(FlaskForm):
    role = SelectField("Role", choices=ROLE_CHOICES)
    submit = SubmitField("Update")


class PolicyForm(FlaskForm):
    type = SelectField("Approval Type", choices=[(kind.value, kind.value.title()) for kind in ApprovalType])
    threshold_percent = IntegerField("Threshold (%)", validators=[Optional(), NumberRange(min=1, max=100)])
    max_per_employee = DecimalField(
        "Max per employee", places=2, validators=[Optional(), NumberRange(min=Decimal("0.01"))]
    )
    large_expense_threshold = DecimalField(
        "Large expense threshold", places=2, validators=[Optional(), NumberRange(min=Decimal("0.01"))]
    )
    require_ceo_for_large = BooleanField("Require CEO approval for large expenses")
    submit = SubmitField("Save Policy")
