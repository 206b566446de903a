from decimal import Decimal

from flask_wtf import FlaskForm
from flask_wtf.file import MultipleFileField
from wtforms import DateField, DecimalField, SelectField, SubmitField, TextAreaField
from wtforms.validators import DataRequired, Length, NumberRange

CURRENCIES = ["USD", "EUR", "GBP", "CAD", "AUD"]
CATEGORIES = [
    "Travel",
    "Meals",
    "Office Supplies",
    "Software",
    "Hardware",
    "Training",
    "Marketing",
    "Other",
]
PAID_BY_OPTIONS = ["Company Card", "Personal Card", "Cash", "Bank Transfer"]


class ExpenseForm(FlaskForm):
    project_id = SelectField("Project", coerce=int, validators=[DataRequired()])
    amount = DecimalField(
        "Amount",
        places=2,
        validators=[DataRequired(), NumberRange(min=Decimal("0.01"), message="Amount must be positive.")],
    )
    currency = SelectField("Currency", choices=[(code, code) for code in CURRENCIES], default="USD")
    description = TextAreaField("Description", validators=[DataRequired(), Length(max=500)])
    category = SelectField("Category", choices=[(name, name) for name in CATEGORIES], validators=[DataRequired()])
    paid_by = SelectField("Paid By", choices=[(name, name) for name in PAID_BY_OPTIONS], validators=[DataRequired()])
    expense_date = DateField("Expense Date", validators=[DataRequired()])
    receipts = MultipleFileField("Receipts")
    submit = SubmitField("Submit Expense")
