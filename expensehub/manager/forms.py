from flask_wtf import FlaskForm
from wtforms import RadioField, SubmitField, TextAreaField
from wtforms.validators import DataRequired, Length, Optional


class DecisionForm(FlaskForm):
    decision = RadioField(
        "Decision",
        choices=[("APPROVE", "Approve"), ("REJECT", "Reject")],
        validators=[DataRequired()],
    )
    note = TextAreaField("Note", validators=[Optional(), Length(max=1000)])
    submit = SubmitField("Record Decision")
