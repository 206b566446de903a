from flask_wtf import FlaskForm
from wtforms import PasswordField, StringField, SubmitField
from wtforms.validators import DataRequired, Email, EqualTo, Length


class LoginForm(FlaskForm):
    email = StringField("Email", validators=[DataRequired(), Email()])
    password = PasswordField("Password", validators=[DataRequired()])
    submit = SubmitField("Log in")


class CompanySignupForm(FlaskForm):
    company_name = StringField("Company Name", validators=[DataRequired(), Length(max=255)])
    admin_name = StringField("Your Name", validators=[DataRequired(), Length(max=255)])
    admin_email = StringField("Email", validators=[DataRequired(), Email(), Length(max=255)])
    admin_password = PasswordField(
        "Password",
        validators=[DataRequired(), Length(min=6, message="Use at least 6 characters.")],
    )
    confirm_password = PasswordField(
        "Confirm Password",
        validators=[DataRequired(), EqualTo("admin_password", message="Passwords must match.")],
    )
    base_currency = StringField("Base Currency", default="USD", validators=[DataRequired(), Length(min=3, max=3)])
    submit = SubmitField("Create Company")
