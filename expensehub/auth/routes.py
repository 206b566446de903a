from flask import current_app, flash, redirect, render_template, url_for

from expensehub.errors import ExpenseHubError
from expensehub.services import company_service

from . import auth_bp
from .forms import CompanySignupForm, LoginForm
from .session import authenticate, end_session, get_session, start_session


@auth_bp.route("/login", methods=["GET", "POST"])
def login():
    if get_session() is not None:
        return redirect(url_for("main.dashboard"))

    form = LoginForm()
    if form.validate_on_submit():
        result = authenticate(form.email.data, form.password.data)
        if result is None:
            flash("Incorrect email or password.", "error")
        else:
            start_session(*result)
            flash("Welcome back!", "success")
            return redirect(url_for("main.dashboard"))

    return render_template("auth/login.html", form=form)


@auth_bp.route("/logout", methods=["GET", "POST"])
def logout():
    end_session()
    flash("You have been logged out.", "info")
    return redirect(url_for("auth.login"))


@auth_bp.route("/register", methods=["GET", "POST"])
def register():
    form = CompanySignupForm()

    if form.validate_on_submit():
        try:
            company, _user = company_service.create_company(
                company_name=form.company_name.data,
                admin_name=form.admin_name.data,
                admin_email=form.admin_email.data,
                admin_password=form.admin_password.data,
                base_currency=form.base_currency.data,
            )
        except ExpenseHubError as exc:
            flash(exc.message, "error")
        except Exception:
            current_app.logger.exception("Company signup failed")
            flash("Failed to create company. Please try again.", "error")
        else:
            flash(f"{company.name} is ready. Log in with your admin account.", "success")
            return redirect(url_for("auth.login"))

    return render_template("auth/register.html", form=form)
