from flask_wtf import FlaskForm
from wtforms import BooleanField, PasswordField, StringField
from wtforms.validators import DataRequired, Email, Length, Optional

# API clients post JSON; Flask-WTF reads the JSON body as form data, so a
# field can arrive as a number or bool. Text fields coerce it to str.


def _as_text(value):
    if value is None or isinstance(value, str):
        return value
    return str(value)


TEXT = [_as_text]


class RegisterForm(FlaskForm):
    email = StringField("Email", validators=[DataRequired(), Email(), Length(max=255)], filters=TEXT)
    password = PasswordField("Password", validators=[DataRequired(), Length(min=8, max=256)], filters=TEXT)
    first_name = StringField("First Name", validators=[DataRequired(), Length(max=100)], filters=TEXT)
    last_name = StringField("Last Name", validators=[DataRequired(), Length(max=100)], filters=TEXT)
    phone = StringField("Phone", validators=[Optional(), Length(max=40)], filters=TEXT)


class LoginForm(FlaskForm):
    email = StringField("Email", validators=[DataRequired(), Length(max=255)], filters=TEXT)
    password = PasswordField("Password", validators=[DataRequired(), Length(max=256)], filters=TEXT)


class AdminLoginForm(LoginForm):
    totp = StringField("Authenticator Code", validators=[Optional(), Length(max=16)], filters=TEXT)


class TotpCodeForm(FlaskForm):
    totp = StringField("Authenticator Code", validators=[DataRequired(), Length(max=16)], filters=TEXT)


class AssessmentForm(FlaskForm):
    name = StringField("Full Name", validators=[DataRequired(), Length(max=255)], filters=TEXT)
    email = StringField("Email", validators=[DataRequired(), Email(), Length(max=255)], filters=TEXT)
    profession = StringField("Profession", validators=[Optional(), Length(max=64)], filters=TEXT)
    net_worth = StringField("Net Worth", validators=[Optional(), Length(max=32)], filters=TEXT)
    legal_threats = StringField("Legal Threats", validators=[Optional(), Length(max=32)], filters=TEXT)
    has_real_estate = BooleanField("Owns Real Estate")
