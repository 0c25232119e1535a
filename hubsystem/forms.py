"""
Request validation.

Flask-WTF binds JSON request bodies to these forms, so every API handler
validates input the same way an HTML form post would be validated.
"""

from flask_wtf import FlaskForm
from wtforms import StringField, PasswordField, IntegerField, BooleanField, DateTimeField, TextAreaField
from wtforms.validators import DataRequired, Length, Email, Regexp, NumberRange, AnyOf, Optional, URL

from hubsystem.models import VISIBILITIES

DATETIME_FORMATS = ['%Y-%m-%dT%H:%M:%S', '%Y-%m-%dT%H:%M', '%Y-%m-%d %H:%M:%S', '%Y-%m-%d']

PASSWORD_RULE = Regexp(r'\d', message="Password must include a number")
RESET_PASSWORD_RULE = Regexp(r'^(?=.*[A-Za-z])(?=.*\d).{8,}$',
                             message="Password must be at least 8 characters and include a letter and a number")


class SignUpForm(FlaskForm):
    first_name = StringField(validators=[DataRequired(), Length(min=2, message="First name must be at least 2 characters")])
    last_name = StringField(validators=[DataRequired(), Length(min=2, message="Last name must be at least 2 characters")])
    email = StringField(validators=[DataRequired(), Email(message="Invalid email address")])
    password = PasswordField(validators=[
        DataRequired(),
        Length(min=8, message="Password must be at least 8 characters"),
        PASSWORD_RULE,
    ])
    degree_programme = StringField(validators=[Optional(), Length(max=150)])


class SignInForm(FlaskForm):
    email = StringField(validators=[DataRequired(), Email(message="Invalid email address")])
    password = PasswordField(validators=[DataRequired(message="Password is required")])


class ResetPasswordForm(FlaskForm):
    email = StringField(validators=[DataRequired(), Email(message="Invalid email address")])
    otp = StringField(validators=[DataRequired(message="OTP is required")])
    new_password = PasswordField(validators=[DataRequired(), RESET_PASSWORD_RULE])


class ProfileForm(FlaskForm):
    first_name = StringField(validators=[DataRequired(), Length(min=2, message="First name must be at least 2 characters")])
    last_name = StringField(validators=[DataRequired(), Length(min=2, message="Last name must be at least 2 characters")])
    degree_programme = StringField(validators=[Optional(), Length(max=150)])
    profile_picture = StringField(validators=[Optional(), URL(require_tld=False)])


class HubForm(FlaskForm):
    name = StringField(validators=[DataRequired(), Length(min=3, message="Hub name must be at least 3 characters")])
    description = TextAreaField(validators=[DataRequired(), Length(min=10, message="Description must be at least 10 characters")])
    card_bio = StringField(validators=[Optional(), Length(max=200, message="Card bio must be less than 200 characters")])
    logo = StringField(validators=[Optional(), URL(require_tld=False)])
    cover_image = StringField(validators=[Optional(), URL(require_tld=False)])


class ProjectForm(FlaskForm):
    hub_id = IntegerField(validators=[DataRequired()])
    title = StringField(validators=[DataRequired(), Length(min=3, message="Project title must be at least 3 characters")])
    description = TextAreaField(validators=[DataRequired(), Length(min=10, message="Description must be at least 10 characters")])
    objectives = TextAreaField(validators=[Optional(), Length(min=10, message="Objectives must be at least 10 characters")])
    cover_image = StringField(validators=[Optional(), URL(require_tld=False)])
    start_date = DateTimeField(format=DATETIME_FORMATS, validators=[Optional()])
    end_date = DateTimeField(format=DATETIME_FORMATS, validators=[Optional()])
    visibility = StringField(default='HUB_MEMBERS', validators=[Optional(), AnyOf(VISIBILITIES)])


class ProgrammeForm(FlaskForm):
    hub_id = IntegerField(validators=[DataRequired()])
    title = StringField(validators=[DataRequired(), Length(min=3, message="Programme title must be at least 3 characters")])
    description = TextAreaField(validators=[DataRequired(), Length(min=10, message="Description must be at least 10 characters")])
    cover_image = StringField(validators=[Optional(), URL(require_tld=False)])
    start_date = DateTimeField(format=DATETIME_FORMATS, validators=[Optional()])
    end_date = DateTimeField(format=DATETIME_FORMATS, validators=[Optional()])


class EventForm(FlaskForm):
    hub_id = IntegerField(validators=[DataRequired()])
    title = StringField(validators=[DataRequired(), Length(min=3, message="Event title must be at least 3 characters")])
    description = TextAreaField(validators=[DataRequired(), Length(min=10, message="Description must be at least 10 characters")])
    event_type = StringField(validators=[DataRequired(message="Event type is required")])
    start_date = DateTimeField(format=DATETIME_FORMATS, validators=[DataRequired()])
    end_date = DateTimeField(format=DATETIME_FORMATS, validators=[Optional()])
    is_online = BooleanField(default=False)
    venue = StringField(validators=[Optional(), Length(max=200)])
    meeting_link = StringField(validators=[Optional(), URL(require_tld=False)])
    capacity = IntegerField(validators=[Optional(), NumberRange(min=1)])
    visibility = StringField(default='HUB_MEMBERS', validators=[Optional(), AnyOf(('PUBLIC', 'AUTHENTICATED', 'HUB_MEMBERS'))])
    cover_image = StringField(validators=[Optional(), URL(require_tld=False)])


class FeedbackForm(FlaskForm):
    event_id = IntegerField(validators=[DataRequired()])
    rating = IntegerField(validators=[DataRequired(), NumberRange(min=1, max=5)])
    content = TextAreaField(validators=[Optional()])
    suggestions = TextAreaField(validators=[Optional()])
    would_recommend = BooleanField(validators=[Optional()])


class ProgressReportForm(FlaskForm):
    project_id = IntegerField(validators=[DataRequired()])
    title = StringField(validators=[DataRequired(message="Title is required")])
    content = TextAreaField(validators=[DataRequired(message="Content is required")])


class ProjectSuggestionForm(FlaskForm):
    project_id = IntegerField(validators=[DataRequired()])
    title = StringField(validators=[DataRequired(), Length(min=3, max=200)])
    content = TextAreaField(validators=[DataRequired(), Length(min=10)])


class SuggestionResponseForm(FlaskForm):
    action = StringField(validators=[DataRequired(), AnyOf(('approve', 'edit', 'deny'))])
    message = TextAreaField(validators=[Optional()])


class AdminUserForm(FlaskForm):
    first_name = StringField(validators=[DataRequired(), Length(min=2)])
    last_name = StringField(validators=[DataRequired(), Length(min=2)])
    email = StringField(validators=[DataRequired(), Email(message="Invalid email address")])
    password = PasswordField(validators=[DataRequired(), Length(min=8), PASSWORD_RULE])
    role = StringField(default='student', validators=[Optional(), AnyOf(('student', 'admin'))])
    degree_programme = StringField(validators=[Optional(), Length(max=150)])


class AdminUserUpdateForm(FlaskForm):
    first_name = StringField(validators=[Optional(), Length(min=2)])
    last_name = StringField(validators=[Optional(), Length(min=2)])
    email = StringField(validators=[Optional(), Email(message="Invalid email address")])
    password = PasswordField(validators=[Optional(), Length(min=8), PASSWORD_RULE])
    role = StringField(validators=[Optional(), AnyOf(('student', 'admin'))])
    degree_programme = StringField(validators=[Optional(), Length(max=150)])
