"""
WTForms classes validating API input.

Flask-WTF reads JSON bodies as well as form/multipart submissions, so the
same form serves `application/json` clients and photo uploads.  Field names
follow the camelCase keys of the JSON API, which keeps `form.errors`
addressable by the client.  CSRF is disabled: the API authenticates with
bearer tokens, not cookies.
"""
import os
import re

from flask import current_app, request
from flask_wtf import FlaskForm
from flask_wtf.file import FileField
from wtforms import IntegerField, PasswordField, SelectField, StringField, TextAreaField
from wtforms.validators import DataRequired, InputRequired, Length, Optional, Regexp, StopValidation, ValidationError

from . import errors
from .models import COMPLAINT_CATEGORIES, COMPLAINT_PRIORITIES, Unit


EMAIL_PATTERN = r"^[^@\s]+@[^@\s]+\.[^@\s]+$"


def _strip(value):
    if value is None:
        return None
    return str(value).strip()


def _default_priority(value):
    return value or "Low"


def string_only(form, field) -> None:
    """Stop the chain when a JSON client sends a number or object for text."""
    if field.data is not None and not isinstance(field.data, str):
        raise StopValidation("Must be a text value.")


class IdField(IntegerField):
    """IntegerField that also reports lists and objects as invalid ids."""

    def process_formdata(self, valuelist):
        try:
            super().process_formdata(valuelist)
        except TypeError as exc:
            self.data = None
            raise ValueError(self.gettext("Not a valid integer value.")) from exc


def min_digits(count: int):
    """Require at least `count` digits, ignoring spaces and punctuation."""
    message = f"Contact number must be at least {count} digits."

    def _validator(form, field) -> None:
        if len(re.sub(r"\D", "", field.data or "")) < count:
            raise ValidationError(message)

    return _validator


def password_length_required(form, field) -> None:
    min_len = int(current_app.config.get("PASSWORD_MIN_LENGTH", 8))
    if len(field.data or "") < min_len:
        raise ValidationError(f"Password must be at least {min_len} characters.")


def active_unit_required(form, field) -> None:
    if field.data is None:
        return
    unit = Unit.query.filter_by(id=field.data, is_active=True).first()
    if unit is None:
        raise ValidationError("Select a valid barangay.")


def image_only(form, field) -> None:
    photo = field.data
    if not photo:
        return
    if not (photo.mimetype or "").startswith("image/"):
        raise ValidationError("Only image files are allowed.")


def photo_size_limit(form, field) -> None:
    photo = field.data
    if not photo:
        return
    max_bytes = int(current_app.config.get("PHOTO_MAX_BYTES", 5 * 1024 * 1024))
    photo.stream.seek(0, os.SEEK_END)
    size = photo.stream.tell()
    photo.stream.seek(0)
    if size > max_bytes:
        raise ValidationError(f"Photo must be at most {max_bytes // (1024 * 1024)}MB.")


class ApiForm(FlaskForm):
    class Meta:
        csrf = False

        def wrap_formdata(self, form, formdata):
            # Field lookup needs a mapping; a JSON list or scalar cannot be a form.
            if request.is_json and not isinstance(request.get_json(), dict):
                raise errors.ValidationError("Request body must be a JSON object")
            return super().wrap_formdata(form, formdata)


class ComplaintForm(ApiForm):
    """Public complaint filing; an optional photo arrives as multipart."""

    fullName = StringField(
        "Full Name",
        filters=[_strip],
        validators=[DataRequired(), Length(min=2, message="Full name must be at least 2 characters.")],
    )
    contactNumber = StringField("Contact Number", filters=[_strip], validators=[DataRequired(), min_digits(11)])
    email = StringField(
        "Email",
        filters=[_strip],
        validators=[Optional(), Length(max=255), Regexp(EMAIL_PATTERN, message="Enter a valid email address.")],
    )
    category = SelectField(
        "Category",
        choices=[(c, c) for c in COMPLAINT_CATEGORIES],
        validators=[DataRequired()],
    )
    description = TextAreaField(
        "Description",
        validators=[
            string_only,
            DataRequired(),
            Length(min=20, max=500, message="Description must be between 20 and 500 characters."),
        ],
    )
    location = StringField(
        "Location",
        filters=[_strip],
        validators=[DataRequired(), Length(min=5, message="Location must be at least 5 characters.")],
    )
    priority = SelectField(
        "Priority",
        choices=[(p, p) for p in COMPLAINT_PRIORITIES],
        default="Low",
        filters=[_default_priority],
    )
    barangayId = IdField("Barangay", validators=[Optional(), active_unit_required])
    photo = FileField("Photo", validators=[image_only, photo_size_limit])


class StatusForm(ApiForm):
    status = StringField("Status", filters=[_strip], validators=[DataRequired()])


class NoteForm(ApiForm):
    note = TextAreaField(
        "Note",
        filters=[_strip],
        validators=[DataRequired(message="Note cannot be empty."), Length(max=2000)],
    )


class SignupForm(ApiForm):
    email = StringField(
        "Email",
        filters=[_strip],
        validators=[DataRequired(), Length(max=255), Regexp(EMAIL_PATTERN, message="Please enter a valid email address.")],
    )
    password = PasswordField("Password", validators=[string_only, DataRequired(), password_length_required])
    firstName = StringField(
        "First Name",
        filters=[_strip],
        validators=[DataRequired(), Length(min=2, max=100, message="First name must be at least 2 characters.")],
    )
    lastName = StringField(
        "Last Name",
        filters=[_strip],
        validators=[DataRequired(), Length(min=2, max=100, message="Last name must be at least 2 characters.")],
    )
    contactNumber = StringField("Contact Number", filters=[_strip], validators=[DataRequired(), min_digits(11)])
    address = StringField(
        "Address",
        filters=[_strip],
        validators=[DataRequired(), Length(min=10, max=255, message="Address must be at least 10 characters.")],
    )
    barangayId = IdField("Barangay", validators=[InputRequired(), active_unit_required])


class LoginForm(ApiForm):
    """Resident login; the email is the account key."""

    email = StringField("Email", filters=[_strip], validators=[DataRequired()])
    password = PasswordField("Password", validators=[string_only, DataRequired()])


class AdminLoginForm(ApiForm):
    """Admin login.  `username` carries the admin's email address."""

    username = StringField("Username", filters=[_strip], validators=[DataRequired()])
    password = PasswordField("Password", validators=[string_only, DataRequired()])


class AdminCreateForm(ApiForm):
    """Super-admin form for provisioning a unit-admin account."""

    email = StringField(
        "Email",
        filters=[_strip],
        validators=[DataRequired(), Length(max=255), Regexp(EMAIL_PATTERN, message="Please enter a valid email address.")],
    )
    password = PasswordField("Password", validators=[string_only, DataRequired(), password_length_required])
    firstName = StringField("First Name", filters=[_strip], validators=[DataRequired(), Length(min=2, max=100)])
    lastName = StringField("Last Name", filters=[_strip], validators=[DataRequired(), Length(min=2, max=100)])
    barangayId = IdField("Barangay", validators=[InputRequired(), active_unit_required])


class UnitForm(ApiForm):
    name = StringField("Name", filters=[_strip], validators=[DataRequired(), Length(min=2, max=150)])
    municipality = StringField("Municipality", filters=[_strip], validators=[DataRequired(), Length(min=2, max=150)])
    province = StringField("Province", filters=[_strip], validators=[DataRequired(), Length(min=2, max=150)])
    description = TextAreaField("Description", filters=[_strip], validators=[Optional()])

    def validate_name(self, field):
        if Unit.query.filter_by(name=field.data).first() is not None:
            raise ValidationError("A barangay with this name already exists.")


class ForumPostForm(ApiForm):
    title = StringField(
        "Title",
        filters=[_strip],
        validators=[DataRequired(), Length(min=5, max=200, message="Title must be between 5 and 200 characters.")],
    )
    content = TextAreaField(
        "Content",
        filters=[_strip],
        validators=[DataRequired(), Length(min=10, max=2000, message="Content must be between 10 and 2000 characters.")],
    )


class ForumReplyForm(ApiForm):
    content = TextAreaField(
        "Content",
        filters=[_strip],
        validators=[DataRequired(message="Reply cannot be empty."), Length(max=1000, message="Reply cannot exceed 1000 characters.")],
    )
