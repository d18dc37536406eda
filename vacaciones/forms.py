"""WTForms form classes.

Forms accept both urlencoded bodies and JSON bodies; Flask-WTF wraps a JSON
payload as form data.
"""

from __future__ import annotations

from flask_wtf import FlaskForm
from flask_wtf.file import FileField, FileRequired
from wtforms import BooleanField, DateField, IntegerField, PasswordField, SelectField, StringField, TextAreaField
from wtforms.validators import DataRequired, Email, InputRequired, Length, NumberRange, Optional, ValidationError

from vacaciones.models import LeaveType


LEAVE_TYPE_CHOICES = [
    (LeaveType.VACATION.value, "Vacaciones"),
    (LeaveType.PERSONAL_DAY.value, "Asuntos propios"),
    (LeaveType.OTHER.value, "Otro permiso"),
]


class LoginForm(FlaskForm):
    email = StringField("Email", validators=[DataRequired(), Email(), Length(max=255)], filters=[lambda value: value.strip() if value else value])
    password = PasswordField("Password", validators=[DataRequired(), Length(min=8, max=255)])
    remember = BooleanField("Remember me")


class AbsenceRequestForm(FlaskForm):
    leave_type = SelectField("Tipo", choices=LEAVE_TYPE_CHOICES, validators=[DataRequired()], coerce=str)
    date_from = DateField("Desde", validators=[DataRequired()])
    date_to = DateField("Hasta", validators=[DataRequired()])
    reason = TextAreaField("Motivo", validators=[Optional(), Length(max=500)])

    def validate_date_to(self, field: DateField) -> None:
        if self.date_from.data and field.data and field.data < self.date_from.data:
            raise ValidationError("La fecha de fin debe ser igual o posterior a la fecha de inicio.")


class CarryOverForm(FlaskForm):
    days = IntegerField("Dias restantes del ano anterior", validators=[InputRequired(), NumberRange(min=0, max=366)])


class EntitlementRuleForm(FlaskForm):
    group = StringField("Grupo", validators=[DataRequired(), Length(max=128)])
    year = IntegerField("Ano", validators=[InputRequired(), NumberRange(min=1970, max=9999)])
    vacation_days = IntegerField("Dias de vacaciones anuales", validators=[InputRequired(), NumberRange(min=0, max=366)])
    personal_days = IntegerField("Dias de asuntos propios anuales", validators=[InputRequired(), NumberRange(min=0, max=366)])

    def validate_group(self, field: StringField) -> None:
        if not (field.data or "").strip():
            raise ValidationError("El grupo es obligatorio.")


class GroupAssignmentForm(FlaskForm):
    group = StringField("Grupo", validators=[DataRequired(), Length(max=128)])
    effective_from = DateField("Aplicar desde", validators=[Optional()])


class HolidayForm(FlaskForm):
    region = StringField("Region", validators=[DataRequired(), Length(max=64)])
    day = DateField("Dia", validators=[DataRequired()])
    name = StringField("Nombre", validators=[DataRequired(), Length(max=255)])


class CsvImportForm(FlaskForm):
    csv_file = FileField("CSV", validators=[FileRequired()])


def form_errors(form: FlaskForm) -> list[dict[str, str]]:
    return [{"field": name, "msg": message} for name, messages in form.errors.items() for message in messages]
