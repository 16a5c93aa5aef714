# app/blueprints/api/forms.py

from flask_wtf import FlaskForm
from flask_wtf.file import FileField, FileRequired, MultipleFileField
from wtforms import DateField, SelectField, StringField
from wtforms.validators import DataRequired, Length, Optional

from app.models.job import JOB_STATUSES, REFUND_STATUSES
from app.services.job_records import EDITABLE_FIELDS


class ApiForm(FlaskForm):
    # el API va detrás del gateway de auth, sin token CSRF
    class Meta:
        csrf = False


class JobForm(ApiForm):
    consignee = StringField("Consignee", validators=[Optional(), Length(max=255)])
    bl_number = StringField("BL Number", validators=[Optional(), Length(max=80)])
    container_size = StringField("Container Size", validators=[Optional(), Length(max=30)])
    terminal = StringField("Terminal", validators=[Optional(), Length(max=120)])

    status = SelectField(
        "Status",
        choices=[(s, s) for s in JOB_STATUSES],
        default="pending",
    )
    eta = DateField("ETA", validators=[Optional()])
    refund_status = SelectField(
        "Refund Status",
        choices=[(s, s) for s in REFUND_STATUSES],
        default="pending",
    )

    def job_values(self) -> dict:
        return {
            "consignee": self.consignee.data or "",
            "bl_number": self.bl_number.data or "",
            "container_size": self.container_size.data or "",
            "terminal": self.terminal.data or "",
            "status": self.status.data,
            "eta": self.eta.data,
            "refund_status": self.refund_status.data,
        }


class JobFieldForm(ApiForm):
    field = SelectField("Field", choices=[(f, f) for f in EDITABLE_FIELDS])
    value = StringField("Value")


class AttachmentUploadForm(ApiForm):
    files = MultipleFileField("Files", validators=[FileRequired()])


class RenameAttachmentForm(ApiForm):
    old_name = StringField("Current name", validators=[DataRequired(), Length(max=255)])
    new_name = StringField("New name", validators=[DataRequired(), Length(max=255)])


class LibraryUploadForm(ApiForm):
    file = FileField("File", validators=[FileRequired()])
    folder_path = StringField("Folder", validators=[DataRequired(), Length(max=500)])
    category = StringField("Category", validators=[Optional(), Length(max=80)])
