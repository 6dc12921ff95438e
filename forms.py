from datetime import date

from wtforms import (
    BooleanField,
    DateField,
    DecimalField,
    FileField,
    Form,
    IntegerField,
    RadioField,
    SelectField,
    StringField,
    SubmitField,
)
from wtforms.validators import URL, DataRequired, InputRequired, Length, NumberRange, Optional, ValidationError

from models import AVATARS, is_http_url


# ------------------------
# Start Competition Form
# ------------------------
class CompetitionForm(Form):
    name = StringField("Competition Name", validators=[DataRequired(), Length(max=100)])
    duration_days = IntegerField(
        "Duration (days)",
        default=30,
        validators=[InputRequired(), NumberRange(min=1, max=3650)],
    )
    submit = SubmitField("Start Competition")


# ------------------------
# Add Participant Form
# ------------------------
class ParticipantForm(Form):
    name = StringField("Participant Name", validators=[DataRequired(), Length(max=50)])
    avatar = RadioField(
        "Select Avatar",
        choices=[(a, a) for a in AVATARS],
        validate_choice=False,
        validators=[Optional()],
    )
    submit = SubmitField("Add")


# ------------------------
# Daily Activity Log Form
# ------------------------
class ActivityLogForm(Form):
    participant_id = SelectField("Select Participant", coerce=int, validators=[InputRequired()])
    date = DateField("Date", default=date.today, validators=[InputRequired()])

    completed = BooleanField("Completed workout today")
    duration = IntegerField("Duration (Minutes)", default=30, validators=[Optional(), NumberRange(min=0)])
    proof_file = FileField("Upload File")
    proof_url = StringField(
        "Proof Link",
        validators=[Optional(), URL(message="Paste a full http(s) link.")],
    )

    water = BooleanField("Drank 2L of water")
    walk_with_friend = BooleanField("Walked with a friend")

    steps = IntegerField("Steps Today", validators=[Optional(), NumberRange(min=0)])
    distance = DecimalField("Distance (km)", places=1, validators=[Optional(), NumberRange(min=0)])
    weight = DecimalField("Weight", places=1, validators=[Optional(), NumberRange(min=0)])
    submit = SubmitField("Log Activity")

    def validate_participant_id(self, field):
        if not field.data:
            raise ValidationError("Choose a participant.")

    def validate_proof_url(self, field):
        # URL() accepts any scheme; only web links count as proof
        if field.data and not is_http_url(field.data):
            raise ValidationError("Paste a full http(s) link.")

    def to_entry(self, proof=None):
        """Entry payload for Tracker.log_activity; zero metrics count as not recorded."""
        completed = bool(self.completed.data)
        return {
            "date": self.date.data,
            "completed": completed,
            "duration": (self.duration.data or 0) if completed else 0,
            "water": bool(self.water.data),
            "walkWithFriend": bool(self.walk_with_friend.data),
            "proof": proof,
            "steps": self.steps.data or None,
            "distance": float(self.distance.data) if self.distance.data else None,
            "weight": float(self.weight.data) if self.weight.data else None,
        }


# ------------------------
# Import Form
# ------------------------
class ImportForm(Form):
    document = FileField("Competition data (.json)", validators=[DataRequired()])
    submit = SubmitField("Import")
