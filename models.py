import datetime as dt
import random
from typing import Annotated, List, Literal, Optional, Union

from pydantic import BaseModel, ConfigDict, Field, field_validator, model_serializer, model_validator

from utils.proofs import stored_media_kind

# fixed avatar palette, one glyph per participant
AVATARS = [
    "🏃‍♀️", "🏃", "💪", "🧘‍♀️", "🧘", "🚴‍♀️", "🚴", "🏋️‍♀️",
    "🏋️", "⛹️‍♀️", "⛹️", "🤸‍♀️", "🏊‍♀️", "🏊", "🧗‍♀️", "🧗",
]


def random_avatar():
    return random.choice(AVATARS)


# ------------------------
# Proof variants
# ------------------------
class NoProof(BaseModel):
    kind: Literal["none"] = "none"


class UploadedFile(BaseModel):
    kind: Literal["file"] = "file"
    path: str = Field(min_length=1)
    media: Literal["photo", "video"]


class ExternalLink(BaseModel):
    kind: Literal["link"] = "link"
    url: str = Field(min_length=1)

    @field_validator("url")
    @classmethod
    def http_scheme_only(cls, value):
        value = value.strip()
        if not is_http_url(value):
            raise ValueError("link proof must start with http:// or https://")
        return value


def is_http_url(value):
    return isinstance(value, str) and value.strip().lower().startswith(("http://", "https://"))


Proof = Annotated[Union[NoProof, UploadedFile, ExternalLink], Field(discriminator="kind")]


def normalize_legacy_proof(proof, proof_path=None):
    """Turn the stored ``proof`` / ``proofPath`` pair into one Proof variant.

    Precedence: an uploaded file path wins, then an http(s) link, and
    anything else (``None``, ``""``, ``"none"``, a bare ``"photo"`` tag
    without a path, free text) means no proof.
    """
    if isinstance(proof_path, str) and proof_path.strip():
        path = proof_path.strip()
        return UploadedFile(path=path, media=stored_media_kind(path))

    if is_http_url(proof):
        return ExternalLink(url=proof.strip())

    return NoProof()


# ------------------------
# ActivityLog Model
# ------------------------
class ActivityLog(BaseModel):
    """One participant's activity for one calendar date."""

    model_config = ConfigDict(populate_by_name=True)

    date: dt.date
    completed: bool = False
    duration: int = Field(default=0, ge=0)  # minutes
    water: bool = False
    walk_with_friend: bool = Field(default=False, alias="walkWithFriend")
    proof: Proof = Field(default_factory=NoProof)

    # optional personal tracking, never scored
    steps: Optional[int] = Field(default=None, ge=0)
    distance: Optional[float] = Field(default=None, ge=0)  # km
    weight: Optional[float] = Field(default=None, ge=0)

    @model_validator(mode="before")
    @classmethod
    def normalize_proof(cls, data):
        if not isinstance(data, dict):
            return data
        proof = data.get("proof")
        if isinstance(proof, (dict, BaseModel)):
            return data

        data = dict(data)
        proof_path = data.pop("proofPath", None) or data.pop("proof_path", None)
        data["proof"] = normalize_legacy_proof(proof, proof_path).model_dump()
        return data

    @model_validator(mode="after")
    def no_minutes_without_workout(self):
        if not self.completed:
            self.duration = 0
        return self

    @model_serializer
    def to_document(self):
        # written back in the flat proof/proofPath shape older documents use
        proof, proof_path = None, None
        if isinstance(self.proof, UploadedFile):
            proof, proof_path = self.proof.media, self.proof.path
        elif isinstance(self.proof, ExternalLink):
            proof = self.proof.url

        doc = {
            "date": self.date.isoformat(),
            "completed": self.completed,
            "duration": self.duration,
            "proof": proof,
            "proofPath": proof_path,
            "water": self.water,
            "walkWithFriend": self.walk_with_friend,
        }
        for key in ("steps", "distance", "weight"):
            value = getattr(self, key)
            if value is not None:
                doc[key] = value
        return doc


# ----------------------------
# Participant Model
# ----------------------------
class Participant(BaseModel):
    model_config = ConfigDict(populate_by_name=True, str_strip_whitespace=True)

    id: int
    name: str = Field(min_length=1)
    avatar: str = Field(default_factory=random_avatar)
    join_date: dt.date = Field(default_factory=dt.date.today, alias="joinDate")
    logs: List[ActivityLog] = Field(default_factory=list)

    @field_validator("logs", mode="before")
    @classmethod
    def logs_default(cls, value):
        return value or []

    def log_for(self, day):
        """Return the log recorded for ``day``, or None."""
        return next((log for log in self.logs if log.date == day), None)


# ------------------------
# Competition Model
# ------------------------
class Competition(BaseModel):
    model_config = ConfigDict(populate_by_name=True, str_strip_whitespace=True)

    name: str = Field(min_length=1)
    start_date: dt.date = Field(alias="startDate")
    duration_days: int = Field(ge=1, alias="durationDays")
    created_at: Optional[dt.datetime] = Field(default=None, alias="createdAt")

    @property
    def end_date(self):
        return self.start_date + dt.timedelta(days=self.duration_days - 1)


# ------------------------
# The whole persisted document
# ------------------------
class CompetitionDocument(BaseModel):
    model_config = ConfigDict(extra="ignore")

    competition: Optional[Competition] = None
    participants: List[Participant] = Field(default_factory=list)

    @field_validator("participants", mode="before")
    @classmethod
    def participants_default(cls, value):
        return value or []

    def to_json_dict(self):
        return self.model_dump(mode="json", by_alias=True)
