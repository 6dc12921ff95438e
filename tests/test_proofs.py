"""
Tests for proof classification and legacy proof normalization
"""
from datetime import date

import pydantic
import pytest

from models import ActivityLog, CompetitionDocument, ExternalLink, NoProof, UploadedFile
from utils.proofs import classify_proof, has_proof, media_kind_for


def legacy_log(**kwargs):
    data = {"date": "2024-01-01", "completed": True, "duration": 30}
    data.update(kwargs)
    return ActivityLog.model_validate(data)


class TestClassifyProof:

    def test_uploaded_video(self):
        info = classify_proof(legacy_log(proofPath="proof_7_2024-01-01.mp4"))
        assert info.kind == "video"
        assert info.viewable

    def test_uploaded_photo(self):
        info = classify_proof(legacy_log(proof="photo", proofPath="/data/proofs/proof_7_2024-01-01.JPEG"))
        assert info.kind == "photo"
        assert info.label == "Photo"

    @pytest.mark.parametrize(
        "url, kind",
        [
            ("https://youtu.be/xyz", "youtube"),
            ("https://www.youtube.com/watch?v=abc", "youtube"),
            ("https://drive.google.com/file/d/123/view", "drive"),
            ("http://strava.com/activities/42", "link"),
        ],
    )
    def test_links(self, url, kind):
        info = classify_proof(legacy_log(proof=url))
        assert info.kind == kind
        assert info.viewable

    def test_nothing_declared(self):
        info = classify_proof(legacy_log())
        assert info.kind == "none"
        assert not info.viewable
        assert not has_proof(legacy_log())

    def test_file_path_wins_over_link(self):
        log = legacy_log(proof="https://youtu.be/xyz", proofPath="proof_1_2024-01-01.png")
        assert classify_proof(log).kind == "photo"

    @pytest.mark.parametrize("proof", [None, "", "none", "photo", "video", "see my instagram"])
    def test_tags_and_text_without_file_are_not_proof(self, proof):
        log = legacy_log(proof=proof, proofPath=None)
        assert isinstance(log.proof, NoProof)
        assert classify_proof(log).kind == "none"

    def test_unknown_stored_extension_shows_as_photo(self):
        assert classify_proof(legacy_log(proofPath="proof_1_2024-01-01.heic")).kind == "photo"


class TestMediaKind:

    @pytest.mark.parametrize("name", ["a.jpg", "a.JPG", "a.jpeg", "a.png", "a.gif", "a.webp"])
    def test_photos(self, name):
        assert media_kind_for(name) == "photo"

    @pytest.mark.parametrize("name", ["a.mp4", "a.MOV", "a.avi", "a.mkv", "a.webm"])
    def test_videos(self, name):
        assert media_kind_for(name) == "video"

    def test_unsupported(self):
        assert media_kind_for("notes.txt") is None
        assert media_kind_for("") is None


class TestProofVariantOnTheModel:

    def test_variants_built_directly(self):
        log = ActivityLog(date=date(2024, 1, 1), completed=True, proof=ExternalLink(url="https://youtu.be/q"))
        assert isinstance(log.proof, ExternalLink)

    def test_written_back_in_flat_shape(self):
        log = ActivityLog(
            date=date(2024, 1, 1),
            completed=True,
            duration=25,
            proof=UploadedFile(path="/p/proof_1_2024-01-01.mov", media="video"),
            steps=1200,
        )
        assert log.model_dump() == {
            "date": "2024-01-01",
            "completed": True,
            "duration": 25,
            "proof": "video",
            "proofPath": "/p/proof_1_2024-01-01.mov",
            "water": False,
            "walkWithFriend": False,
            "steps": 1200,
        }

    def test_document_from_earlier_builds_loads(self):
        raw = {
            "competition": {
                "name": "Spring Challenge",
                "startDate": "2024-03-01",
                "durationDays": 30,
                "createdAt": "2024-03-01T09:00:00.000Z",
            },
            "participants": [
                {
                    "id": 1709280000000,
                    "name": "Sam",
                    "avatar": "💪",
                    "joinDate": "2024-03-01",
                    "logs": [
                        {"date": "2024-03-01", "completed": True, "duration": 30, "proof": "photo",
                         "proofPath": "/x/proof_1_2024-03-01.jpg", "water": True, "walkWithFriend": False},
                        {"date": "2024-03-02", "completed": True, "duration": 20,
                         "proof": "https://drive.google.com/file/d/abc", "proofPath": None,
                         "water": False, "walkWithFriend": True, "steps": 8000},
                        {"date": "2024-03-03", "completed": True, "duration": 20, "proof": "video",
                         "proofPath": None, "water": False, "walkWithFriend": False},
                    ],
                }
            ],
            "activityLogs": [],
        }
        doc = CompetitionDocument.model_validate(raw)

        assert doc.competition.duration_days == 30
        kinds = [classify_proof(log).kind for log in doc.participants[0].logs]
        assert kinds == ["photo", "drive", "none"]
        assert "activityLogs" not in doc.to_json_dict()

    @pytest.mark.parametrize("url", ["ftp://files.example.com/run.mp4", "javascript://x", "youtu.be/xyz"])
    def test_link_needs_web_scheme(self, url):
        with pytest.raises(pydantic.ValidationError):
            ExternalLink(url=url)

    def test_link_is_trimmed(self):
        assert ExternalLink(url="  HTTPS://youtu.be/q ").url == "HTTPS://youtu.be/q"

    def test_link_kind_survives_reload(self, store):
        log = ActivityLog(date=date(2024, 1, 1), completed=True, proof=ExternalLink(url="https://strava.com/a/1"))
        store.save(CompetitionDocument(participants=[{"id": 1, "name": "Sam", "logs": [log]}]))

        reloaded = store.load().participants[0].logs[0]
        assert classify_proof(reloaded).kind == classify_proof(log).kind == "link"

    def test_missing_participants_key(self):
        doc = CompetitionDocument.model_validate({"competition": None, "participants": None})
        assert doc.participants == []
