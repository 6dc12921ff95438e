# tracker.py
"""The active competition document and every mutation allowed on it.

A single ``Tracker`` is built at startup from the store's ``load`` and owns
the in-memory document. Each mutation runs under one lock and ends with a
whole-document save; when the save fails the previous state is restored so
callers never observe a change that did not reach disk.
"""
import logging
import threading
import time
from contextlib import contextmanager
from datetime import date, datetime, timezone

from pydantic import ValidationError as SchemaError

from errors import NotFoundError, PersistenceError, ValidationError
from models import AVATARS, ActivityLog, Competition, CompetitionDocument, Participant, UploadedFile, random_avatar
from utils.scoring import calculate_stats, competition_progress, rank_participants

logger = logging.getLogger(__name__)


def _schema_message(error):
    first = error.errors()[0]
    where = ".".join(str(part) for part in first.get("loc", ()))
    return f"{where}: {first.get('msg')}" if where else first.get("msg", str(error))


class Tracker:
    def __init__(self, store):
        self.store = store
        self._lock = threading.RLock()
        self._document = store.load()
        logger.info(
            "Loaded competition %r with %d participant(s)",
            self.competition.name if self.competition else None,
            len(self.participants),
        )

    # ----------------- Queries -----------------
    @property
    def competition(self):
        return self._document.competition

    @property
    def participants(self):
        return list(self._document.participants)

    @property
    def data_path(self):
        return self.store.data_path

    def get_participant(self, participant_id):
        for p in self._document.participants:
            if p.id == participant_id:
                return p
        raise NotFoundError(f"Participant {participant_id} not found")

    def stats_for(self, participant, today=None):
        return calculate_stats(participant, today)

    def scoreboard(self, today=None):
        return rank_participants(self._document.participants, today)

    def progress(self, today=None):
        return competition_progress(self.competition, today)

    # ----------------- Mutations -----------------
    @contextmanager
    def _mutation(self):
        with self._lock:
            before = self._document.model_copy(deep=True)
            try:
                yield self._document
            except Exception:
                self._document = before
                raise
            if not self.store.save(self._document):
                self._document = before
                raise PersistenceError("Could not save data; the change was not applied.")

    def create_competition(self, name, duration_days, today=None):
        if self.competition is not None:
            raise ValidationError("A competition is already running. Reset it first.")
        if not (name or "").strip():
            raise ValidationError("Competition name is required.")
        try:
            duration_days = int(duration_days)
        except (TypeError, ValueError):
            raise ValidationError("Duration must be a whole number of days.") from None
        if duration_days < 1:
            raise ValidationError("Duration must be at least 1 day.")

        competition = Competition(
            name=name,
            start_date=today or date.today(),
            duration_days=duration_days,
            created_at=datetime.now(timezone.utc),
        )
        with self._mutation() as doc:
            doc.competition = competition
        logger.info("Started competition %r for %d days", competition.name, competition.duration_days)
        return competition

    def add_participant(self, name, avatar=None, today=None):
        if not (name or "").strip():
            raise ValidationError("Participant name is required.")
        if avatar and avatar not in AVATARS:
            raise ValidationError("Pick an avatar from the list.")

        with self._mutation() as doc:
            participant = Participant(
                id=self._next_id(),
                name=name,
                avatar=avatar or random_avatar(),
                join_date=today or date.today(),
            )
            doc.participants.append(participant)
        logger.info("Added participant %s (%s)", participant.id, participant.name)
        return participant

    def delete_participant(self, participant_id):
        participant = self.get_participant(participant_id)
        with self._mutation() as doc:
            doc.participants = [p for p in doc.participants if p.id != participant_id]
        logger.info("Deleted participant %s with %d log(s)", participant_id, len(participant.logs))
        return participant

    def log_activity(self, participant_id, entry, staged=None):
        """Insert or replace the participant's log for ``entry.date``.

        An existing entry for that date is replaced whole; callers carry
        forward any fields they want to keep. ``staged`` is an uploaded
        proof from ``store.stage_proof_file``: it is moved into place only
        once the log is saved and discarded otherwise.
        """
        try:
            if not isinstance(entry, ActivityLog):
                try:
                    entry = ActivityLog.model_validate(entry)
                except SchemaError as e:
                    raise ValidationError(_schema_message(e)) from e

            with self._mutation():
                participant = self.get_participant(participant_id)
                previous = participant.log_for(entry.date)
                for i, existing in enumerate(participant.logs):
                    if existing.date == entry.date:
                        participant.logs[i] = entry
                        break
                else:
                    participant.logs.append(entry)
        except Exception:
            if staged is not None:
                self.store.discard_proof_file(staged.staged_path)
            raise

        if staged is not None:
            self.store.commit_proof_file(staged)
        if previous is not None:
            self._drop_replaced_proof(previous, entry)
        logger.info("Logged activity for participant %s on %s", participant_id, entry.date)
        return entry

    def _drop_replaced_proof(self, previous, entry):
        old = previous.proof
        if not isinstance(old, UploadedFile):
            return
        if isinstance(entry.proof, UploadedFile) and entry.proof.path == old.path:
            return
        self.store.discard_proof_file(old.path)

    def reset(self):
        """Clear the competition, all participants and their logs."""
        with self._mutation():
            self._document = CompetitionDocument()
        logger.info("Competition reset")

    def import_document(self, source):
        """Make the document at ``source`` the active one, on disk and in memory."""
        with self._lock:
            document = self.store.import_document(source)
            self._document = document
        logger.info("Active document replaced (%d participants)", len(document.participants))
        return document

    def export_document(self, destination):
        with self._lock:
            self.store.export_document(destination)

    def _next_id(self):
        # creation timestamp in ms, bumped past any existing id
        candidate = int(time.time() * 1000)
        existing = [p.id for p in self._document.participants]
        if existing and candidate <= max(existing):
            candidate = max(existing) + 1
        return candidate
