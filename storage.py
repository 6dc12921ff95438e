# storage.py
"""Persistence gateway: one JSON document on disk plus a folder of proof files."""
import json
import logging
import os
import shutil
import tempfile
from dataclasses import dataclass
from typing import Optional

from pydantic import ValidationError as SchemaError
from werkzeug.datastructures import FileStorage

from errors import ExternalResourceError, PersistenceError, ValidationError
from models import CompetitionDocument
from utils.proofs import PHOTO_EXTENSIONS, VIDEO_EXTENSIONS, media_kind_for

logger = logging.getLogger(__name__)

STAGED_PREFIX = ".staged-"


@dataclass(frozen=True)
class StoredProof:
    path: str
    media: str  # "photo" | "video"
    staged_path: Optional[str] = None


def proof_filename(participant_id, log_date, ext):
    """Deterministic name so a re-upload for the same day overwrites."""
    return f"proof_{participant_id}_{log_date.isoformat()}{ext.lower()}"


class JsonStore:
    def __init__(self, data_path, proof_folder):
        self.data_path = os.path.abspath(data_path)
        self.proof_folder = os.path.abspath(proof_folder)

    # ----------------- Document -----------------
    def load(self):
        """Read the document; a missing or corrupt file yields an empty one."""
        if not os.path.exists(self.data_path):
            return CompetitionDocument()

        try:
            return self._read(self.data_path)
        except PersistenceError as e:
            logger.warning("Falling back to an empty document: %s", e)
            return CompetitionDocument()

    def save(self, document):
        """Overwrite the whole document. Returns False instead of raising."""
        try:
            self._write(self.data_path, document)
        except (OSError, TypeError, ValueError):
            logger.exception("Error saving data to %s", self.data_path)
            return False
        logger.debug("Data saved to %s", self.data_path)
        return True

    def _read(self, path):
        try:
            with open(path, "r", encoding="utf-8") as fh:
                raw = json.load(fh)
            return CompetitionDocument.model_validate(raw or {})
        except (OSError, ValueError, SchemaError) as e:
            raise PersistenceError(f"Could not read {path}: {e}") from e

    def _write(self, path, document):
        folder = os.path.dirname(path)
        os.makedirs(folder, exist_ok=True)

        # write next to the target then swap, so a failed write never truncates it
        fd, tmp_path = tempfile.mkstemp(dir=folder, prefix=".fitness-", suffix=".json")
        try:
            with os.fdopen(fd, "w", encoding="utf-8") as fh:
                json.dump(document.to_json_dict(), fh, indent=2, ensure_ascii=False)
            os.replace(tmp_path, path)
        except BaseException:
            if os.path.exists(tmp_path):
                os.remove(tmp_path)
            raise

    # ----------------- Import / Export -----------------
    def export_document(self, destination):
        """Copy the active document to ``destination``."""
        try:
            self._write(os.path.abspath(destination), self.load())
        except OSError as e:
            raise PersistenceError(f"Export failed: {e}") from e
        logger.info("Exported data to %s", destination)

    def import_document(self, source):
        """Validate ``source`` and make it the active document."""
        document = self._read(source)
        try:
            self._write(self.data_path, document)
        except OSError as e:
            raise PersistenceError(f"Import failed: {e}") from e
        logger.info("Imported data from %s", source)
        return document

    # ----------------- Proof files -----------------
    def stage_proof_file(self, upload, participant_id, log_date):
        """Copy a selected photo/video into the proof folder under a temporary name.

        ``upload`` is a filesystem path or a werkzeug ``FileStorage``.
        Returns None when nothing was selected. The returned ``StoredProof``
        carries its final ``path``; nothing is written there until
        ``commit_proof_file``.
        """
        if isinstance(upload, FileStorage):
            source_name = upload.filename or ""
        else:
            source_name = upload or ""
        if not source_name:
            return None

        # the stored name is built from participant and date, so only the extension matters
        ext = os.path.splitext(source_name)[1]
        media = media_kind_for(source_name)
        if media is None:
            allowed = ", ".join(known.lstrip(".") for known in PHOTO_EXTENSIONS + VIDEO_EXTENSIONS)
            raise ValidationError(f"Unsupported proof file type. Use one of: {allowed}")

        target = os.path.join(self.proof_folder, proof_filename(participant_id, log_date, ext))
        try:
            os.makedirs(self.proof_folder, exist_ok=True)
            fd, staged = tempfile.mkstemp(dir=self.proof_folder, prefix=STAGED_PREFIX, suffix=ext.lower())
            os.close(fd)
        except OSError as e:
            raise ExternalResourceError(f"Could not store proof file: {e}") from e

        try:
            if isinstance(upload, FileStorage):
                upload.save(staged)
            else:
                shutil.copyfile(upload, staged)
        except OSError as e:
            self.discard_proof_file(staged)
            raise ExternalResourceError(f"Could not store proof file: {e}") from e

        return StoredProof(path=target, media=media, staged_path=staged)

    def commit_proof_file(self, stored):
        """Move a staged proof to its final name, replacing any earlier upload."""
        if stored.staged_path is None:
            return stored
        try:
            os.replace(stored.staged_path, stored.path)
        except OSError as e:
            self.discard_proof_file(stored.staged_path)
            raise ExternalResourceError(f"Could not store proof file: {e}") from e
        logger.info("Stored %s proof %s", stored.media, os.path.basename(stored.path))
        return StoredProof(path=stored.path, media=stored.media)

    def store_proof_file(self, upload, participant_id, log_date):
        """Stage and commit in one step."""
        stored = self.stage_proof_file(upload, participant_id, log_date)
        return self.commit_proof_file(stored) if stored is not None else None

    def discard_proof_file(self, path):
        """Delete a staged or superseded proof file; files outside the proof folder are left alone."""
        try:
            os.remove(self.resolve_proof_path(path))
        except ExternalResourceError:
            return
        except OSError:
            logger.warning("Could not remove proof file %s", path, exc_info=True)
            return
        logger.debug("Removed proof file %s", os.path.basename(path))

    def resolve_proof_path(self, path):
        """Absolute path of a stored proof file, only if it lives in the proof folder."""
        candidate = os.path.abspath(os.path.join(self.proof_folder, path))
        if os.path.commonpath([candidate, self.proof_folder]) != self.proof_folder:
            raise ExternalResourceError("Proof file is outside the proof folder")
        if not os.path.isfile(candidate):
            raise ExternalResourceError(f"Proof file not found: {os.path.basename(path)}")
        return candidate
