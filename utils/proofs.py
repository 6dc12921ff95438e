# utils/proofs.py
import os
from dataclasses import dataclass

PHOTO_EXTENSIONS = (".jpg", ".jpeg", ".png", ".gif", ".webp", ".bmp")
VIDEO_EXTENSIONS = (".mp4", ".mov", ".avi", ".mkv", ".webm")

# kind -> (icon, label), display only
PROOF_DISPLAY = {
    "photo": ("📷", "Photo"),
    "video": ("🎥", "Video"),
    "youtube": ("▶️", "YouTube"),
    "drive": ("📁", "Drive"),
    "link": ("🔗", "Link"),
    "none": ("⚠️", "No proof"),
}


@dataclass(frozen=True)
class ProofInfo:
    kind: str  # none | photo | video | youtube | drive | link
    viewable: bool
    icon: str
    label: str


def media_kind_for(path):
    """Return "photo" / "video" for a supported upload, else None."""
    ext = os.path.splitext(path or "")[1].lower()
    if ext in PHOTO_EXTENSIONS:
        return "photo"
    if ext in VIDEO_EXTENSIONS:
        return "video"
    return None


def stored_media_kind(path):
    # files already on disk: anything that is not a known video shows as a photo
    return "video" if media_kind_for(path) == "video" else "photo"


def link_kind(url):
    lowered = url.lower()
    if "youtube" in lowered or "youtu.be" in lowered:
        return "youtube"
    if "drive.google" in lowered:
        return "drive"
    return "link"


def classify_proof(log):
    """Classify the proof attached to a log entry.

    Uploaded files are checked first (by extension), then external links
    (by host fragment), otherwise the entry has no proof.
    """
    proof = getattr(log, "proof", None)
    kind = getattr(proof, "kind", "none")

    if kind == "file":
        result = stored_media_kind(proof.path)
    elif kind == "link":
        result = link_kind(proof.url)
    else:
        result = "none"

    icon, label = PROOF_DISPLAY[result]
    return ProofInfo(kind=result, viewable=result != "none", icon=icon, label=label)


def has_proof(log):
    return classify_proof(log).kind != "none"
