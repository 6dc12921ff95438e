# config.py
import os


def _default_data_dir():
    return os.path.join(os.path.expanduser("~"), ".fitness-competition")


class Config:
    SECRET_KEY = os.environ.get("SECRET_KEY", "dev-secret-key-change-me")

    # Single JSON document + managed folder for uploaded proof files
    DATA_DIR = os.environ.get("FITNESS_DATA_DIR", _default_data_dir())
    DATA_FILE = os.environ.get(
        "FITNESS_DATA_FILE",
        os.path.join(DATA_DIR, "fitness-data.json"),
    )
    PROOF_DIR = os.environ.get(
        "FITNESS_PROOF_DIR",
        os.path.join(DATA_DIR, "proofs"),
    )

    LOG_LEVEL = os.environ.get("LOG_LEVEL", "INFO")

    # proof uploads (photos / short videos)
    MAX_CONTENT_LENGTH = int(os.environ.get("MAX_CONTENT_LENGTH", 200 * 1024 * 1024))
