"""Per-app service objects kept in ``app.extensions``."""

from flask import current_app

EXTRACTOR_KEY = "enclave.extractor"
STORAGE_KEY = "enclave.storage"


def get_extractor():
    return current_app.extensions[EXTRACTOR_KEY]


def get_store():
    return current_app.extensions[STORAGE_KEY]
