"""Firebase Admin app used for appointment push notifications."""

import json
from pathlib import Path

import firebase_admin
from firebase_admin import credentials
from structlog import get_logger

logger = get_logger(__name__)

_messaging_app: firebase_admin.App | None = None


def _load_service_account(
    credentials_path: str | None,
    config_json: str | None,
) -> credentials.Base | None:
    """Pick the service account: inline JSON wins over a file on disk."""
    if config_json:
        logger.info("firebase_credentials_loaded", source="environment")
        return credentials.Certificate(json.loads(config_json))

    if credentials_path and Path(credentials_path).is_file():
        logger.info("firebase_credentials_loaded", source="file", path=credentials_path)
        return credentials.Certificate(credentials_path)

    return None


def initialize_firebase(
    credentials_path: str | None = None,
    config_json: str | None = None,
) -> firebase_admin.App:
    """
    Start the Firebase Admin app once per process.

    Without an explicit service account the SDK falls back to the
    application default credentials of the host.

    Args:
        credentials_path: Path to a service account JSON file
        config_json: Raw service account JSON

    Returns:
        The initialized app
    """
    global _messaging_app

    if _messaging_app is None:
        service_account = _load_service_account(credentials_path, config_json)
        _messaging_app = firebase_admin.initialize_app(service_account)
        logger.info(
            "firebase_app_started",
            project_id=_messaging_app.project_id,
            default_credentials=service_account is None,
        )

    return _messaging_app


def get_firebase_app() -> firebase_admin.App:
    """
    Return the running Firebase app.

    Raises:
        RuntimeError: If notifications were never started
    """
    if _messaging_app is None:
        raise RuntimeError("Firebase is not initialized; notifications are unavailable")
    return _messaging_app
