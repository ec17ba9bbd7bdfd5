from pathlib import Path

import requests
from requests.auth import AuthBase

from config import LOGS_DIR
from http_client import request_with_retry
from models import LogFile, RestletResponse
from oauth import RequestSigner
from observability import log_event
from runtime_metrics import METRICS
from window import analysis_date_utc


DOWNLOAD_ACTION = "downloadTodaysLogs"
DEFAULT_LOG_TYPE = "duedate"


class NetSuiteAuth(AuthBase):
    """Signs every prepared request, so retries never reuse a nonce."""

    def __init__(self, signer: RequestSigner):
        self.signer = signer

    def __call__(self, request):
        request.headers["Authorization"] = self.signer.sign(request.method, request.url)
        return request


def _signer_for(config, signer=None):
    return signer or RequestSigner(config.credentials, log=log_event)


def call_restlet(config, body: dict, signer=None) -> dict:
    response = request_with_retry(
        "POST",
        config.restlet_url,
        headers={"Content-Type": "application/json"},
        json=body,
        auth=NetSuiteAuth(_signer_for(config, signer)),
    )

    text = response.text
    if not text or not text.strip():
        raise RuntimeError("Empty response from NetSuite")

    try:
        return response.json()
    except ValueError as err:
        raise RuntimeError(f"Failed to parse JSON response: {err}\nResponse: {text}") from err


def _safe_file_name(name, today, index):
    candidate = Path(name).name if name else ""
    if candidate in ("", ".", ".."):
        return f"dueDateLogs-{today}-{index}.txt"


def download_todays_logs(config, today: str | None = None, logs_dir=LOGS_DIR, signer=None):
    today = today or analysis_date_utc().isoformat()
    data = call_restlet(config, {"action": DOWNLOAD_ACTION, "date": today}, signer=signer)
    if not isinstance(data, dict):
        raise RuntimeError("NetSuite RESTlet error: Unexpected response format")
    response = RestletResponse.from_json(data)

    if response.success is False:
        raise RuntimeError(f"NetSuite RESTlet error: {response.failure_reason()}")
    if response.success is not True:
        raise RuntimeError("NetSuite RESTlet error: Unexpected response format")

    log_event("netsuite.download.ok", date=today, files=len(response.log_files), message=response.message)

    target_dir = Path(logs_dir)
    target_dir.mkdir(parents=True, exist_ok=True)

    log_files = []
    for index, item in enumerate(response.log_files, start=1):
        file_name = _safe_file_name(item.name, today, index)
        path = target_dir / file_name
        path.write_text(item.content, encoding="utf-8")

        size = item.size or len(item.content)
        log_files.append(
            LogFile(
                name=file_name,
                path=str(path),
                type=item.type or DEFAULT_LOG_TYPE,
                size=size,
                modified=item.modified or today,
                file_id=item.file_id,
            )
        )
        log_event("netsuite.logs.saved", name=file_name, size=size)

    METRICS.log_files_in += len(log_files)
    return log_files


def check_connection(config, signer=None) -> bool:
    signer = _signer_for(config, signer)
    body = {"action": DOWNLOAD_ACTION, "date": analysis_date_utc().isoformat(), "test": True}
    try:
        data = call_restlet(config, body, signer=signer)
    except (requests.RequestException, RuntimeError) as err:
        log_event("netsuite.connection.failed", error=repr(err))
        return False
    return isinstance(data, dict) and data.get("success") is True

