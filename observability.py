import re
from datetime import datetime


REDACTED = "[REDACTED]"

SECRET_FIELDS = frozenset(
    {
        "authorization",
        "signature",
        "oauth_signature",
        "secret",
        "consumer_secret",
        "token_secret",
        "api_key",
        "password",
        "headers",
    }
)

# identifiers that are safe to show partially
PARTIAL_FIELDS = frozenset({"consumer_key", "token_id", "token", "account_id"})


def _normalize_key(key: str) -> str:
    return re.sub(r"[-\s]", "_", key.lower())


def redact(value, keep: int = 4) -> str:
    text = "" if value is None else str(value)
    if len(text) <= keep:
        return "*" * len(text)
    return f"{text[:keep]}..."


def redact_fields(fields: dict) -> dict:
    out = {}
    for key, value in fields.items():
        normalized = _normalize_key(key)
        if normalized in SECRET_FIELDS:
            out[key] = REDACTED
        elif normalized in PARTIAL_FIELDS:
            out[key] = redact(value)
        elif isinstance(value, dict):
            out[key] = redact_fields(value)
        else:
            out[key] = value
    return out


def _format_step_name(step: str) -> str:
    return step.replace("_", " ").capitalize()


def _render_event_message(event: str, fields: dict) -> str:
    if event == "analysis.started":
        return f"Daily Due Date log analysis started for {fields.get('date')}."

    if event == "analysis.step.ok":
        step_label = _format_step_name(str(fields.get("step", "step")))
        return f"{step_label} completed."

    if event == "analysis.step.failed":
        step_label = _format_step_name(str(fields.get("step", "step")))
        return f"{step_label} failed: {fields.get('error')}"

    if event == "analysis.no_logs":
        return f"No Due Date log files found for {fields.get('date')}. Report: {fields.get('report')}"

    if event == "analysis.config.failed":
        return f"Configuration error: {fields.get('error')}"

    if event == "analysis.finished":
        return (
            f"Daily analysis finished with status: {fields.get('status')} "
            f"({fields.get('files', 0)} log files, {fields.get('reports_out', 0)} reports)"
        )

    if event == "netsuite.logs.saved":
        return f"Saved: {fields.get('name')} ({fields.get('size')} bytes)"

    if event == "report.written":
        return f"Report written: {fields.get('file')}"

    details = ", ".join(f"{key}={value}" for key, value in fields.items())
    return f"{event}: {details}" if details else event


def log_event(event: str, **fields):
    timestamp = datetime.now().strftime("%I:%M:%S %p")
    message = _render_event_message(event, redact_fields(fields))
    print(f"{timestamp}  {message}")
