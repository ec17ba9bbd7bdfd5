import re
from dataclasses import dataclass
from datetime import datetime, timezone
from pathlib import Path

import pandas as pd
import requests

from config import ERRORS_DIR
from gemini_api import GeminiError, generate_text
from models import LogFile
from observability import log_event
from runtime_metrics import METRICS


NO_ERRORS_SENTINEL = "NO ERRORS DETECTED"
ERROR_MARKER = re.compile(r"Error \d+:")

RULE = "=" * 46


@dataclass
class AnalysisResult:
    log_file: LogFile
    output_file: str
    has_errors: bool
    error_count: int
    ai_response: str
    failed: bool = False


# ---------------- PROMPT ----------------

def build_prompt(log_content: str) -> str:
    return f"""You are analyzing a NetSuite log. Find ONLY lines that say "SCRIPT ERROR:" and extract the error details that come after them.

LOG CONTENT:
{log_content}

CRITICAL RULES:
1. ONLY look for lines containing the exact text "SCRIPT ERROR:"
2. IGNORE "Bill form check" - this is NOT an error
3. IGNORE lines with "successfully" or "Script Ended successfully"
4. For each "SCRIPT ERROR:" found, read the following lines to get the
   "Bill Payment ID:", "Error Name:", "Error Message:", "Parameters Used:" and "Stack:" values

FORMAT each error like this:
Error [number]: [timestamp from the SCRIPT ERROR line]
   Type: Script Error
   Bill Payment ID: [from "Bill Payment ID:"]
   Invoice ID: [from "invoiceId:" in Parameters Used]
   Bill ID: [from "billId:" in Parameters Used]
   Amount: [from "billPaymentAmount:" in Parameters Used]
   UTR Date: [from "utrGeneratedDate:" in Parameters Used]
   Error Name: [from "Error Name:"]
   Error Message: [from "Error Message:"]

If NO "SCRIPT ERROR:" entries exist, respond with: "{NO_ERRORS_SENTINEL}"
"""


def classify(ai_response: str):
    if NO_ERRORS_SENTINEL in ai_response:
        return False, 0
    return True, len(ERROR_MARKER.findall(ai_response))


# ---------------- REPORTS ----------------

def _now_iso():
    return datetime.now(timezone.utc).isoformat()


def _section(title, body):
    return f"{RULE}\n{title}\n{RULE}\n\n{body}\n"


def _write_report(path: Path, content: str):
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text(content, encoding="utf-8")
    METRICS.reports_out += 1
    log_event("report.written", file=path.name)
    return path


def render_file_report(log_file: LogFile, ai_response: str, today: str, has_errors: bool, error_count: int) -> str:
    if has_errors:
        status = f"ERRORS DETECTED ({error_count} errors found)"
        body = _section("ERRORS DETECTED:", ai_response) + "\n" + _section(
            "RECOMMENDED ACTIONS:",
            "1. Review errors above immediately\n"
            "2. Check Due Date system status\n"
            "3. Contact development team if critical errors found",
        )
    else:
        status = "NO ERRORS FOUND"
        body = _section(
            "ANALYSIS RESULT:",
            f"{ai_response}\n\nThe Due Date system appears to be running normally.",
        )

    return f"""DUE DATE LOG ERROR REPORT
Generated: {_now_iso()}
Date: {today}
Source File: {log_file.name}
Status: {status}
Detected by: Gemini AI

{body}"""


def render_fallback_report(log_file: LogFile, error: Exception, today: str) -> str:
    details = _section("ERROR DETAILS:", f"AI analysis could not be completed.\nReason: {error}")
    return f"""DUE DATE LOG ERROR REPORT
Generated: {_now_iso()}
Date: {today}
Source File: {log_file.name}
Status: AI ANALYSIS FAILED

{details}
MANUAL REVIEW REQUIRED:
Please manually review the Due Date log file: {log_file.name}
"""


def output_file_name(log_file: LogFile, today: str) -> str:
    return f"duedate-errors-{today}-{log_file.name}.txt"


# ---------------- ANALYSIS ----------------

def process_log_file(log_file: LogFile, api_key: str, today: str, errors_dir=ERRORS_DIR) -> AnalysisResult:
    output_file = output_file_name(log_file, today)
    output_path = Path(errors_dir) / output_file

    try:
        log_content = Path(log_file.path).read_text(encoding="utf-8")
        ai_response = generate_text(build_prompt(log_content), api_key)
    except (OSError, requests.RequestException, GeminiError) as err:
        log_event("analysis.file.failed", file=log_file.name, error=repr(err))
        _write_report(output_path, render_fallback_report(log_file, err, today))
        return AnalysisResult(
            log_file=log_file,
            output_file=output_file,
            has_errors=False,
            error_count=0,
            ai_response=f"Analysis failed: {err}",
            failed=True,
        )

    has_errors, error_count = classify(ai_response)
    log_event("analysis.file.ok", file=log_file.name, has_errors=has_errors, error_count=error_count)
    _write_report(output_path, render_file_report(log_file, ai_response, today, has_errors, error_count))

    return AnalysisResult(
        log_file=log_file,
        output_file=output_file,
        has_errors=has_errors,
        error_count=error_count,
        ai_response=ai_response,
    )


def results_frame(results) -> pd.DataFrame:
    return pd.DataFrame(
        [
            {
                "file": r.log_file.name,
                "output_file": r.output_file,
                "has_errors": r.has_errors,
                "error_count": r.error_count,
                "failed": r.failed,
            }
            for r in results
        ],
        columns=["file", "output_file", "has_errors", "error_count", "failed"],
    )


def summarize_results(results) -> dict:
    df = results_frame(results)
    return {
        "files": len(df),
        "total_errors": int(df["error_count"].sum()) if not df.empty else 0,
        "files_with_errors": int(df["has_errors"].sum()) if not df.empty else 0,
        "failed_files": int(df["failed"].sum()) if not df.empty else 0,
    }


def render_daily_summary(results, today: str) -> str:
    df = results_frame(results)
    totals = summarize_results(results)

    per_file = "\n".join(
        f"{row.file}:\n"
        f"  Status: {'ERRORS FOUND' if row.has_errors else 'NORMAL'}\n"
        f"  Errors Found: {row.error_count}\n"
        f"  Report File: {row.output_file}\n"
        for row in df.itertuples(index=False)
    )

    overview = _section(
        "OVERVIEW:",
        f"Total Log Files Analyzed: {totals['files']}\n"
        f"Total Errors Found: {totals['total_errors']}",
    )
    files_created = _section("FILES CREATED:", "\n".join(f"- {name}" for name in df["output_file"]))

    if totals["total_errors"]:
        critical = f"Due Date System: {totals['total_errors']} errors found - REVIEW REQUIRED"
    else:
        critical = "No critical issues detected today - System running normally"

    return f"""DAILY DUE DATE ANALYSIS SUMMARY
Date: {today}
Generated: {_now_iso()}

{overview}
{per_file}
{_section("CRITICAL ISSUES:", critical)}
{files_created}"""


def write_daily_summary(results, today: str, errors_dir=ERRORS_DIR) -> Path:
    path = Path(errors_dir) / f"daily-summary-{today}.txt"
    return _write_report(path, render_daily_summary(results, today))


def analyze_log_files(log_files, api_key: str, today: str, errors_dir=ERRORS_DIR):
    results = [process_log_file(log_file, api_key, today, errors_dir=errors_dir) for log_file in log_files]
    write_daily_summary(results, today, errors_dir=errors_dir)
    return results


def write_no_logs_report(today: str, errors_dir=ERRORS_DIR) -> Path:
    result = _section("ANALYSIS RESULT:", "No Due Date log files were found for today's date.")
    actions = _section(
        "RECOMMENDED ACTIONS:",
        "1. Verify NetSuite Due Date systems are operational\n"
        "2. Check log generation settings\n"
        "3. Confirm network connectivity",
    )
    content = f"""DAILY DUE DATE LOG ANALYSIS REPORT
Date: {today}
Generated: {_now_iso()}
Status: NO LOG FILES FOUND

{result}
{actions}"""
    return _write_report(Path(errors_dir) / f"no-duedate-logs-found-{today}.txt", content)


def write_system_error_report(error: Exception, today: str, errors_dir=ERRORS_DIR) -> Path:
    details = _section("ERROR DETAILS:", f"Error Type: {type(error).__name__}\nError Message: {error}")
    actions = _section(
        "IMMEDIATE ACTIONS REQUIRED:",
        "1. Check workflow logs\n"
        "2. Verify NetSuite API credentials\n"
        "3. Confirm Gemini API key is valid\n"
        "4. Check network connectivity",
    )
    content = f"""DUE DATE SYSTEM ERROR REPORT
Date: {today}
Generated: {_now_iso()}
Status: ANALYSIS FAILED

{details}
{actions}"""
    return _write_report(Path(errors_dir) / f"duedate-system-error-{today}.txt", content)
