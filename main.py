# main.py
import sys
import uuid
from time import perf_counter

from config import ERRORS_DIR, LOGS_DIR, load_gemini_api_key, load_netsuite_config
from duedate_analysis import analyze_log_files, summarize_results, write_no_logs_report, write_system_error_report
from errors import ConfigurationError
from netsuite_api import download_todays_logs
from oauth import RequestSigner
from observability import log_event
from runtime_metrics import METRICS
from window import analysis_date_utc


def run_daily_analysis(today: str, run_id: str) -> str:
    netsuite = load_netsuite_config()
    api_key = load_gemini_api_key()
    signer = RequestSigner(netsuite.credentials, log=log_event)

    METRICS.start("download")
    try:
        log_files = download_todays_logs(netsuite, today=today, logs_dir=LOGS_DIR, signer=signer)
    finally:
        METRICS.stop("download")
    log_event("analysis.step.ok", run_id=run_id, step="download", files=len(log_files))

    if not log_files:
        report = write_no_logs_report(today, errors_dir=ERRORS_DIR)
        log_event("analysis.no_logs", run_id=run_id, date=today, report=report.name)
        return "no_logs"

    METRICS.start("analyze")
    try:
        results = analyze_log_files(log_files, api_key, today, errors_dir=ERRORS_DIR)
    finally:
        METRICS.stop("analyze")

    totals = summarize_results(results)
    log_event("analysis.step.ok", run_id=run_id, step="analyze", **totals)
    return "errors_found" if totals["total_errors"] else "ok"


def main() -> int:
    run_id = str(uuid.uuid4())
    t0 = perf_counter()
    today = analysis_date_utc().isoformat()

    log_event("analysis.started", run_id=run_id, date=today)

    exit_code = 0
    try:
        status = run_daily_analysis(today, run_id)
    except ConfigurationError as err:
        status = "failed"
        exit_code = 1
        log_event("analysis.config.failed", run_id=run_id, error=str(err))
        write_system_error_report(err, today, errors_dir=ERRORS_DIR)
    except Exception as err:
        status = "failed"
        exit_code = 1
        log_event("analysis.step.failed", run_id=run_id, step="daily_analysis", error=repr(err))
        write_system_error_report(err, today, errors_dir=ERRORS_DIR)

    log_event(
        "analysis.finished",
        run_id=run_id,
        status=status,
        elapsed_sec=round(perf_counter() - t0, 3),
        request_count=METRICS.request_count,
        files=METRICS.log_files_in,
        reports_out=METRICS.reports_out,
        step_durations=METRICS.step_durations,
    )
    return exit_code


if __name__ == "__main__":
    sys.exit(main())
