"""
API Blueprint

Upload a PDF market report, then analyze it:
received -> extracting -> analyzing -> responding.
Each stage has its own error boundary, so a failed response names the stage
it stopped at.
"""
from contextlib import contextmanager
from typing import Any, Dict

from flask import Blueprint, jsonify, request, current_app
from sqlalchemy.exc import SQLAlchemyError
from werkzeug.exceptions import HTTPException

from marketmetric import db
from marketmetric.errors import (
    ConfigurationError,
    MarketMetricError,
    StorageError,
    ValidationError,
)
from marketmetric.models import Report
from marketmetric.services import llm_service, pdf_service
from marketmetric.services.interpreter import ParsePolicy, parse_scorecard, parse_summary
from marketmetric.services.prompt_builder import (
    SCORECARD_MAX_TOKENS,
    SCORECARD_TEMPERATURE,
    SUMMARY_MAX_TOKENS,
    SUMMARY_TEMPERATURE,
    AnalysisMode,
    build_prompt,
    canned_completion,
)
from marketmetric.services.storage_service import PDF_CONTENT_TYPE, report_path

api_bp = Blueprint('api', __name__)

STAGE_RECEIVED = "received"
STAGE_EXTRACTING = "extracting"
STAGE_ANALYZING = "analyzing"
STAGE_RESPONDING = "responding"

STAGE_ERRORS = {
    STAGE_RECEIVED: "Invalid request",
    STAGE_EXTRACTING: "Error extracting report text",
    STAGE_ANALYZING: "Error analyzing report",
    STAGE_RESPONDING: "Error storing results",
}


# ============ Helper Functions ============

def storage():
    return current_app.extensions['storage']


def llm_client():
    client = current_app.extensions.get('llm_client')
    if client is None:
        err = current_app.extensions.get('llm_error')
        if err is not None:
            raise ConfigurationError(err.message, details=err.details)
        raise ConfigurationError("LLM client not available")
    return client


@contextmanager
def stage(name: str):
    try:
        yield
    except MarketMetricError as e:
        e.stage = e.stage or name
        current_app.logger.warning("Analysis failed while %s: %s (%s)", name, e.message, e.details or "")
        raise
    except Exception as e:
        current_app.logger.exception("Unexpected error while %s", name)
        err = MarketMetricError(STAGE_ERRORS[name], details=f"{type(e).__name__}: {e}")
        err.stage = name
        raise err from e


def max_tokens_for(mode: AnalysisMode) -> int:
    configured = int(current_app.config.get('MAX_TOKENS') or 0)
    if configured > 0:
        return configured
    return SUMMARY_MAX_TOKENS if mode is AnalysisMode.SUMMARY else SCORECARD_MAX_TOKENS


def run_analysis(mode: AnalysisMode, text: str, policy: ParsePolicy):
    """Prompt the model and interpret its answer. Returns (results, degraded)."""
    system, prompt = build_prompt(mode, text)
    is_summary = mode is AnalysisMode.SUMMARY

    completion = llm_service.complete(
        llm_client(),
        prompt,
        max_tokens_for(mode),
        model=current_app.config.get('LLM_MODEL') or llm_service.DEFAULT_MODEL,
        temperature=SUMMARY_TEMPERATURE if is_summary else SCORECARD_TEMPERATURE,
        system=system,
        canned=canned_completion(mode),
    )
    raw = completion.text
    results = parse_summary(raw, policy) if is_summary else parse_scorecard(raw, policy)
    return results, completion.degraded


def save_report(user_id: str, file_name: str, file_path: str, mode: AnalysisMode, source: str, results: Dict[str, Any]) -> None:
    try:
        db.session.add(Report.from_results(user_id, file_name, file_path, mode.value, source, results))
        db.session.commit()
    except SQLAlchemyError as e:
        db.session.rollback()
        raise StorageError("Error storing results", details=str(e)) from e


# ============ Response Handling ============

@api_bp.after_request
def disable_caching(response):
    response.headers['Cache-Control'] = 'no-store, no-cache, must-revalidate, max-age=0'
    response.headers['Pragma'] = 'no-cache'
    response.headers['Expires'] = '0'
    return response


@api_bp.app_errorhandler(MarketMetricError)
def handle_error(e: MarketMetricError):
    return jsonify(e.to_dict()), e.status_code


@api_bp.app_errorhandler(HTTPException)
def handle_http_error(e: HTTPException):
    return jsonify({"error": e.name, "details": e.description}), e.code


@api_bp.app_errorhandler(Exception)
def handle_unexpected_error(e: Exception):
    current_app.logger.exception("Unhandled error on %s %s", request.method, request.path)
    return jsonify({"error": "Internal server error"}), 500


# ============ API Routes ============

@api_bp.route("/upload", methods=["POST"])
def upload():
    file = request.files.get("file")
    if not file or not file.filename:
        raise ValidationError("No file provided")

    filename = file.filename
    if file.mimetype != PDF_CONTENT_TYPE and not filename.lower().endswith(".pdf"):
        raise ValidationError("Only PDF files are allowed")

    path = report_path(filename)
    storage().upload(path, file.read(), PDF_CONTENT_TYPE)
    current_app.logger.info("Stored upload %s as %s", filename, path)

    return jsonify({"success": True, "filePath": path, "fileName": filename}), 200


@api_bp.route("/analyze", methods=["POST"])
def analyze():
    payload = request.get_json(silent=True) or {}

    with stage(STAGE_RECEIVED):
        if not isinstance(payload, dict):
            raise ValidationError("Invalid request body", details="Expected a JSON object")
        file_path = str(payload.get("filePath") or "").strip()
        file_name = str(payload.get("fileName") or "").strip()
        user_id = str(payload.get("userId") or "").strip()
        if not file_path or not file_name:
            raise ValidationError("Missing required fields", details="filePath and fileName are required")
        try:
            mode = AnalysisMode.parse(payload.get("mode") or current_app.config.get('ANALYSIS_MODE'))
        except ValueError as e:
            raise ValidationError("Invalid analysis mode", details=str(e)) from e
        policy = ParsePolicy.parse(current_app.config.get('PARSE_POLICY'))

    with stage(STAGE_EXTRACTING):
        use_mock = bool(current_app.config.get('USE_MOCK_DATA'))
        data = b"" if use_mock else storage().download(file_path)
        extraction = pdf_service.extract(
            data,
            use_fallback=use_mock,
            timeout=float(current_app.config.get('PDF_PARSE_TIMEOUT') or pdf_service.DEFAULT_TIMEOUT),
        )
        if extraction.is_fallback:
            current_app.logger.warning("Analyzing sample report text in place of %s", file_path)

    with stage(STAGE_ANALYZING):
        results, degraded = run_analysis(mode, extraction.text, policy)

    with stage(STAGE_RESPONDING):
        if user_id and current_app.config.get('PERSIST_RESULTS'):
            save_report(user_id, file_name, file_path, mode, extraction.source, results)

    return jsonify({
        "results": results,
        "mode": mode.value,
        "source": extraction.source,
        "degraded": degraded,
    }), 200


@api_bp.route("/reports", methods=["GET"])
def list_reports():
    user_id = (request.args.get("userId") or "").strip()
    if not user_id:
        raise ValidationError("Missing userId")
    try:
        limit = min(max(int(request.args.get("limit", 50)), 1), 200)
    except ValueError:
        raise ValidationError("Invalid limit") from None

    reports = (
        Report.query.filter_by(user_id=user_id)
        .order_by(Report.created_at.desc(), Report.id.desc())
        .limit(limit)
        .all()
    )
    return jsonify({"reports": [r.to_dict() for r in reports]}), 200


@api_bp.route("/init", methods=["GET"])
def init_storage():
    created = storage().ensure_bucket()
    if created:
        return jsonify({"message": "Storage bucket created successfully"}), 200
    return jsonify({"message": "Storage bucket already exists"}), 200


@api_bp.route("/check_connection", methods=["GET"])
def check_connection():
    key = (current_app.config.get('LLM_API_KEY') or "").strip()
    err = current_app.extensions.get('llm_error')
    return jsonify({
        "llm": {
            "ready": current_app.extensions.get('llm_client') is not None,
            "key": llm_service.mask_key(key) or "missing",
            "model": current_app.config.get('LLM_MODEL'),
            "base_url": current_app.config.get('LLM_BASE_URL'),
            "error": err.message if err else None,
        },
        "storage": storage().check(),
        "mock_mode": bool(current_app.config.get('USE_MOCK_DATA')),
    }), 200
