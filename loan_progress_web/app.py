"""JSON API over the loan progress engine.

Every request recomputes the schedule and metrics from the loan terms in the
body and the payment ledger, either sent inline or stored for the session's
user. Only the ledger is persisted.
"""

import logging
import os
from typing import Any, Dict, Mapping, Optional
from uuid import uuid4

from flask import Flask, jsonify, request, session

from loan_progress.analytics import compute_progress_metrics
from loan_progress.data_models import LoanTerms
from loan_progress.engine import build_amortization_schedule, compute_standard_emi
from loan_progress.formatter import metrics_to_dict, serialize_schedule
from loan_progress.ledger import PaymentLedger, record_from_row, record_to_row
from loan_progress.utils import decimal_from_str, parse_date
from loan_progress_web.ledger_store import create_store_from_env

logger = logging.getLogger(__name__)


def _ensure_user_token() -> str:
    token = session.get("user_token")
    if not token:
        token = uuid4().hex
        session["user_token"] = token
        session.modified = True
    return token


def _payload() -> Dict[str, Any]:
    data = request.get_json(silent=True)
    if not isinstance(data, dict):
        raise ValueError("Request body must be a JSON object")
    return data


def terms_from_payload(data: Mapping[str, Any]) -> LoanTerms:
    """Build loan terms from a JSON body; raises ``ValueError`` when invalid."""
    missing = [key for key in ("principal", "annual_rate_percent", "tenure_months") if data.get(key) in (None, "")]
    if missing:
        raise ValueError(f"Missing loan fields: {', '.join(missing)}")
    principal = decimal_from_str(str(data["principal"]))
    rate = decimal_from_str(str(data["annual_rate_percent"]))
    try:
        tenure = int(data["tenure_months"])
    except (TypeError, ValueError) as exc:
        raise ValueError("tenure_months must be an integer") from exc
    if principal <= 0:
        raise ValueError("principal must be positive")
    if rate < 0:
        raise ValueError("annual_rate_percent cannot be negative")
    if tenure < 1:
        raise ValueError("tenure_months must be at least 1")
    override: Optional[Any] = data.get("override_emi")
    if override not in (None, ""):
        override = decimal_from_str(str(override))
        if override <= 0:
            raise ValueError("override_emi must be positive")
    else:
        override = None
    return LoanTerms(
        principal=principal,
        tenure_months=tenure,
        annual_rate_percent=rate,
        override_emi=override,
        start_date=parse_date(data.get("start_date")),
    )


def _through_month(data: Mapping[str, Any]) -> Optional[int]:
    value = data.get("as_of_month")
    if value in (None, ""):
        return None
    try:
        return int(value)
    except (TypeError, ValueError) as exc:
        raise ValueError("as_of_month must be an integer") from exc


def create_app(config: Optional[Mapping[str, Any]] = None) -> Flask:
    app = Flask(__name__)
    app.secret_key = os.environ.get("FLASK_SECRET_KEY", "dev-secret-key")
    app.config["DATABASE_URL"] = os.environ.get("LOAN_PROGRESS_DATABASE_URL")
    if config:
        app.config.update(config)
    ledger_store = create_store_from_env(app.config["DATABASE_URL"])

    def _ledger_for(data: Mapping[str, Any]) -> PaymentLedger:
        if "ledger" in data:
            rows = data["ledger"] or []
            if not isinstance(rows, list):
                raise ValueError("ledger must be a list of rows")
            return PaymentLedger.from_rows(rows)
        return ledger_store.ledger(_ensure_user_token())

    @app.errorhandler(ValueError)
    def invalid_input(exc):
        logger.info("Rejected request to %s: %s", request.path, exc)
        return jsonify({"error": str(exc)}), 400

    @app.post("/api/emi")
    def emi():
        terms = terms_from_payload(_payload())
        return jsonify({"standard_emi": float(compute_standard_emi(terms))})

    @app.post("/api/schedule")
    def schedule():
        data = _payload()
        terms = terms_from_payload(data)
        entries = build_amortization_schedule(terms, _ledger_for(data), _through_month(data))
        return jsonify(
            {
                "standard_emi": float(compute_standard_emi(terms)),
                "schedule": serialize_schedule(entries),
            }
        )

    @app.post("/api/progress")
    def progress():
        data = _payload()
        terms = terms_from_payload(data)
        standard_emi = compute_standard_emi(terms)
        entries = build_amortization_schedule(terms, _ledger_for(data), _through_month(data))
        metrics = compute_progress_metrics(entries, terms, standard_emi)
        return jsonify({"progress": metrics_to_dict(metrics)})

    @app.get("/api/ledger")
    def list_ledger():
        return jsonify({"ledger": ledger_store.list_rows(_ensure_user_token())})

    @app.put("/api/ledger/<int:month>")
    def put_ledger_month(month: int):
        data = dict(_payload())
        data["month"] = month
        record = record_from_row(data)
        ledger_store.upsert(_ensure_user_token(), record)
        return jsonify(record_to_row(record))

    @app.delete("/api/ledger/<int:month>")
    def delete_ledger_month(month: int):
        if not ledger_store.remove(_ensure_user_token(), month):
            return jsonify({"error": f"No ledger entry for month {month}"}), 404
        return jsonify({"deleted": month})

    @app.delete("/api/ledger")
    def clear_ledger():
        ledger_store.clear(_ensure_user_token())
        return jsonify({"ledger": []})

    return app


if __name__ == "__main__":
    logging.basicConfig(level=logging.INFO)
    print("Starting loan progress API...")
    create_app().run(debug=True)
