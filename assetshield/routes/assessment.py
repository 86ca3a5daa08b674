# assetshield/routes/assessment.py

import logging

from flask import Blueprint, abort, jsonify, request

from assetshield import db, limiter
from assetshield.auth import form_errors
from assetshield.forms import AssessmentForm
from assetshield.models.assessment import Assessment
from assetshield.risk import calculate_risk

log = logging.getLogger(__name__)

assessment_bp = Blueprint("assessment", __name__, url_prefix="/api/assessment")

MAX_LIST_ITEMS = 20


def _string_list(payload, key):
    """Pull an optional list of short strings out of the JSON body."""
    value = payload.get(key)
    if value is None:
        return []
    if isinstance(value, str):
        value = [value]
    if not isinstance(value, list):
        return None
    items = [str(v).strip().lower() for v in value if str(v).strip()]
    return items[:MAX_LIST_ITEMS]


@assessment_bp.route("/submit", methods=["POST"])
@limiter.limit("30 per minute")
def submit():
    payload = request.get_json(silent=True)
    if not isinstance(payload, dict):
        return jsonify({"error": "Expected a JSON object"}), 400

    form = AssessmentForm()
    if not form.validate_on_submit():
        return form_errors(form)

    legal_history = _string_list(payload, "legal_history")
    current_protection = _string_list(payload, "current_protection")
    if legal_history is None or current_protection is None:
        return jsonify({"error": "legal_history and current_protection must be lists"}), 400

    result = calculate_risk(
        profession=(form.profession.data or "").strip().lower() or None,
        net_worth=(form.net_worth.data or "").strip().lower() or None,
        legal_threats=(form.legal_threats.data or "").strip().lower() or None,
        has_real_estate=bool(form.has_real_estate.data),
        legal_history=legal_history,
        current_protection=current_protection,
    )

    assessment = Assessment(
        name=form.name.data.strip(),
        email=form.email.data.strip().lower(),
        profession=form.profession.data or None,
        net_worth=form.net_worth.data or None,
        legal_threats=form.legal_threats.data or None,
        has_real_estate=bool(form.has_real_estate.data),
        legal_history=legal_history,
        current_protection=current_protection,
        risk_score=result.score,
        risk_level=result.level,
        wealth_at_risk=result.wealth_at_risk,
        recommendations=result.recommendations,
    )
    db.session.add(assessment)
    db.session.commit()
    log.info("assessment %s scored %s (%s)", assessment.id, result.score, result.level)

    return jsonify({
        "success": True,
        "assessment_id": assessment.id,
        "risk_level": result.level,
        "risk_score": result.score,
        "wealth_at_risk": result.wealth_at_risk,
        "recommendations": result.recommendations,
        "user": {"name": assessment.name, "email": assessment.email},
    }), 201


@assessment_bp.route("/results/<int:assessment_id>")
def results(assessment_id):
    assessment = db.session.get(Assessment, assessment_id)
    if assessment is None:
        abort(404, description="Assessment not found")
    return jsonify(assessment.to_dict())
