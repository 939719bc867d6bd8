"""
Journals API routes exposing the local-first journal to the front end.
"""
import logging

from flask import Blueprint, jsonify, request
from marshmallow import ValidationError

from ..models.journal import NewJournalEntrySchema, is_valid, next_day_prefill
from ..services import get_services

journals_bp = Blueprint('journals', __name__)
logger = logging.getLogger(__name__)


def _flag(name: str) -> bool:
    return request.args.get(name, 'false').lower() in ('1', 'true', 'yes')


@journals_bp.route('/journals', methods=['GET'])
def get_journals():
    """Get all journal entries, newest date first.

    Query parameters:
        valid: Only return entries that count toward history.

    Returns:
        JSON list of entries.
    """
    services = get_services()
    orchestrator = services.orchestrator
    entries = services.call(orchestrator.get_valid_entries if _flag('valid') else orchestrator.get_all)
    return jsonify([entry.to_dict() for entry in entries])


@journals_bp.route('/journals', methods=['POST'])
def save_journal():
    """Save a journal entry (create or replace by id)."""
    data = request.get_json(silent=True)
    if not isinstance(data, dict):
        return jsonify({"error": "Request body must be a JSON object"}), 400

    try:
        entry = NewJournalEntrySchema().load(data)
    except ValidationError as e:
        logger.warning(f"Validation error: {e.messages}")
        return jsonify({"error": "Validation failed", "details": e.messages}), 400

    try:
        services = get_services()
        if _flag('insight'):
            services.call(services.orchestrator.save_with_insight, entry, services.insight_service)
        else:
            services.call(services.orchestrator.save, entry)
    except Exception as e:
        logger.error(f"Error saving journal entry: {str(e)}", exc_info=True)
        return jsonify({"error": "An error occurred while saving the journal entry"}), 500

    logger.info(f"Saved journal entry {entry.id} for {entry.date.isoformat()}")
    return jsonify({"success": True, "journal": entry.to_dict(), "valid": is_valid(entry)}), 201


@journals_bp.route('/journals/today', methods=['GET'])
def get_today_journal():
    return get_relative_journal(0)


@journals_bp.route('/journals/relative/<int(signed=True):offset>', methods=['GET'])
def get_relative_journal(offset):
    """Get the entry ``offset`` days from today (-1 is yesterday).

    Returns:
        JSON entry, or 404 if there is none locally yet.
    """
    services = get_services()
    entry = services.call(services.orchestrator.get_by_relative_day, offset)
    if entry is None:
        return jsonify({"error": "Journal entry not found"}), 404
    return jsonify(entry.to_dict())


@journals_bp.route('/journals/stats', methods=['GET'])
def get_journal_stats():
    """Recorded-days count plus the MIT pre-fill planned yesterday."""
    services = get_services()
    orchestrator = services.orchestrator

    def collect():
        entries = orchestrator.get_all()
        return {
            "recorded_days": orchestrator.count_recorded_days(),
            "total_entries": len(entries),
            "valid_entries": sum(1 for entry in entries if is_valid(entry)),
            "prefill": next_day_prefill(orchestrator.get_yesterday()),
        }

    return jsonify(services.call(collect))


@journals_bp.route('/journals/migrate', methods=['POST'])
def migrate_journals():
    """Push every local entry to the remote store and report per-entry results."""
    services = get_services()
    result = services.run(services.orchestrator.migrate_local_to_remote())
    return jsonify(result.to_dict())
