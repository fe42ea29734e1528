from flask import Blueprint, jsonify

from domino.services.game import payloads
from domino.services.game.registry import registry

tables = Blueprint('tables', __name__)


@tables.route('/<string:table_id>/state', methods=['GET'])
def get_table_state(table_id):
    """Public view of a table: seats, teams, board, tile counts and scores."""
    session = registry.get(table_id)
    if session is None:
        return jsonify({'error': 'Table not found'}), 404
    with registry.lock_for(table_id):
        return jsonify(payloads.public_state(session))
