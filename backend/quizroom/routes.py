from datetime import datetime, timezone

from flask import Blueprint, current_app, jsonify

main = Blueprint('main', __name__)


def _controller():
    return current_app.extensions['quizroom']


@main.route('/')
def index():
    return jsonify({'message': 'Quiz room server is running!'})


@main.route('/api/rooms')
def list_rooms():
    return jsonify(_controller().room_summaries())


@main.route('/api/status')
def status():
    payload = {
        'status': 'OK',
        'timestamp': datetime.now(timezone.utc).isoformat(),
    }
    payload.update(_controller().status())
    return jsonify(payload)


@main.route('/api/categories')
def list_categories():
    pool = _controller().pool
    return jsonify([
        dict(category.to_dict(), questionCount=pool.count(category.id))
        for category in pool.categories()
    ])
