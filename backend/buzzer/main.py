from flask import Blueprint, current_app, jsonify

from buzzer.models import now_ms

main = Blueprint('main', __name__)


@main.route('/')
def index():
    return jsonify({'message': 'Welcome to the trivia buzzer server!'})


@main.route('/health')
def health():
    store = current_app.extensions['buzzer'].store
    return jsonify({
        'status': 'ok',
        'timestamp': now_ms(),
        'sessions': store.session_count(),
    })
