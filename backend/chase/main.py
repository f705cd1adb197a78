from flask import Blueprint, jsonify
from chase import get_engine

main = Blueprint('main', __name__)

@main.route('/')
def index():
    return jsonify({'message': 'Welcome to the chase game server!'})

@main.route('/health')
def health():
    engine = get_engine()
    return jsonify({'status': 'ok', 'timestamp': engine.clock()})
