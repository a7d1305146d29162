from flask import Blueprint, current_app, jsonify

main = Blueprint('main', __name__)


@main.route('/')
def index():
    service = current_app.extensions['game_service']
    return jsonify({'message': 'Tic-tac-toe server is running', 'rooms': len(service.registry)})
