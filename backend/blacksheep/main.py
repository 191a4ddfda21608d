from flask import Blueprint, jsonify
from flask_login import current_user, login_required, logout_user

main = Blueprint('main', __name__)

@main.route('/')
def index():
    return jsonify({'message': 'Welcome to the Black Sheep game server!'})

@main.route('/session', methods=['GET'])
@login_required
def get_session():
    """Which room and player this browser is playing as."""
    return jsonify({'room_code': current_user.room_code, 'player_id': current_user.id, 'name': current_user.name})

@main.route('/logout', methods=['POST'])
@login_required
def logout():
    logout_user()
    return jsonify({'message': 'Logged out successfully.'})
