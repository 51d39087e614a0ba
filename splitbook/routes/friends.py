"""
FRIEND ROUTES
=============
"""

from flask import Blueprint, request
from flask_login import login_required, current_user

from splitbook.routes import json_body, register_error_handlers, success_response
from splitbook.services.friend_service import (
    send_friend_request, respond_to_friend_request, list_friends,
    get_friend, remove_friend
)

friends_bp = Blueprint('friends', __name__, url_prefix='/api/friends')
register_error_handlers(friends_bp)


@friends_bp.route('', methods=['GET'])
@login_required
def list_friends_route():
    return success_response('Friends retrieved successfully', list_friends(current_user.id))


@friends_bp.route('/requests', methods=['POST'])
@login_required
def send_request_route():
    data = json_body(request)
    friendship = send_friend_request(
        current_user.id,
        phone=data.get('phone'),
        email=data.get('email'),
    )
    return success_response('Friend request sent', {'id': friendship.id}, 201)


@friends_bp.route('/requests/<int:friendship_id>', methods=['POST'])
@login_required
def respond_route(friendship_id):
    data = json_body(request)
    action = data.get('action')
    respond_to_friend_request(current_user.id, friendship_id, action)
    return success_response(f'Friend request {action}ed')


@friends_bp.route('/<int:friend_id>', methods=['GET'])
@login_required
def view_friend(friend_id):
    return success_response('Friend retrieved successfully',
                            get_friend(current_user.id, friend_id).to_dict())


@friends_bp.route('/<int:friend_id>', methods=['DELETE'])
@login_required
def remove_friend_route(friend_id):
    remove_friend(current_user.id, friend_id)
    return success_response('Friend removed')
