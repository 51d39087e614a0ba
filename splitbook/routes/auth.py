"""
AUTHENTICATION ROUTES
=====================
Minimal session login so routes have a current_user.
"""

from flask import Blueprint, request
from flask_login import login_user, logout_user, login_required, current_user

from splitbook.extensions import db
from splitbook.models import User
from splitbook.routes import json_body, register_error_handlers, success_response
from splitbook.services.errors import (
    AccessDeniedError, ConflictError, InvalidInputError
)

auth_bp = Blueprint('auth', __name__, url_prefix='/api/auth')
register_error_handlers(auth_bp)


@auth_bp.route('/register', methods=['POST'])
def register():
    data = json_body(request)
    name = (data.get('name') or '').strip()
    email = (data.get('email') or '').strip().lower()
    password = data.get('password') or ''
    phone = (data.get('phone') or '').strip() or None

    # Validation
    if not name or not email or not password:
        raise InvalidInputError('Name, email and password are required')

    if len(password) < 6:
        raise InvalidInputError('Password must be at least 6 characters')

    if User.query.filter_by(email=email).first():
        raise ConflictError('Email already registered')

    if phone and User.query.filter_by(phone=phone).first():
        raise ConflictError('Phone already registered')

    new_user = User(name=name, email=email, phone=phone)
    new_user.set_password(password)

    db.session.add(new_user)
    db.session.commit()

    return success_response('Registration successful', new_user.to_dict(), 201)


@auth_bp.route('/login', methods=['POST'])
def login():
    data = json_body(request)
    email = (data.get('email') or '').strip().lower()

    user = User.query.filter_by(email=email).first()
    if not user or not user.check_password(data.get('password') or ''):
        raise AccessDeniedError('Invalid email or password')

    login_user(user, remember=bool(data.get('remember')))
    return success_response(f'Welcome back, {user.name}!', user.to_dict())


@auth_bp.route('/logout', methods=['POST'])
@login_required
def logout():
    logout_user()
    return success_response('You have been logged out')


@auth_bp.route('/me', methods=['GET'])
@login_required
def me():
    return success_response('Profile retrieved successfully', current_user.to_dict())
