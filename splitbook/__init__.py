import os

from flask import Flask, jsonify

from config import Config
from splitbook.extensions import db, login_manager
from splitbook.log import configure_logging, get_logger


def create_app(config_class=Config):
    app = Flask(__name__)
    app.config.from_object(config_class)

    configure_logging(app.config.get('LOG_LEVEL', 'INFO'), app.config.get('LOG_JSON', True))
    logger = get_logger(__name__)

    # Initialize extensions
    db.init_app(app)
    login_manager.init_app(app)

    # User loader for Flask-Login
    from splitbook.models import User

    @login_manager.user_loader
    def load_user(user_id):
        return db.session.get(User, int(user_id))

    @login_manager.unauthorized_handler
    def unauthorized():
        return jsonify({'success': False, 'error': 'unauthenticated',
                        'message': 'User not authenticated'}), 401

    # Register blueprints
    from splitbook.routes.auth import auth_bp
    from splitbook.routes.groups import groups_bp
    from splitbook.routes.friends import friends_bp

    app.register_blueprint(auth_bp)
    app.register_blueprint(groups_bp)
    app.register_blueprint(friends_bp)

    os.makedirs(app.instance_path, exist_ok=True)

    with app.app_context():
        db.create_all()
        logger.info("database_ready", uri=app.config['SQLALCHEMY_DATABASE_URI'].split('://')[0])

    return app
