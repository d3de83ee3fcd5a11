from flask import Flask
from werkzeug.exceptions import HTTPException
from flask_jwt_extended import JWTManager
from sqlalchemy import create_engine
from sqlalchemy.pool import StaticPool
from sqlalchemy.orm import sessionmaker, scoped_session
from dotenv import load_dotenv
from typing import Optional, Dict, Any
import os

from .logging_config import configure_logging

load_dotenv()

db_engine = None
SessionLocal = None
jwt = JWTManager()


def _env_flag(name: str, default: str = 'false') -> bool:
    return os.getenv(name, default).strip().lower() in ('1', 'true', 'yes', 'on')


def create_app(config: Optional[Dict[str, Any]] = None):
    global db_engine, SessionLocal
    app = Flask(__name__)

    app.config['JWT_SECRET_KEY'] = os.getenv('JWT_SECRET_KEY', 'dev-secret')
    app.config['DATABASE_URL'] = os.getenv('DATABASE_URL', 'sqlite:///dev.db')
    app.config['LOG_LEVEL'] = os.getenv('LOG_LEVEL', 'INFO')
    app.config['LOW_STOCK_THRESHOLD'] = int(os.getenv('LOW_STOCK_THRESHOLD', '5'))
    app.config['SEED_DEMO_DATA'] = _env_flag('SEED_DEMO_DATA')

    if config:
        # allow tests or callers to override default config values
        app.config.update(config)

    configure_logging(app.config['LOG_LEVEL'])

    # Database
    db_url = app.config['DATABASE_URL']
    if db_url.endswith(':memory:'):
        # Ensure a single shared in-memory SQLite database across all sessions
        db_engine = create_engine(
            db_url,
            echo=False,
            future=True,
            connect_args={"check_same_thread": False},
            poolclass=StaticPool,
        )
    else:
        db_engine = create_engine(db_url, echo=False, future=True)
    SessionLocal = scoped_session(sessionmaker(bind=db_engine, expire_on_commit=False, autoflush=False))

    jwt.init_app(app)

    @app.teardown_appcontext
    def remove_session(exc=None):
        # each request starts from a fresh session
        SessionLocal.remove()

    from .routes.auth import auth_bp
    from .routes.tickets import tickets_bp
    from .routes.parts import parts_bp
    from .routes.inventory import inv_bp
    from .routes.fleet import fleet_bp
    from .routes.notifications import ntf_bp
    from .routes.reports import rpt_bp
    app.register_blueprint(auth_bp, url_prefix='/auth')
    app.register_blueprint(tickets_bp, url_prefix='/tickets')
    app.register_blueprint(parts_bp, url_prefix='/tickets')  # part requests hang off their ticket
    app.register_blueprint(inv_bp, url_prefix='/inventory')
    app.register_blueprint(fleet_bp, url_prefix='/fleet')
    app.register_blueprint(ntf_bp, url_prefix='/notifications')
    app.register_blueprint(rpt_bp, url_prefix='/reports')

    if app.config['SEED_DEMO_DATA']:
        from .models.base import Base
        from .seeds.demo_data import seed_demo_data
        Base.metadata.create_all(db_engine)
        session = SessionLocal()
        seed_demo_data(session)
        session.commit()

    @app.route('/healthz')
    def health():
        return {'status': 'ok'}

    # Unified error handler producing standardized JSON shape
    @app.errorhandler(Exception)
    def handle_errors(e):  # type: ignore
        if isinstance(e, HTTPException):
            payload = {
                'error': {
                    'status': e.code,
                    'title': e.name,
                    'detail': e.description,
                    'code': getattr(e, 'error_code', e.name.replace(' ', '')),
                }
            }
            extra = getattr(e, 'extra', None)
            if extra:
                payload['error'].update(extra)
            return payload, e.code
        # Unhandled exception
        app.logger.exception('Unhandled exception')
        return {
            'error': {
                'status': 500,
                'title': 'Internal Server Error',
                'detail': 'Unexpected error',
                'code': 'InternalServerError',
            }
        }, 500

    return app


def get_db():
    return SessionLocal()
