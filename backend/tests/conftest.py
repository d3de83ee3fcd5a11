import os, sys, pytest
# Ensure the backend directory is on path so 'fleetdesk' can be imported
ROOT = os.path.abspath(os.path.join(os.path.dirname(__file__), '..'))
if ROOT not in sys.path:
    sys.path.insert(0, ROOT)
from fleetdesk import create_app, get_db
# Importing the package registers every table before create_all
from fleetdesk.models import Base


@pytest.fixture()
def app_instance():
    app = create_app({
        'DATABASE_URL': 'sqlite+pysqlite:///:memory:',
        'JWT_SECRET_KEY': 'test-secret',
        'SEED_DEMO_DATA': False,
    })
    # Fresh in-memory database per test; serials and stock levels start over
    with app.app_context():
        engine = get_db().get_bind()
        Base.metadata.create_all(engine)
    yield app

@pytest.fixture()
def client(app_instance):
    return app_instance.test_client()

@pytest.fixture()
def session(app_instance):
    with app_instance.app_context():
        yield get_db()
