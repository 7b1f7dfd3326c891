import itertools

import pytest

from app import create_app
from config import TestConfig
from models import Community, User, UserCommunity, db
from models.Community import MEMBER, MODERATOR
from services.events import activity
from services.inputs import IngredientInput, RecipeInput


@pytest.fixture
def app():
    app = create_app(config_class=TestConfig)
    with app.app_context():
        db.create_all()
        yield app
        db.session.remove()
        db.drop_all()


@pytest.fixture
def session(app):
    return db.session


@pytest.fixture
def client(app):
    return app.test_client()


@pytest.fixture
def events():
    received = []

    def collect(event):
        received.append(event)

    activity.connect(collect)
    yield received
    activity.disconnect(collect)


@pytest.fixture
def make_user(session):
    counter = itertools.count(1)

    def _make(username=None):
        n = next(counter)
        user = User(username=username or f'cook{n}', email=f'cook{n}@example.com')
        session.add(user)
        session.commit()
        return user

    return _make


@pytest.fixture
def make_community(session):
    counter = itertools.count(1)

    def _make(name=None, members=(), moderators=()):
        community = Community(name=name or f'Kitchen {next(counter)}')
        session.add(community)
        session.flush()
        for user in members:
            session.add(UserCommunity(user_id=user.id, community_id=community.id, role=MEMBER))
        for user in moderators:
            session.add(UserCommunity(user_id=user.id, community_id=community.id, role=MODERATOR))
        session.commit()
        return community

    return _make


@pytest.fixture
def join(session):
    def _join(user, community, role=MEMBER):
        membership = UserCommunity(user_id=user.id, community_id=community.id, role=role)
        session.add(membership)
        session.commit()
        return membership

    return _join


def recipe_input(title='Pancakes', steps=None, tags=None, ingredients=None, **fields):
    return RecipeInput(
        title=title,
        steps=steps or ['Mix the batter', 'Fry in butter'],
        tags=tags or [],
        ingredients=ingredients or [],
        **fields,
    )


def ingredient(name, quantity=None, unit=None):
    return IngredientInput(name=name, quantity=quantity, unit=unit)
