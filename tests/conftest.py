"""
Shared fixtures for the staging test suite.

Every test gets a fresh app on the ``testing`` config (in-memory SQLite)
with all tables created, and runs inside its app context.
"""

from typing import List, Optional, Tuple

import pytest
from flask_jwt_extended import create_access_token

from cms_staging import create_app
from cms_staging.application.staging.manage_stage import create_stage
from cms_staging.domain.entities import CategoryEntity
from cms_staging.extensions import db
from cms_staging.models.item import Item
from cms_staging.models.menu_link import MenuLink
from cms_staging.models.url_alias import UrlAlias
from cms_staging.storage import DirectConfigStorage


@pytest.fixture
def app():
    app = create_app("testing")

    with app.app_context():
        db.create_all()
        yield app
        db.session.remove()
        db.drop_all()


@pytest.fixture
def client(app):
    return app.test_client()


def _auth_headers(identity: str, role: str) -> dict:
    token = create_access_token(identity=identity, additional_claims={"role": role})
    return {"Authorization": f"Bearer {token}"}


@pytest.fixture
def admin_headers(app):
    return _auth_headers("admin-1", "admin")


@pytest.fixture
def editor_headers(app):
    return _auth_headers("editor-1", "editor")


@pytest.fixture
def live(app) -> DirectConfigStorage:
    """Live store bound to the configured live stage id."""
    return DirectConfigStorage(live_stage_id=app.config["LIVE_STAGE_ID"])


@pytest.fixture
def make_stage(app):
    def _make(machine_name: str, upstream_id: Optional[str] = None):
        return create_stage(
            machine_name=machine_name,
            label=machine_name.title(),
            upstream_id=upstream_id,
        )
    return _make


@pytest.fixture
def make_item(app):
    def _make(stage_id: str, title: str = "Hello") -> Item:
        item = Item()
        item.item_type = "page"
        item.title = title
        item.stage_id = stage_id
        item.fields = {}
        db.session.add(item)
        db.session.commit()
        return item
    return _make


@pytest.fixture
def make_alias(app):
    def _make(stage_id: str, alias: str, language: str = "en", source: str = "/item/1") -> UrlAlias:
        row = UrlAlias()
        row.stage_id = stage_id
        row.alias = alias
        row.language = language
        row.source = source
        db.session.add(row)
        db.session.commit()
        return row
    return _make


@pytest.fixture
def make_link(app):
    def _make(stage_id: str, path: str, title: str = "Link") -> MenuLink:
        row = MenuLink()
        row.stage_id = stage_id
        row.path = path
        row.title = title
        row.menu_name = "main"
        db.session.add(row)
        db.session.commit()
        return row
    return _make


def category(entity_id: str, label: Optional[str] = None, **kwargs) -> CategoryEntity:
    return CategoryEntity(id=entity_id, label=label or entity_id.title(), **kwargs)


class RecordingCache:
    """
    Cache collaborator that remembers each invalidation, and whether a
    database transaction was still open when it arrived.
    """

    def __init__(self) -> None:
        self.calls: List[Tuple[str, bool]] = []

    def invalidate(self, stage_id: str) -> None:
        self.calls.append((stage_id, db.session().in_transaction()))

    @property
    def invalidated(self) -> List[str]:
        return [stage_id for stage_id, _ in self.calls]


@pytest.fixture
def cache():
    return RecordingCache()
