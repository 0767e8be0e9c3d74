"""
Global test configuration for elementkit.

Every test runs against its own in-memory SQLite database holding the full element
schema, on a site with two locales (``en`` primary, ``de``).
"""

from types import SimpleNamespace

import pytest
from sqlalchemy.orm import sessionmaker

from elementkit.domain import entities  # noqa: F401
from elementkit.domain.fields import Field
from elementkit.domain.models import Category, Entry
from elementkit.infra import db as db_module
from elementkit.infra import uow as uow_module
from elementkit.infra.schema import CONTENT_TABLE, content_table
from elementkit.infra.settings import settings
from elementkit.registries import create_field_type
from elementkit.services.elements import Elements
from elementkit.shared.types import SectionType


@pytest.fixture(autouse=True)
def _site_settings(monkeypatch):
    """Pin the locale and URL settings, whatever the local .env says."""
    monkeypatch.setattr(settings, "primary_locale", "en")
    monkeypatch.setattr(settings, "site_locales", "en,de")
    monkeypatch.setattr(settings, "app_locale", None)
    monkeypatch.setattr(settings, "site_url", "http://example.test/")
    monkeypatch.setattr(settings, "default_query_limit", 100)
    monkeypatch.setattr(settings, "ref_tag_max_depth", 10)


@pytest.fixture
def engine(monkeypatch):
    """A fresh in-memory database with every declared table."""
    engine = db_module._build_engine("sqlite:///:memory:")
    content_table(CONTENT_TABLE)
    db_module.Base.metadata.create_all(engine)

    TestSessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=engine, future=True)
    # uow imported SessionLocal by name, so both need the test-bound one
    monkeypatch.setattr(db_module, "SessionLocal", TestSessionLocal)
    monkeypatch.setattr(uow_module, "SessionLocal", TestSessionLocal)

    yield engine
    engine.dispose()


@pytest.fixture
def db(engine):
    session = sessionmaker(autocommit=False, autoflush=False, bind=engine, future=True)()
    yield session
    session.close()


@pytest.fixture
def elements(db):
    return Elements(db)


@pytest.fixture
def site(elements):
    """
    Fields, layouts, sections and a category group shared by most tests.

    - ``news``: channel section with URIs ``news/{slug}``
    - ``pages``: structure section with nested URIs ``{parent.uri}/{slug}``
    - ``topics``: category group
    - ``blocks``: matrix field with one block type, ``text`` (required ``body``)
    """
    fields = elements.fields
    body = fields.create_field("body", "Body")
    count = fields.create_field("count", "Count", "Number", translatable=False, min=0, max=100)
    featured = fields.create_field("featured", "Featured", "Lightswitch")
    related = fields.create_field("related", "Related", "Entries")
    blocks = fields.create_field("blocks", "Blocks", "Matrix")

    text_block = elements.matrix.save_block_type(
        blocks,
        "text",
        "Text",
        [Field(handle="body", name="Body", field_type=create_field_type("PlainText"))],
        required=["body"],
    )

    layout = fields.create_layout([body, count, featured, related, blocks], type="Entry")
    news = elements.sections.create_section("news", "News", field_layout=layout)
    pages = elements.sections.create_section(
        "pages",
        "Pages",
        SectionType.STRUCTURE,
        locales={
            locale: {"uri_format": "{slug}", "nested_uri_format": "{parent.uri}/{slug}"}
            for locale in ("en", "de")
        },
        field_layout=layout,
    )
    topics = elements.categories.create_group("topics", "Topics")

    return SimpleNamespace(
        body=body,
        count=count,
        featured=featured,
        related=related,
        blocks=blocks,
        text_block=text_block,
        layout=layout,
        news=news,
        pages=pages,
        topics=topics,
    )


@pytest.fixture
def create_entry(elements, site):
    """Save an entry (in ``news`` unless another section is given) and return it."""

    def _create(title, section=None, **attributes):
        field_values = attributes.pop("fields", {})
        entry = Entry(section_id=(section or site.news).id, **attributes)
        entry.title = title
        entry.set_field_values(field_values)
        assert elements.save_element(entry), entry.get_errors()
        return entry

    return _create


@pytest.fixture
def create_category(elements, site):
    def _create(title, parent=None, **attributes):
        category = Category(
            group_id=site.topics.id,
            new_parent_id=parent.id if parent is not None else None,
            **attributes,
        )
        category.title = title
        assert elements.save_element(category), category.get_errors()
        return category

    return _create


@pytest.fixture
def topic_tree(create_category):
    """
    ::

        fruit
            apple
            banana
        veg
            carrot
    """
    fruit = create_category("Fruit")
    apple = create_category("Apple", parent=fruit)
    banana = create_category("Banana", parent=fruit)
    veg = create_category("Veg")
    carrot = create_category("Carrot", parent=veg)
    return SimpleNamespace(fruit=fruit, apple=apple, banana=banana, veg=veg, carrot=carrot)
