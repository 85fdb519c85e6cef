"""Shared fixtures: in-memory database, gateway, catalog and a fake model."""
import json
from decimal import Decimal
from functools import partial

import pytest
from sqlalchemy.orm import sessionmaker

from vendi.db.init_db import init_db
from vendi.db.session import build_engine
from vendi.models.product import Product as ProductRecord
from vendi.services.state_store import SqlStateGateway
from vendi_ai.proposal_generator import generate_proposal

TENANT = "tenant-1"

CATALOG = [
    ("P1", "Torta de chocolate", Decimal("30.00"), True),
    ("P2", "Alfajor", Decimal("4.50"), True),
    ("P3", "Pie de limón", Decimal("25.00"), True),
    ("P9", "Producto discontinuado", Decimal("10.00"), False),
]


class FakeModelClient:
    """Stands in for GroqClient: returns canned output and records prompts."""

    def __init__(self, output=None, error=None):
        self.output = output
        self.error = error
        self.prompts = []

    def complete(self, prompt):
        self.prompts.append(prompt)
        if self.error:
            raise self.error
        if isinstance(self.output, (dict, list)):
            return json.dumps(self.output)
        return self.output


@pytest.fixture
def db_session():
    engine = build_engine("sqlite://")
    init_db(engine)
    session = sessionmaker(bind=engine, autoflush=False)()
    try:
        yield session
    finally:
        session.close()
        engine.dispose()


@pytest.fixture
def gateway(db_session):
    for product_id, name, price, active in CATALOG:
        db_session.add(
            ProductRecord(id=product_id, tenant_id=TENANT, name=name, price=price, active=active)
        )
    db_session.commit()
    return SqlStateGateway(db_session, default_currency="BOB")


@pytest.fixture
def model_returning():
    """Build a proposal generator backed by a FakeModelClient with fixed output."""
    def _build(output=None, error=None):
        client = FakeModelClient(output=output, error=error)
        return partial(generate_proposal, client=client), client
    return _build
