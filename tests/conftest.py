import json
import os
import sqlite3
from collections import defaultdict, deque

import httpx
import pytest
from dotenv import load_dotenv
from sqlalchemy import create_engine, event
from sqlalchemy.engine.url import make_url
from sqlalchemy.orm import Session
from sqlalchemy.pool import StaticPool

import app.models  # noqa: F401
from app.db import Base
from app.models.registration import (
    ActivityBranch,
    BillingMethod,
    CarrierCode,
    ClientRegistration,
    Company,
    CompanyAddress,
    CompanyContact,
    PriceList,
    Seller,
)
from app.services.erp.auth import AUTH_PATH
from app.services.erp.client import build_client
from app.services.erp.config import ERPConfig

load_dotenv(os.path.join(os.getcwd(), ".env"))

ERP_BASE_URL = "https://erp.test"
TAX_ID = "11222333000181"


def _resolve_test_database_url() -> str | None:
    raw_url = os.getenv("TEST_DATABASE_URL")
    if not raw_url:
        return None

    url = make_url(raw_url)
    if url.drivername.startswith("postgresql") and url.database != "cadastros_test":
        url = url.set(database="cadastros_test")
    return url.render_as_string(hide_password=False)


@pytest.fixture(scope="session")
def engine():
    database_url = _resolve_test_database_url()
    if database_url:
        engine = create_engine(database_url)
    else:
        engine = create_engine(
            "sqlite+pysqlite://",
            connect_args={
                "check_same_thread": False,
                "detect_types": sqlite3.PARSE_DECLTYPES | sqlite3.PARSE_COLNAMES,
            },
            poolclass=StaticPool,
        )

        # pysqlite needs explicit BEGIN handling for SAVEPOINT to work
        @event.listens_for(engine, "connect")
        def _on_connect(dbapi_connection, _connection_record):
            dbapi_connection.isolation_level = None
            cursor = dbapi_connection.cursor()
            cursor.execute("PRAGMA foreign_keys=ON")
            cursor.close()

        @event.listens_for(engine, "begin")
        def _on_begin(conn):
            conn.exec_driver_sql("BEGIN")

    Base.metadata.create_all(engine)
    return engine


@pytest.fixture()
def db_session(engine):
    connection = engine.connect()
    transaction = connection.begin()
    session = Session(
        bind=connection,
        autoflush=False,
        join_transaction_mode="create_savepoint",
    )
    try:
        yield session
    finally:
        session.close()
        transaction.rollback()
        connection.close()


# ============================================================================
# ERP fixtures
# ============================================================================


class FakeERP:
    """In-memory ERP behind ``httpx.MockTransport``.

    ``on(method, path, *replies)`` queues replies for a route; the last one
    repeats. A reply is ``(status, body)`` or an ``httpx`` exception class.
    Unrouted requests get a 404.
    """

    def __init__(self):
        self.requests: list[httpx.Request] = []
        self.auth_calls = 0
        self.auth_replies: deque = deque()
        self._routes: dict[tuple[str, str], deque] = defaultdict(deque)

    def on(self, method: str, path: str, *replies) -> "FakeERP":
        self._routes[(method.upper(), path)].extend(replies)
        return self

    def on_auth(self, *replies) -> "FakeERP":
        self.auth_replies.extend(replies)
        return self

    @staticmethod
    def _build(reply, request: httpx.Request) -> httpx.Response:
        if isinstance(reply, type) and issubclass(reply, httpx.HTTPError):
            raise reply("simulated failure", request=request)
        status, body = reply
        if body is None:
            return httpx.Response(status)
        if isinstance(body, str):
            return httpx.Response(status, text=body)
        return httpx.Response(status, json=body)

    @staticmethod
    def _next(queue: deque):
        reply = queue[0]
        if len(queue) > 1:
            queue.popleft()
        return reply

    def handler(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        if request.url.path == AUTH_PATH:
            self.auth_calls += 1
            if self.auth_replies:
                return self._build(self._next(self.auth_replies), request)
            return self._build((200, f"token-{self.auth_calls}"), request)

        queue = self._routes.get((request.method, request.url.path))
        if not queue:
            return httpx.Response(404, json={"Message": "Not found"})
        return self._build(self._next(queue), request)

    @property
    def transport(self) -> httpx.MockTransport:
        return httpx.MockTransport(self.handler)

    def api_requests(self, prefix: str = "/servico") -> list[httpx.Request]:
        return [r for r in self.requests if r.url.path.startswith(prefix)]

    def json_body(self, index: int = -1, prefix: str = "/servico") -> dict:
        return json.loads(self.api_requests(prefix)[index].content)


@pytest.fixture()
def erp_config(tmp_path) -> ERPConfig:
    return ERPConfig(
        base_url=ERP_BASE_URL,
        username="integracao",
        password="secret",
        timeout=5.0,
        token_file=str(tmp_path / ".env"),
    )


@pytest.fixture()
def fake_erp() -> FakeERP:
    return FakeERP()


@pytest.fixture()
def erp_client(erp_config, fake_erp):
    client = build_client(erp_config, transport=fake_erp.transport)
    yield client
    client.close()


# ============================================================================
# Registration data fixtures
# ============================================================================


@pytest.fixture()
def catalogs(db_session):
    rows = {
        "activity_branch": ActivityBranch(id=12, code="12", name="Supermercados"),
        "carrier_code": CarrierCode(id=3, code="205", name="Carteira Sul"),
        "price_list": PriceList(id=4, code="7", name="Atacado"),
        "billing_method": BillingMethod(id=5, code="2", name="Boleto"),
        "seller": Seller(id=6, code="31", name="Vendedor Interno"),
    }
    db_session.add_all(rows.values())
    db_session.commit()
    return rows


@pytest.fixture()
def company(db_session):
    company = Company(
        tax_id=TAX_ID,
        legal_name="Mercado Exemplo LTDA",
        trade_name="Mercado Exemplo",
        registration_status="ATIVA",
        company_size="MICRO EMPRESA",
        state_registration="123456789",
    )
    db_session.add(company)
    db_session.flush()
    db_session.add(
        CompanyAddress(
            company_id=company.id,
            street="Rua das Flores",
            number="100",
            complement="Sala 2",
            district="Centro",
            city="Chapecó",
            state="SC",
            postal_code="89801-000",
            latitude=-27.1,
            longitude=-52.6,
        )
    )
    db_session.add(
        CompanyContact(
            company_id=company.id,
            landline_phones='["(49) 3322-1100"]',
            mobile_phones=["(49) 99999-0000"],
            emails=["compras@exemplo.com.br"],
        )
    )
    db_session.commit()
    return company


@pytest.fixture()
def registration(db_session, catalogs):
    registration = ClientRegistration(
        tax_id="11.222.333/0001-81",
        legal_name="Mercado Exemplo LTDA",
        trade_name="Mercado Exemplo",
        email="financeiro@exemplo.com.br",
        activity_branch_id=catalogs["activity_branch"].id,
        carrier_code_id=catalogs["carrier_code"].id,
        price_list_id=catalogs["price_list"].id,
        billing_method_id=catalogs["billing_method"].id,
        seller_id=catalogs["seller"].id,
    )
    db_session.add(registration)
    db_session.commit()
    return registration
