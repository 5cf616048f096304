"""Shared pytest fixtures.

Fixture overview
----------------
db            seeded FakeSupabase: two kitchens, four users, projects and a task
current_user  mutable user dict returned by the auth dependency (ADMIN of kitchen-1)
gateway       recording stub for the Evolution WhatsApp gateway
evolution     EvolutionClient wired to the stub through httpx.MockTransport
client        FastAPI TestClient with Supabase, auth and gateway overridden
"""
import json

import httpx
import pytest
from fastapi.testclient import TestClient

from kitchen_ops.core.dependencies import get_current_user_id
from kitchen_ops.database.supabase_client import get_supabase, get_service_supabase
from kitchen_ops.main import app
from kitchen_ops.modules.auth.service import token_cache
from kitchen_ops.modules.whatsapp.evolution_client import EvolutionClient
from kitchen_ops.modules.whatsapp.routes import get_evolution_client

from tests.fakes import FakeSupabase

API = "/api/v1"

KITCHEN_ID = "kitchen-1"
OTHER_KITCHEN_ID = "kitchen-2"
ADMIN_ID = "user-admin"
NUTRI_ID = "user-nutri"
AUX_ID = "user-aux"
OUTSIDER_ID = "user-outsider"
PROJECT_ID = "project-1"
OTHER_PROJECT_ID = "project-2"
TASK_ID = "task-1"


def seed(db: FakeSupabase) -> FakeSupabase:
    db.add("kitchens", id=KITCHEN_ID, nome="Cozinha Central", codigo="CENTRAL", ativo=True,
           criado_em="2026-01-01T00:00:00+00:00")
    db.add("kitchens", id=OTHER_KITCHEN_ID, nome="Cozinha Norte", codigo="NORTE", ativo=True,
           criado_em="2026-01-02T00:00:00+00:00")

    db.add("profiles", id=ADMIN_ID, nome="Ana Admin", email="ana@cozinha.com",
           telefone="11999990000", hora_inicio="08:00", hora_fim="17:00", ativo=True)
    db.add("profiles", id=NUTRI_ID, nome="Bruna Nutri", email="bruna@cozinha.com",
           telefone="(11) 98888-7777", hora_inicio="08:00", hora_fim="16:00", ativo=True)
    db.add("profiles", id=AUX_ID, nome="Carlos Aux", email="carlos@cozinha.com",
           telefone=None, hora_inicio=None, hora_fim=None, ativo=True)
    db.add("profiles", id=OUTSIDER_ID, nome="Diego Norte", email="diego@cozinha.com",
           telefone="21977776666", hora_inicio="07:00", hora_fim="15:00", ativo=True)

    db.add("user_kitchen_roles", user_id=ADMIN_ID, kitchen_id=KITCHEN_ID, role="ADMIN")
    db.add("user_kitchen_roles", user_id=NUTRI_ID, kitchen_id=KITCHEN_ID, role="NUTRICIONISTA")
    db.add("user_kitchen_roles", user_id=AUX_ID, kitchen_id=KITCHEN_ID, role="AUX_ADM")
    db.add("user_kitchen_roles", user_id=OUTSIDER_ID, kitchen_id=OTHER_KITCHEN_ID, role="ADMIN")

    db.add("projects", id=PROJECT_ID, kitchen_id=KITCHEN_ID, nome="Cardápio de Verão",
           status="ATIVO", criado_em="2026-02-01T10:00:00+00:00",
           kitchens={"nome": "Cozinha Central"})
    db.add("projects", id=OTHER_PROJECT_ID, kitchen_id=OTHER_KITCHEN_ID, nome="Reforma Norte",
           status="PAUSADO", criado_em="2026-02-02T10:00:00+00:00",
           kitchens={"nome": "Cozinha Norte"})

    db.add("tasks", id=TASK_ID, project_id=PROJECT_ID, titulo="Revisar fichas técnicas",
           descricao="Conferir gramaturas", prioridade="ALTA", status="EM_ANDAMENTO",
           responsavel_id=NUTRI_ID, prazo="2026-03-10", criado_em="2026-02-03T09:00:00+00:00",
           projects={"nome": "Cardápio de Verão", "kitchen_id": KITCHEN_ID, "kitchens": {"nome": "Cozinha Central"}})
    return db


class GatewayStub:
    """Answers the two Evolution endpoints and records what was sent"""

    def __init__(self):
        self.instances = [{"instance": {"instanceName": "kitchen-ops", "state": "open"}}]
        self.send_status = 201
        self.send_body = {"key": {"id": "MSG-1"}, "status": "PENDING"}
        self.sent = []

    def handler(self, request: httpx.Request) -> httpx.Response:
        if request.url.path.endswith("/instance/fetchInstances"):
            return httpx.Response(200, json=self.instances)
        if "/message/sendText/" in request.url.path:
            self.sent.append({
                "instance": request.url.path.rsplit("/", 1)[-1],
                "headers": dict(request.headers),
                "body": json.loads(request.content),
            })
            return httpx.Response(self.send_status, json=self.send_body)
        return httpx.Response(404, json={"message": "not found"})


@pytest.fixture
def db():
    return seed(FakeSupabase())


@pytest.fixture
def current_user():
    return {"id": ADMIN_ID, "email": "ana@cozinha.com", "user_metadata": {}, "app_metadata": {}}


@pytest.fixture
def gateway():
    return GatewayStub()


@pytest.fixture
def evolution(gateway):
    return EvolutionClient(
        api_url="http://evolution.test",
        api_key="test-key",
        default_instance="kitchen-ops",
        http_client=httpx.Client(transport=httpx.MockTransport(gateway.handler)),
    )


@pytest.fixture
def client(db, current_user, evolution):
    app.dependency_overrides[get_supabase] = lambda: db
    app.dependency_overrides[get_service_supabase] = lambda: db
    app.dependency_overrides[get_current_user_id] = lambda: current_user
    app.dependency_overrides[get_evolution_client] = lambda: evolution
    yield TestClient(app)
    app.dependency_overrides.clear()
    token_cache.clear()


def login_as(current_user: dict, user_id: str, super_user: bool = False):
    current_user["id"] = user_id
    current_user["app_metadata"] = {"type": "super_user"} if super_user else {}
