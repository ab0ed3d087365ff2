import inspect
import json

import pytest
from fastapi.testclient import TestClient
from limits import parse
from sqlalchemy.exc import OperationalError
from sqlalchemy.orm import Session

from taskflow import config, storage
from taskflow.main import app
from taskflow.routers import admin as admin_router
from taskflow.routers import auth as auth_router


@pytest.fixture()
def failing_commit(monkeypatch):
    """Make every Session.commit fail as if the database went away."""
    def _enable():
        def _commit(self):
            raise OperationalError("COMMIT", {}, Exception("server has gone away"))

        monkeypatch.setattr(Session, "commit", _commit)

    return _enable


def _names(ticket):
    return [path.rsplit("/", 1)[1] for path in ticket["Imagens"]]


def test_security_headers_present(client):
    r = client.get("/health")
    assert r.headers["X-Content-Type-Options"] == "nosniff"
    assert r.headers["X-Frame-Options"] == "DENY"

    # Error responses carry them too
    r = client.get("/tickets/9999")
    assert r.headers["X-Content-Type-Options"] == "nosniff"


def test_rate_limit_on_login(client):
    limiter = app.state.limiter
    allowed = parse(config.AUTH_RATE_LIMIT).amount

    try:
        limiter.enabled = True
        last = None
        for _ in range(allowed + 1):
            last = client.post("/login", json={"Email": "ninguem@example.com", "Senha": "errada"})
            if last.status_code == 429:
                break
            assert last.status_code == 401

        assert last.status_code == 429
        assert last.json() == {"error": "Muitas requisições deste IP, tente novamente mais tarde."}
    finally:
        limiter.reset()
        limiter.enabled = False


def test_ticket_update_persistence_failure_is_internal_error(client, create_user, create_sector, open_ticket, failing_commit):
    tech = create_user(role="Tecnico")
    sector = create_sector()
    ticket = open_ticket(create_user().id, sector.id)

    failing_commit()
    r = client.put(f"/tickets/{ticket['ID_Ticket']}", json={
        "Titulo": "Novo",
        "Descricao": "D",
        "Prioridade": "Baixa",
        "ID_Setor": sector.id,
        "TicketStatus": "Fechado",
        "ID_Cliente": tech.id,
    })
    assert r.status_code == 500
    assert r.json() == {"error": "Erro interno do servidor"}

    r = client.get(f"/tickets/{ticket['ID_Ticket']}")
    assert r.json()["Titulo"] == "Impressora parada"
    assert r.json()["TicketStatus"] == "Aberto"


def test_image_update_failure_keeps_files_consistent(client, create_user, open_ticket, png, upload_dir, failing_commit):
    ticket = open_ticket(create_user().id, images=1)
    original = _names(ticket)[0]

    failing_commit()
    r = client.put(
        f"/tickets/{ticket['ID_Ticket']}/imagens",
        data={"imagens_remover": json.dumps([original])},
        files=[png("nova.png")],
    )
    assert r.status_code == 500

    # The detached file is still there and the new one was discarded
    assert [p.name for p in upload_dir.iterdir()] == [original]
    r = client.get(f"/tickets/{ticket['ID_Ticket']}")
    assert _names(r.json()) == [original]


def test_ticket_creation_failure_discards_uploaded_files(client, create_user, png, upload_dir, failing_commit):
    owner = create_user()

    failing_commit()
    data = {"Titulo": "T", "Descricao": "D", "Prioridade": "Alta", "ID_Cliente": str(owner.id), "Nome_Cliente": "C"}
    r = client.post("/tickets", data=data, files=[png("a.png"), png("b.png")])
    assert r.status_code == 500
    assert list(upload_dir.iterdir()) == []


@pytest.fixture()
def lenient_client():
    with TestClient(app, raise_server_exceptions=False) as c:
        yield c


def test_unexpected_error_details_hidden_in_production(lenient_client, monkeypatch):
    def _broken():
        raise RuntimeError("disco indisponível")

    monkeypatch.setattr(storage, "describe", _broken)

    r = lenient_client.get("/diagnostico")
    assert r.status_code == 500
    assert r.json() == {"error": "Erro interno do servidor", "details": "disco indisponível"}

    monkeypatch.setenv("APP_ENV", "production")
    r = lenient_client.get("/diagnostico")
    assert r.status_code == 500
    assert r.json() == {"error": "Erro interno do servidor"}


def test_only_staff_token_may_delete_ticket(client, create_user, open_ticket):
    owner = create_user(email="dono@example.com", password="pw")
    create_user(role="Tecnico", email="tec@example.com", password="pw")
    ticket = open_ticket(owner.id)
    url = f"/tickets/{ticket['ID_Ticket']}"

    def _token(email):
        return client.post("/login", json={"Email": email, "Senha": "pw"}).json()["access_token"]

    r = client.delete(url, headers={"Authorization": f"Bearer {_token('dono@example.com')}"})
    assert r.status_code == 403
    assert client.get(url).status_code == 200

    r = client.delete(url, headers={"Authorization": f"Bearer {_token('tec@example.com')}"})
    assert r.status_code == 200
    assert client.get(url).status_code == 404


def test_check_stored_file(client, create_user, open_ticket, upload_dir):
    ticket = open_ticket(create_user().id, images=1)
    name = _names(ticket)[0]

    r = client.get(f"/verificar-arquivo/{name}")
    assert r.status_code == 200
    body = r.json()
    assert body["arquivo"] == name
    assert body["existe"] is True
    assert body["caminho"] == str(upload_dir / name)
    assert body["info"]["tamanho"] == 40
    assert body["info"]["criado"] and body["info"]["modificado"]

    r = client.get("/verificar-arquivo/sumiu.png")
    assert r.status_code == 200
    assert r.json()["existe"] is False
    assert r.json()["info"] == {}


def test_password_handlers_run_off_the_event_loop():
    for handler in (auth_router.register, auth_router.login, auth_router.update_profile,
                    admin_router.admin_create_user, admin_router.admin_update_user):
        assert not inspect.iscoroutinefunction(handler), handler.__name__
