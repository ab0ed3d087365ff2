def _register(client, **overrides):
    payload = {"Nome": "Maria Silva", "Email": "maria@example.com", "Senha": "segredo123"}
    payload.update(overrides)
    return client.post("/clientes", json=payload)


def test_register_defaults_role_to_usuario(client, db_session):
    r = _register(client)
    assert r.status_code == 201
    body = r.json()
    assert body["id"] > 0

    from taskflow.models import UserModel

    user = db_session.get(UserModel, body["id"])
    assert user.role == "Usuario"
    assert user.active is True
    assert user.email == "maria@example.com"
    # Only the hash is stored
    assert user.password_hash != "segredo123"
    assert user.password_hash.startswith("$2")


def test_register_with_explicit_role(client):
    r = _register(client, Perfil_Acesso="Tecnico")
    assert r.status_code == 201

    r = client.post("/login", json={"Email": "maria@example.com", "Senha": "segredo123"})
    assert r.json()["usuario"]["Perfil_Acesso"] == "Tecnico"


def test_register_rejects_unknown_role(client):
    r = _register(client, Perfil_Acesso="Root")
    assert r.status_code == 400


def test_register_duplicate_email_differing_in_case_conflicts(client):
    assert _register(client, Email="Joao@Example.com").status_code == 201
    r = _register(client, Email="joao@example.COM")
    assert r.status_code == 409
    assert r.json() == {"error": "Email já cadastrado"}


def test_register_validation_errors(client):
    r = client.post("/clientes", json={"Nome": "Sem Email", "Senha": "x"})
    assert r.status_code == 400
    assert "error" in r.json()

    r = _register(client, Email="not-an-email")
    assert r.status_code == 400

    r = _register(client, Nome="")
    assert r.status_code == 400


def test_login_returns_profile_and_token(client, create_user):
    user = create_user(role="Admin", name="Ana Admin", email="ana@example.com", password="adminpass")

    r = client.post("/login", json={"Email": "ANA@example.com", "Senha": "adminpass"})
    assert r.status_code == 200
    body = r.json()
    assert body["usuario"] == {
        "ID_CLIENTE": user.id,
        "Nome": "Ana Admin",
        "Email": "ana@example.com",
        "Perfil_Acesso": "Admin",
    }
    assert body["access_token"]
    assert body["token_type"] == "bearer"


def test_login_failures_are_indistinguishable(client, create_user):
    create_user(email="ativo@example.com", password="certa")
    create_user(email="inativo@example.com", password="certa", active=False)

    wrong_password = client.post("/login", json={"Email": "ativo@example.com", "Senha": "errada"})
    unknown = client.post("/login", json={"Email": "ninguem@example.com", "Senha": "certa"})
    inactive = client.post("/login", json={"Email": "inativo@example.com", "Senha": "certa"})

    for r in (wrong_password, unknown, inactive):
        assert r.status_code == 401
        assert r.json() == {"error": "Email ou senha incorretos"}


def test_login_requires_fields(client):
    r = client.post("/login", json={"Email": "a@example.com"})
    assert r.status_code == 400


def test_password_recovery_does_not_reveal_accounts(client, create_user):
    create_user(email="existe@example.com")

    known = client.post("/recuperar-senha", json={"Email": "existe@example.com"})
    unknown = client.post("/recuperar-senha", json={"Email": "nao-existe@example.com"})
    assert known.status_code == 200
    assert unknown.status_code == 200
    assert known.json() == unknown.json()

    r = client.post("/recuperar-senha", json={})
    assert r.status_code == 400
