from decimal import Decimal

from conftest import PASSWORD


def login(client, username, password=PASSWORD):
    return client.post("/token", data={"username": username, "password": password})


def test_login_and_me(client, people):
    r = login(client, "  Sales_Emp ")
    assert r.status_code == 200, r.text
    body = r.json()
    assert body["username"] == "sales_emp"
    assert body["role"] == "employee"

    r = client.get("/users/me", headers={"Authorization": f"Bearer {body['access_token']}"})
    assert r.status_code == 200
    assert r.json()["username"] == "sales_emp"


def test_bad_credentials(client, people):
    assert login(client, "sales_emp", "wrong-password").status_code == 401
    assert login(client, "nobody").status_code == 401
    assert client.get("/users/me").status_code == 401
    assert client.get("/users/me", headers={"Authorization": "Bearer garbage"}).status_code == 401


def test_logout_revokes_token(client, people):
    token = login(client, "sales_emp").json()["access_token"]
    auth = {"Authorization": f"Bearer {token}"}
    r = client.post("/logout", headers=auth)
    assert r.status_code == 200
    assert r.json()["success"] is True
    assert client.get("/users/me", headers=auth).status_code == 401


def test_change_password(client, headers):
    r = client.post("/auth/change-password", headers=headers["ops_emp"], json={
        "current_password": PASSWORD,
        "new_password": "BetterPass99",
        "confirm_password": "BetterPass98",
    })
    assert r.status_code == 400
    assert r.json()["detail"]["error_code"] == "PASSWORD_MISMATCH"

    r = client.post("/auth/change-password", headers=headers["ops_emp"], json={
        "current_password": "not-it",
        "new_password": "BetterPass99",
        "confirm_password": "BetterPass99",
    })
    assert r.json()["detail"]["error_code"] == "WRONG_PASSWORD"

    r = client.post("/auth/change-password", headers=headers["ops_emp"], json={
        "current_password": PASSWORD,
        "new_password": "BetterPass99",
        "confirm_password": "BetterPass99",
    })
    assert r.status_code == 200, r.text
    assert login(client, "ops_emp", "BetterPass99").status_code == 200


def test_profile_visibility_and_salary(client, headers, people):
    emp = people["sales_emp"].id

    own = client.get(f"/users/{emp}", headers=headers["sales_emp"]).json()
    assert Decimal(own["salary"]) == Decimal("3000")
    assert own["department_name"] == "Sales"

    seen_by_leader = client.get(f"/users/{emp}", headers=headers["sales_lead"])
    assert seen_by_leader.status_code == 200
    assert seen_by_leader.json()["salary"] is None

    assert client.get(f"/users/{emp}", headers=headers["ops_lead"]).status_code == 403
    assert client.get(f"/users/{emp}", headers=headers["sales_emp2"]).status_code == 403
    assert client.get(f"/users/{emp}", headers=headers["floating_lead"]).status_code == 403
    assert client.get(f"/users/{emp}/salary", headers=headers["sales_lead"]).status_code == 403

    admin_view = client.get(f"/users/{emp}", headers=headers["admin"]).json()
    assert Decimal(admin_view["salary"]) == Decimal("3000")


def test_user_listing_scope(client, headers):
    assert len(client.get("/users", headers=headers["admin"]).json()) == 7
    names = {u["username"] for u in client.get("/users", headers=headers["sales_lead"]).json()}
    assert names == {"sales_lead", "sales_emp", "sales_emp2"}
    names = {u["username"] for u in client.get("/users", headers=headers["ops_emp"]).json()}
    assert names == {"ops_emp"}


def test_profile_editing(client, headers, people):
    emp = people["sales_emp"].id

    r = client.patch(f"/users/{emp}", headers=headers["sales_lead"], json={"full_name": "Asha Verma"})
    assert r.status_code == 200, r.text
    assert r.json()["full_name"] == "Asha Verma"

    r = client.patch(f"/users/{emp}", headers=headers["sales_lead"], json={"role": "leader"})
    assert r.status_code == 403
    r = client.patch(f"/users/{emp}", headers=headers["ops_lead"], json={"full_name": "X"})
    assert r.status_code == 403
    r = client.patch(f"/users/{emp}", headers=headers["sales_emp"], json={"full_name": "Me"})
    assert r.status_code == 403
    r = client.patch(f"/users/{emp}", headers=headers["admin"], json={"username": "sales_emp2"})
    assert r.status_code == 400


def test_profile_fields_cannot_be_nulled(client, headers, people):
    emp = people["sales_emp"].id
    for field in ("full_name", "username", "email", "role", "salary"):
        r = client.patch(f"/users/{emp}", headers=headers["admin"], json={field: None})
        assert r.status_code == 400, (field, r.text)

    r = client.patch(f"/users/{emp}", headers=headers["sales_lead"], json={"role": None})
    assert r.status_code == 403

    profile = client.get(f"/users/{emp}", headers=headers["admin"]).json()
    assert profile["full_name"] == "Sales Emp"
    assert profile["role"] == "employee"

    r = client.patch(f"/users/{emp}", headers=headers["admin"], json={"department_id": None})
    assert r.status_code == 200, r.text
    assert r.json()["department_id"] is None


def test_role_change_invalidates_old_tokens(client, headers, people):
    emp = people["sales_emp"].id
    old = headers["sales_emp"]
    r = client.patch(f"/users/{emp}", headers=headers["admin"], json={"role": "leader"})
    assert r.status_code == 200, r.text
    assert client.get("/users/me", headers=old).status_code == 401


def test_departments(client, headers):
    assert client.get("/departments").status_code == 401
    assert len(client.get("/departments", headers=headers["ops_emp"]).json()) == 2
    r = client.post("/departments", headers=headers["ops_emp"], json={"name": "Finance"})
    assert r.status_code == 403
    r = client.post("/departments", headers=headers["admin"], json={"name": "Finance"})
    assert r.status_code == 201
    r = client.post("/departments", headers=headers["admin"], json={"name": "Finance"})
    assert r.status_code == 400


def test_health_and_json_charset(client):
    r = client.get("/health")
    assert r.status_code == 200
    assert r.json()["status"] == "healthy"
    assert r.headers["content-type"] == "application/json; charset=utf-8"
