"""
Tests for kitchens (tenants) and their memberships.
"""

import pytest

from kitchen_ops.modules.kitchens.service import generate_code

from tests.conftest import ADMIN_ID, API, KITCHEN_ID, NUTRI_ID, OTHER_KITCHEN_ID, OUTSIDER_ID, login_as


class TestGenerateCode:
    @pytest.mark.parametrize("nome, codigo", [
        ("Cozinha Central", "COZINH"),
        ("Sul 2", "SUL2"),
        ("São Paulo", "SOPAUL"),
        ("", ""),
    ])
    def test_generate_code(self, nome, codigo):
        assert generate_code(nome) == codigo

    def test_route(self, client):
        response = client.get(f"{API}/kitchens/generate-code", params={"nome": "Sul 2"})
        assert response.json() == {"nome": "Sul 2", "codigo": "SUL2"}


class TestListKitchens:
    def test_member_sees_own_kitchens(self, client, current_user):
        login_as(current_user, NUTRI_ID)
        body = client.get(f"{API}/kitchens").json()
        assert [(k["id"], k["roles"]) for k in body] == [(KITCHEN_ID, ["NUTRICIONISTA"])]

    def test_super_user_sees_every_kitchen(self, client, current_user):
        login_as(current_user, "root", super_user=True)
        body = client.get(f"{API}/kitchens").json()
        assert {k["id"] for k in body} == {KITCHEN_ID, OTHER_KITCHEN_ID}

    def test_user_without_kitchens(self, client, current_user):
        login_as(current_user, "newcomer")
        assert client.get(f"{API}/kitchens").json() == []

    def test_roles_listing(self, client):
        roles = {r["role"]: r for r in client.get(f"{API}/kitchens/roles").json()}
        assert roles["SUPERVISORA"]["label"] == "Supervisora"
        assert "tasks:assign" in roles["SUPERVISORA"]["permissions"]


class TestKitchenCrud:
    def test_create_makes_creator_admin(self, client, db):
        response = client.post(f"{API}/kitchens", json={"nome": "Cozinha Sul", "codigo": " sul "})
        assert response.status_code == 201
        body = response.json()
        assert body["codigo"] == "SUL"
        assert body["roles"] == ["ADMIN"]
        assert {"user_id": ADMIN_ID, "kitchen_id": body["id"], "role": "ADMIN"}.items() <= db.rows("user_kitchen_roles")[-1].items()

    def test_duplicate_code(self, client):
        response = client.post(f"{API}/kitchens", json={"nome": "Outra", "codigo": "norte"})
        assert response.status_code == 400
        assert response.json()["detail"] == "A kitchen with this code already exists"

    def test_create_requires_permission(self, client, current_user):
        login_as(current_user, NUTRI_ID)
        response = client.post(f"{API}/kitchens", json={"nome": "Cozinha Sul", "codigo": "SUL"})
        assert response.status_code == 403

    def test_get_non_member(self, client):
        response = client.get(f"{API}/kitchens/{OTHER_KITCHEN_ID}")
        assert response.status_code == 403

    def test_update(self, client):
        response = client.put(f"{API}/kitchens/{KITCHEN_ID}", json={"endereco": "Rua A, 10"})
        assert response.status_code == 200
        assert response.json()["endereco"] == "Rua A, 10"

    def test_update_to_taken_code(self, client):
        response = client.put(f"{API}/kitchens/{KITCHEN_ID}", json={"codigo": "NORTE"})
        assert response.status_code == 400

    def test_update_requires_permission(self, client, current_user):
        login_as(current_user, NUTRI_ID)
        response = client.put(f"{API}/kitchens/{KITCHEN_ID}", json={"nome": "X"})
        assert response.json()["detail"] == "Insufficient permissions. Required: kitchens:update"

    def test_delete(self, client, db):
        assert client.delete(f"{API}/kitchens/{KITCHEN_ID}").status_code == 204
        assert KITCHEN_ID not in [k["id"] for k in db.rows("kitchens")]


class TestMembers:
    def test_list(self, client):
        members = client.get(f"{API}/kitchens/{KITCHEN_ID}/members").json()
        assert {m["role_label"] for m in members} == {"Admin", "Nutricionista", "Aux. Adm"}

    def test_add_by_email(self, client):
        response = client.post(
            f"{API}/kitchens/{KITCHEN_ID}/members", json={"email": "diego@cozinha.com", "role": "SUPERVISORA"}
        )
        assert response.status_code == 201
        body = response.json()
        assert body["user_id"] == OUTSIDER_ID
        assert body["role_label"] == "Supervisora"

    def test_add_same_role_twice(self, client):
        response = client.post(
            f"{API}/kitchens/{KITCHEN_ID}/members", json={"email": "bruna@cozinha.com", "role": "NUTRICIONISTA"}
        )
        assert response.status_code == 400
        assert response.json()["detail"] == "User already has this role in this kitchen"

    def test_add_unknown_email(self, client):
        response = client.post(f"{API}/kitchens/{KITCHEN_ID}/members", json={"email": "ghost@cozinha.com"})
        assert response.status_code == 404

    def test_add_requires_manage_members(self, client, current_user):
        login_as(current_user, NUTRI_ID)
        response = client.post(f"{API}/kitchens/{KITCHEN_ID}/members", json={"email": "diego@cozinha.com"})
        assert response.status_code == 403

    def test_remove(self, client, db):
        membership = next(r for r in db.rows("user_kitchen_roles") if r["user_id"] == NUTRI_ID)
        response = client.delete(f"{API}/kitchens/{KITCHEN_ID}/members/{membership['id']}")
        assert response.status_code == 204
        assert NUTRI_ID not in [r["user_id"] for r in db.rows("user_kitchen_roles")]

    def test_remove_membership_of_other_kitchen(self, client, db):
        membership = next(r for r in db.rows("user_kitchen_roles") if r["user_id"] == OUTSIDER_ID)
        response = client.delete(f"{API}/kitchens/{KITCHEN_ID}/members/{membership['id']}")
        assert response.status_code == 404
