"""
Tests de los endpoints de autenticación.
"""

API = "/api/v1/auth"


class TestSignup:
    def test_signup_returns_token_and_member(self, client):
        response = client.post(f"{API}/signup", json={
            "email": "  New.Member@Example.com ",
            "password": "supersecret",
            "first_name": "New",
            "last_name": "Member",
        })

        assert response.status_code == 201
        data = response.json()
        assert data["token_type"] == "bearer"
        assert data["access_token"]
        assert data["user"]["email"] == "new.member@example.com"
        assert data["user"]["role"] == "member"

    def test_signup_duplicate_email(self, client, member_user):
        response = client.post(f"{API}/signup", json={
            "email": "member@test.com",
            "password": "supersecret",
            "first_name": "Dup",
            "last_name": "User",
        })

        assert response.status_code == 409
        assert response.json()["detail"]["code"] == "USER_EXISTS"

    def test_signup_short_password(self, client):
        response = client.post(f"{API}/signup", json={
            "email": "short@example.com",
            "password": "short",
            "first_name": "Short",
            "last_name": "Password",
        })
        assert response.status_code == 422


class TestLogin:
    def test_login_and_me(self, client, coach_user):
        response = client.post(f"{API}/login", json={"email": "COACH@test.com", "password": "password123"})
        assert response.status_code == 200
        token = response.json()["access_token"]

        me = client.get(f"{API}/me", headers={"Authorization": f"Bearer {token}"})
        assert me.status_code == 200
        assert me.json()["id"] == coach_user.id
        assert me.json()["role"] == "coach"

    def test_wrong_password(self, client, member_user):
        response = client.post(f"{API}/login", json={"email": "member@test.com", "password": "nope-nope"})
        assert response.status_code == 401
        assert response.json()["detail"]["code"] == "INVALID_CREDENTIALS"

    def test_unknown_email(self, client):
        response = client.post(f"{API}/login", json={"email": "ghost@test.com", "password": "password123"})
        assert response.status_code == 401
        assert response.json()["detail"]["code"] == "INVALID_CREDENTIALS"

    def test_me_requires_token(self, client):
        response = client.get(f"{API}/me")
        assert response.status_code == 401
        assert response.json()["detail"]["code"] == "NOT_AUTHENTICATED"

    def test_me_with_garbage_token(self, client):
        response = client.get(f"{API}/me", headers={"Authorization": "Bearer not-a-jwt"})
        assert response.status_code == 401
        assert response.json()["detail"]["code"] == "INVALID_TOKEN"

    def test_logout(self, client, member_headers):
        response = client.post(f"{API}/logout", headers=member_headers)
        assert response.status_code == 200
        assert response.json()["message"] == "Logged out successfully"


def test_health(client):
    response = client.get("/health")
    assert response.status_code == 200
    assert response.json() == {"status": "ok"}
