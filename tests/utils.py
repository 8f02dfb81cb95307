from app.core.sessions import SessionData

DEMO_PASSWORD = "123456"
ADMIN_PASSWORD = "admin123"


def login(client, username, password=DEMO_PASSWORD):
    """Log in through the API; the client keeps the session cookie."""
    response = client.post("/api/v1/auth/login", json={"username": username, "password": password})
    assert response.status_code == 200, response.json()
    return response


def session_for(user) -> SessionData:
    return SessionData(
        id=user.id,
        username=user.username,
        role=user.role,
        name=user.name,
        email=user.email,
        specialization=user.specialization,
    )
