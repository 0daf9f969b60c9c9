"""
Email subscription tests.
"""

from unittest.mock import patch

from hubpress.modules.email import email_service


def subscribe(client, email):
    return client.post("/users/subscribe", json={"email": email})


def test_subscribe_new_email_sends_welcome(client):
    with patch.object(email_service, "send_welcome_email", return_value=True) as welcome:
        response = subscribe(client, "Reader@Example.com")

    assert response.status_code == 200
    assert response.get_json() == {"message": "Subscription successful"}
    welcome.assert_called_once_with("reader@example.com")


def test_subscribe_succeeds_when_welcome_email_fails(client):
    with patch.object(email_service, "send_welcome_email", return_value=False):
        response = subscribe(client, "reader@example.com")
    assert response.status_code == 200


def test_subscribe_invalid_email(client):
    response = subscribe(client, "not-an-email")
    assert response.status_code == 400


def test_subscribe_twice(client):
    with patch.object(email_service, "send_welcome_email", return_value=True):
        subscribe(client, "reader@example.com")
        response = subscribe(client, "reader@example.com")

    assert response.status_code == 401
    assert response.get_json()["error_message"] == "Email has already subscribed.."


def test_unsubscribe_and_resubscribe(client):
    with patch.object(email_service, "send_welcome_email", return_value=True) as welcome:
        subscribe(client, "reader@example.com")

        response = client.patch("/users/unsubscribe", json={"email": "reader@example.com"})
        assert response.status_code == 200
        assert response.get_json() == {"message": "Unsubscribed successfully"}
        assert client.get("/users/subscribers").get_json() == []

        again = subscribe(client, "reader@example.com")

    assert again.status_code == 200
    assert client.get("/users/subscribers").get_json() == ["reader@example.com"]
    # Reactivation doesn't resend the welcome email
    assert welcome.call_count == 1


def test_unsubscribe_unknown_email(client):
    response = client.patch("/users/unsubscribe", json={"email": "ghost@example.com"})
    assert response.status_code == 404
    assert response.get_json() == {"message": "Email not found"}


def test_subscriber_stats(client):
    with patch.object(email_service, "send_welcome_email", return_value=True):
        subscribe(client, "a@example.com")
        subscribe(client, "b@example.com")
    client.patch("/users/unsubscribe", json={"email": "b@example.com"})

    data = client.get("/users/subscribers/stats").get_json()
    assert data["count"] == 1
    assert data["last_updated"]
